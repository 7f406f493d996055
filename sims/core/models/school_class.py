"""Classes (kelas). Only the columns the importer references; class management lives elsewhere."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid

from sims.db.session import Base


class SchoolClass(Base):
    """Class master (e.g. "X IPA 1"). Model named SchoolClass to avoid Python 'class' keyword."""

    __tablename__ = "kelas"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    nama_kelas = Column(String(100), nullable=False)
    tahun_ajaran_id = Column(Uuid(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
