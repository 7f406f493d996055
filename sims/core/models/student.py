import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from sims.db.session import Base


class Student(Base):
    """
    Student profile (siswa). nis is the student number and must be unique;
    bulk imports without one get a generated NIS-<epoch millis> placeholder.
    """

    __tablename__ = "siswa"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    nis = Column(String(50), nullable=False, unique=True)
    kelas_id = Column(Uuid(as_uuid=True), ForeignKey("kelas.id"), nullable=True)
    orang_tua_id = Column(Uuid(as_uuid=True), ForeignKey("orang_tua.id"), nullable=True)
    tanggal_lahir = Column(Date, nullable=True)
    alamat = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    kelas = relationship("SchoolClass", foreign_keys=[kelas_id])
    orang_tua = relationship("Guardian", foreign_keys=[orang_tua_id])
