import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from sims.db.session import Base


class User(Base):
    """Authentication identity. Email is unique case-insensitively (enforced on create)."""

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(Text, nullable=False)
    # {"nama": "..."} as supplied at account creation
    user_metadata = Column(JSON, nullable=False, default=dict)
    email_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    role_assignment = relationship("UserRole", back_populates="user", uselist=False, cascade="all, delete-orphan")


class Profile(Base):
    """Public profile written alongside every new account (id shared with users.id)."""

    __tablename__ = "profiles"

    id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), nullable=False)
    nama = Column(String(255), nullable=False)
    avatar_url = Column(Text, nullable=True)
    status_aktif = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="profile")


class UserRole(Base):
    """Role assignment: exactly one of admin, guru, siswa, orang_tua per account."""

    __tablename__ = "user_roles"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    role = Column(String(20), nullable=False)

    user = relationship("User", back_populates="role_assignment")
