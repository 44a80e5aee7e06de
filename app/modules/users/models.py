# app/modules/users/models.py
from __future__ import annotations

import uuid
from typing import Optional
from enum import Enum as PyEnum
from sqlalchemy import ForeignKey
import datetime as dt

from sqlalchemy import (
    String,
    Boolean,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin, _utcnow
from app.db.types import UTCDateTime


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    details: Mapped[str | None] = mapped_column(String(1000))
    timestamp: Mapped[dt.datetime] = mapped_column(UTCDateTime, default=_utcnow)


class UserRole(PyEnum):
    PATIENT = "patient"
    PROVIDER = "provider"
    ADMIN = "admin"


class User(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        index=True,
    )

    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.PATIENT.value,
        server_default=UserRole.PATIENT.value,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        CheckConstraint(
            "role IN ('patient', 'provider', 'admin')", name="ck_users_role_valid"
        ),
        Index("ix_users_active_role", "is_active", "role"),
    )

    @property
    def role_enum(self) -> UserRole:
        """Get role as UserRole enum instance."""
        return UserRole(self.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class FamilyMember(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """A dependant (child, relative) a patient can book on behalf of."""

    __tablename__ = "family_members"

    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    relationship_label: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
