# app/modules/providers/models.py
from __future__ import annotations

import uuid
import datetime as dt
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin
from app.db.types import UTCDateTime
from app.modules.scheduling.schemas import OperatingProfile


class ProviderStatus(PyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    SUSPENDED = "SUSPENDED"
    REJECTED = "REJECTED"


class Provider(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A daycare or medical practice that accepts bookings.
    Opening hours are wall-clock times in `timezone`.
    """

    __tablename__ = "providers"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProviderStatus.PENDING.value,
        server_default=ProviderStatus.PENDING.value,
    )

    opening_time: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00")
    closing_time: Mapped[str] = mapped_column(String(5), nullable=False, default="17:00")
    # ["Mon", "Tue", ...]
    operating_days: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    offers_telehealth: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[Optional[dt.datetime]] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("slug", name="uq_providers_slug"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'SUSPENDED', 'REJECTED')",
            name="ck_providers_status_valid",
        ),
        Index("ix_providers_status", "status"),
    )

    def operating_profile(self) -> OperatingProfile:
        return OperatingProfile(
            opening_time=self.opening_time,
            closing_time=self.closing_time,
            operating_days=list(self.operating_days or []),
            timezone=self.timezone,
        )


class Service(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """A bookable service offered by a provider (drives appointment duration)."""

    __tablename__ = "services"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    is_telehealth: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
    )
