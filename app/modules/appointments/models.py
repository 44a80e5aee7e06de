# app/modules/appointments/models.py
from __future__ import annotations

import uuid
import datetime as dt
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin
from app.db.types import UTCDateTime
from app.modules.scheduling.schemas import BookingStatus, RecurrencePattern


class AppointmentType(PyEnum):
    TOUR = "TOUR"
    IN_PERSON = "IN_PERSON"
    TELEMEDICINE = "TELEMEDICINE"


_ACTIVE_SQL = "status IN ('PENDING', 'CONFIRMED')"


class Appointment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    One occurrence of a booking. A recurring series is the set of rows
    sharing `series_id`. Rows are never deleted; cancellation is a status.
    """

    __tablename__ = "appointments"

    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("providers.id", ondelete="RESTRICT"),
        nullable=False,
    )
    family_member_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("family_members.id", ondelete="SET NULL"),
        nullable=True,
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("services.id", ondelete="SET NULL"),
        nullable=True,
    )

    appointment_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AppointmentType.IN_PERSON.value
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        server_default=BookingStatus.PENDING.value,
    )

    scheduled_at: Mapped[dt.datetime] = mapped_column(UTCDateTime, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    recurrence: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RecurrencePattern.NONE.value
    )
    recurrence_end_date: Mapped[Optional[dt.datetime]] = mapped_column(UTCDateTime, nullable=True)
    series_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    cancelled_at: Mapped[Optional[dt.datetime]] = mapped_column(UTCDateTime, nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_appt_duration_positive"),
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED', 'NO_SHOW')",
            name="ck_appt_status_valid",
        ),
        # Last line of defence against double booking: one active row per provider start time.
        Index(
            "uq_appt_provider_start_active",
            "provider_id",
            "scheduled_at",
            unique=True,
            postgresql_where=text(_ACTIVE_SQL),
            sqlite_where=text(_ACTIVE_SQL),
        ),
        Index("ix_appt_provider_start", "provider_id", "scheduled_at"),
        Index("ix_appt_patient_start", "patient_id", "scheduled_at"),
        Index("ix_appt_series", "series_id"),
    )
