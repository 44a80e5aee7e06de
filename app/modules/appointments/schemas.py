# app/modules/appointments/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.modules.scheduling.schemas import RecurrencePattern


def _require_aware(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and v.tzinfo is None:
        raise ValueError("timestamp must include a UTC offset (ISO-8601)")
    return v


class AppointmentCreateRequest(BaseModel):
    """
    Payload to create a booking (single or recurring).
    - patient_id is taken from current_user, never from the client.
    """
    provider_id: UUID
    family_member_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    scheduled_at: datetime = Field(..., description="ISO-8601 with offset")
    is_tour: bool = Field(default=False, description="Facility tour instead of a service visit")
    is_telemedicine: bool = False
    notes: Optional[str] = Field(default=None, max_length=1000)
    recurrence: RecurrencePattern = RecurrencePattern.NONE
    recurrence_end_date: Optional[datetime] = None

    @field_validator("scheduled_at", "recurrence_end_date")
    @classmethod
    def _aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _require_aware(v)


class AppointmentCancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class AppointmentRescheduleRequest(BaseModel):
    new_scheduled_at: datetime

    @field_validator("new_scheduled_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return _require_aware(v)


class AppointmentPublic(BaseModel):
    """
    DTO returns a detailed appointment.
    """
    id: UUID
    patient_id: UUID
    provider_id: UUID
    family_member_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    appointment_type: str
    status: str
    scheduled_at: datetime
    duration_minutes: int
    notes: Optional[str] = None
    recurrence: str
    recurrence_end_date: Optional[datetime] = None
    series_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AppointmentListItem(BaseModel):
    """
    Used for lists
    """
    id: UUID
    provider_id: UUID
    family_member_id: Optional[UUID] = None
    appointment_type: str
    status: str
    scheduled_at: datetime
    duration_minutes: int
    series_id: Optional[str] = None

    class Config:
        from_attributes = True


class AppointmentListPage(BaseModel):
    """
    Page the appointments list (with pagination).
    """
    items: List[AppointmentListItem]
    total: int
    limit: int
    offset: int
    has_next: bool
