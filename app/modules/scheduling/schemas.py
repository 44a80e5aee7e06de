# app/modules/scheduling/schemas.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")  # index == date.weekday()


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class RecurrencePattern(str, Enum):
    NONE = "NONE"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"

    @property
    def label(self) -> str:
        return _RECURRENCE_LABELS[self]


_RECURRENCE_LABELS = {
    RecurrencePattern.NONE: "One-time",
    RecurrencePattern.WEEKLY: "Weekly",
    RecurrencePattern.BIWEEKLY: "Every 2 weeks",
    RecurrencePattern.MONTHLY: "Monthly",
}


class OperatingProfile(BaseModel):
    """Provider opening hours; times are wall-clock in `timezone`."""

    opening_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="HH:MM")
    closing_time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="HH:MM")
    operating_days: List[str] = Field(default_factory=list, description="Mon..Sun tokens")
    timezone: str = Field(default="UTC", description="IANA timezone e.g. America/New_York")

    @field_validator("operating_days")
    @classmethod
    def _known_days(cls, v: List[str]) -> List[str]:
        unknown = [d for d in v if d not in DAY_NAMES]
        if unknown:
            raise ValueError(f"unknown weekday tokens: {', '.join(unknown)}")
        return v


class ExistingBooking(BaseModel):
    """A booking as seen by the calculator."""

    scheduled_at: datetime
    duration_minutes: Optional[int] = None
    status: BookingStatus

    class Config:
        from_attributes = True


class TimeSlot(BaseModel):
    time: str  # "09:00", provider local time
    start_time: datetime
    available: bool


class DayAvailability(BaseModel):
    date: date
    day_name: str
    is_open: bool
    slots: List[TimeSlot] = Field(default_factory=list)

    @property
    def available_count(self) -> int:
        return sum(1 for s in self.slots if s.available)
