# app/modules/appointments/results.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class RejectionKind(str, Enum):
    NOT_FOUND = "not_found"
    POLICY_VIOLATION = "policy_violation"
    CONFLICT = "conflict"
    OWNERSHIP = "ownership"


class BookingRejection(BaseModel):
    """
    Expected business failure, returned (not raised) by the service layer so
    the router can render it directly.
    """

    kind: RejectionKind
    code: str
    message: str
    conflict_date: Optional[datetime] = None


def not_found(code: str, message: str) -> BookingRejection:
    return BookingRejection(kind=RejectionKind.NOT_FOUND, code=code, message=message)


def policy_violation(code: str, message: str) -> BookingRejection:
    return BookingRejection(kind=RejectionKind.POLICY_VIOLATION, code=code, message=message)


def conflict(message: str, when: Optional[datetime] = None) -> BookingRejection:
    return BookingRejection(
        kind=RejectionKind.CONFLICT,
        code="slot_conflict",
        message=message,
        conflict_date=when,
    )


def forbidden(code: str = "not_owner", message: str = "You cannot manage this booking") -> BookingRejection:
    return BookingRejection(kind=RejectionKind.OWNERSHIP, code=code, message=message)


class BookingCreated(BaseModel):
    booking_ids: List[UUID]
    series_id: Optional[str] = None


class SeriesCancelled(BaseModel):
    series_id: str
    cancelled_count: int
