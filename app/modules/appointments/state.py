# app/modules/appointments/state.py
from __future__ import annotations

from app.modules.scheduling.schemas import BookingStatus

S = BookingStatus

# Every legal status change. PENDING -> PENDING / CONFIRMED -> PENDING is a reschedule.
TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED, S.NO_SHOW, S.PENDING}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW, S.PENDING}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}


def can_transition(current: BookingStatus | str, target: BookingStatus | str) -> bool:
    return BookingStatus(target) in TRANSITIONS[BookingStatus(current)]


def is_terminal(status: BookingStatus | str) -> bool:
    return not TRANSITIONS[BookingStatus(status)]
