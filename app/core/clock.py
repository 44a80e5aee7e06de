# app/core/clock.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone


class Clock:
    """
    Source of "now" for lead-time and cancellation-window checks.
    Injected into the service layer so tests can pin time.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a given instant (tests, replays)."""

    def __init__(self, at: datetime):
        if at.tzinfo is None:
            raise ValueError("FixedClock needs an aware datetime")
        self._at = at

    def now(self) -> datetime:
        return self._at

    def advance(self, **delta) -> None:
        self._at = self._at + timedelta(**delta)


system_clock = Clock()
