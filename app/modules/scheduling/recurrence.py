"""Expansion of repeat patterns into concrete occurrence times."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import List

from dateutil.relativedelta import relativedelta

from app.modules.scheduling.schemas import RecurrencePattern

MAX_OCCURRENCES = 12
DEFAULT_HORIZON_MONTHS = 3

_FIXED_STEPS = {
    RecurrencePattern.WEEKLY: timedelta(days=7),
    RecurrencePattern.BIWEEKLY: timedelta(days=14),
}


def _nth_occurrence(pattern: RecurrencePattern, start: datetime, n: int) -> datetime:
    if pattern is RecurrencePattern.MONTHLY:
        # Offset from the original start so Jan 31 -> Feb 28 -> Mar 31, no drift.
        return start + relativedelta(months=n)
    return start + _FIXED_STEPS[pattern] * n


def generate_recurring_dates(
    pattern: RecurrencePattern,
    start: datetime,
    end: datetime,
    max_occurrences: int = MAX_OCCURRENCES,
) -> List[datetime]:
    """
    Occurrences of `pattern` from `start` up to and including `end`.

    The originating occurrence is always returned, even when start > end.
    The series is capped at `max_occurrences`.
    """
    pattern = RecurrencePattern(pattern)
    if pattern is RecurrencePattern.NONE:
        return [start]

    dates: List[datetime] = [start]
    n = 1
    while len(dates) < max_occurrences:
        nxt = _nth_occurrence(pattern, start, n)
        if nxt > end:
            break
        dates.append(nxt)
        n += 1
    return dates


def default_recurrence_end(start: datetime, months: int = DEFAULT_HORIZON_MONTHS) -> datetime:
    """End bound used when the caller does not supply one."""
    return start + relativedelta(months=months)


def new_series_id() -> str:
    """Opaque identifier shared by every row of one recurring series."""
    return f"series_{uuid.uuid4().hex}"
