"""Deterministic calculator for a provider's bookable time slots."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo

from app.modules.scheduling.schemas import (
    ACTIVE_STATUSES,
    DAY_NAMES,
    DayAvailability,
    ExistingBooking,
    OperatingProfile,
    TimeSlot,
)

DEFAULT_BOOKING_MINUTES = 30


def _parse_time(s: str) -> tuple[int, int]:
    """Parse HH:MM to (hour, minute)."""
    parts = s.split(":")
    return int(parts[0]), int(parts[1])


def _blocking_windows(
    bookings: Iterable[ExistingBooking],
) -> list[tuple[datetime, datetime]]:
    windows = []
    for b in bookings:
        if b.status not in ACTIVE_STATUSES:
            continue
        minutes = b.duration_minutes or DEFAULT_BOOKING_MINUTES
        windows.append((b.scheduled_at, b.scheduled_at + timedelta(minutes=minutes)))
    return windows


def _overlaps(
    slot_start: datetime,
    slot_end: datetime,
    windows: list[tuple[datetime, datetime]],
) -> bool:
    # Half-open intervals: back-to-back bookings do not collide.
    return any(slot_start < end and slot_end > start for start, end in windows)


def generate_available_slots(
    profile: OperatingProfile,
    existing: Iterable[ExistingBooking],
    *,
    now: datetime,
    days_ahead: int = 14,
    slot_minutes: int = 30,
    lead_time: timedelta = timedelta(hours=24),
    start_date: Optional[date] = None,
) -> List[DayAvailability]:
    """
    Build a day-by-day calendar of candidate start times.

    One DayAvailability per day for `days_ahead` days beginning at
    `start_date` (default: today in the provider's timezone). Closed days
    carry no slots. A slot is unavailable when it starts before
    `now + lead_time` or overlaps an active (PENDING/CONFIRMED) booking.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")

    tz = ZoneInfo(profile.timezone)
    first_day = start_date or now.astimezone(tz).date()
    earliest = now + lead_time
    windows = _blocking_windows(existing)
    open_days = set(profile.operating_days)

    oh, om = _parse_time(profile.opening_time)
    ch, cm = _parse_time(profile.closing_time)
    step = timedelta(minutes=slot_minutes)

    days: List[DayAvailability] = []
    for offset in range(max(days_ahead, 0)):
        current = first_day + timedelta(days=offset)
        day_name = DAY_NAMES[current.weekday()]
        day = DayAvailability(date=current, day_name=day_name, is_open=day_name in open_days)

        if day.is_open:
            day_start = datetime(current.year, current.month, current.day, oh, om, tzinfo=tz)
            day_end = datetime(current.year, current.month, current.day, ch, cm, tzinfo=tz)

            slot_start = day_start
            while slot_start + step <= day_end:
                slot_end = slot_start + step
                available = slot_start >= earliest and not _overlaps(slot_start, slot_end, windows)
                day.slots.append(
                    TimeSlot(
                        time=slot_start.strftime("%H:%M"),
                        start_time=slot_start,
                        available=available,
                    )
                )
                slot_start = slot_end

        days.append(day)

    return days


def slots_for_date(days: Iterable[DayAvailability], on: date) -> List[TimeSlot]:
    """Slots of a given calendar day, empty when the day is not in the calendar."""
    for day in days:
        if day.date == on:
            return day.slots
    return []


def is_slot_available(days: Iterable[DayAvailability], when: datetime) -> bool:
    """True when `when` is exactly one of the calendar's available slot starts."""
    for day in days:
        for slot in day.slots:
            if slot.start_time == when:
                return slot.available
    return False
