"""Unit tests for recurrence expansion."""

from datetime import datetime, timedelta, timezone

import pytest

from app.modules.scheduling.recurrence import (
    default_recurrence_end,
    generate_recurring_dates,
    new_series_id,
)
from app.modules.scheduling.schemas import RecurrencePattern

START = datetime(2026, 3, 3, 10, 0, tzinfo=timezone.utc)


def test_weekly_over_four_weeks_gives_five_dates():
    dates = generate_recurring_dates(RecurrencePattern.WEEKLY, START, START + timedelta(days=28))
    assert len(dates) == 5
    assert dates[0] == START
    assert all(b - a == timedelta(days=7) for a, b in zip(dates, dates[1:]))


def test_biweekly_steps_fourteen_days():
    dates = generate_recurring_dates(RecurrencePattern.BIWEEKLY, START, START + timedelta(days=42))
    assert dates == [START + timedelta(days=14 * i) for i in range(4)]


def test_end_bound_is_inclusive():
    dates = generate_recurring_dates(RecurrencePattern.WEEKLY, START, START + timedelta(days=14))
    assert dates[-1] == START + timedelta(days=14)


def test_monthly_clamps_to_end_of_short_months():
    start = datetime(2026, 1, 31, 10, 0, tzinfo=timezone.utc)
    end = datetime(2026, 4, 30, 23, 59, tzinfo=timezone.utc)
    dates = generate_recurring_dates(RecurrencePattern.MONTHLY, start, end)
    assert [d.date().isoformat() for d in dates] == [
        "2026-01-31",
        "2026-02-28",
        "2026-03-31",
        "2026-04-30",
    ]
    assert all(d.time() == start.time() for d in dates)


def test_monthly_clamps_to_leap_day():
    start = datetime(2028, 1, 31, 9, 0, tzinfo=timezone.utc)
    end = datetime(2028, 3, 1, tzinfo=timezone.utc)
    dates = generate_recurring_dates(RecurrencePattern.MONTHLY, start, end)
    assert [d.day for d in dates] == [31, 29]


def test_none_pattern_is_single_occurrence():
    assert generate_recurring_dates(RecurrencePattern.NONE, START, START + timedelta(days=90)) == [START]


@pytest.mark.parametrize("pattern", [RecurrencePattern.WEEKLY, RecurrencePattern.MONTHLY])
def test_start_after_end_still_keeps_start(pattern):
    assert generate_recurring_dates(pattern, START, START - timedelta(days=1)) == [START]


def test_series_is_capped():
    dates = generate_recurring_dates(RecurrencePattern.WEEKLY, START, START + timedelta(days=365))
    assert len(dates) == 12
    assert len(generate_recurring_dates(RecurrencePattern.WEEKLY, START, START + timedelta(days=365), 3)) == 3


def test_default_end_is_three_months_out():
    assert default_recurrence_end(START) == datetime(2026, 6, 3, 10, 0, tzinfo=timezone.utc)


def test_series_ids_are_opaque_and_unique():
    a, b = new_series_id(), new_series_id()
    assert a.startswith("series_")
    assert a != b


def test_pattern_labels():
    assert RecurrencePattern.NONE.label == "One-time"
    assert RecurrencePattern.BIWEEKLY.label == "Every 2 weeks"
