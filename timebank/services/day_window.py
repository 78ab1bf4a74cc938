from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timebank.services.shift_resolver import ParsedShift

# Fixed business-day alignment in UTC hours. Payroll figures depend on these
# exact values; they are not derived from a timezone database.
BUSINESS_DAY_OFFSET_HOURS = 3
NIGHT_SHIFT_PADDING_HOURS = 4

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, slots=True)
class DayWindow:
    """Inclusive ``[start, end]`` instant range an event must fall in to count for a day."""

    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        return self.start <= to_utc(ts) <= self.end


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utc_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _minutes_of(value: time) -> int:
    return value.hour * 60 + value.minute


def baseline_day_window(day: date) -> DayWindow:
    start = _utc_midnight(day) + timedelta(hours=BUSINESS_DAY_OFFSET_HOURS)
    end = (
        _utc_midnight(day + timedelta(days=1))
        + timedelta(hours=BUSINESS_DAY_OFFSET_HOURS - 1, minutes=59, seconds=59, milliseconds=999)
    )
    return DayWindow(start=start, end=end)


def compute_day_window(day: date, shift: ParsedShift | None) -> DayWindow:
    if shift is None or not shift.crosses_midnight:
        return baseline_day_window(day)

    # Wide padding around overnight shifts keeps early and late punches in the day.
    start = _utc_midnight(day) + timedelta(
        hours=shift.start.hour - NIGHT_SHIFT_PADDING_HOURS,
        minutes=shift.start.minute,
    )
    end = _utc_midnight(day + timedelta(days=1)) + timedelta(
        hours=shift.end.hour + NIGHT_SHIFT_PADDING_HOURS,
        minutes=shift.end.minute,
    )
    return DayWindow(start=start, end=end)


def shift_expected_minutes(start: time, end: time, break_minutes: int) -> int:
    start_minutes = _minutes_of(start)
    end_minutes = _minutes_of(end)
    if end < start:
        end_minutes += MINUTES_PER_DAY
    # Not clamped: a break longer than the span yields a negative target.
    return end_minutes - start_minutes - break_minutes
