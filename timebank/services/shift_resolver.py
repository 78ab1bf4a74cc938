from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, time

from timebank.models import Employee, ShiftRule
from timebank.services.day_window import shift_expected_minutes

WEEKDAY_NAMES: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

POLICY_WEEKDAY_MINUTES = 480
POLICY_SATURDAY_MINUTES = 240
POLICY_SUNDAY_MINUTES = 0


class ShiftSource(str, enum.Enum):
    ASSIGNMENT = "ASSIGNMENT"
    LEGACY = "LEGACY"
    POLICY = "POLICY"
    UNSCHEDULED = "UNSCHEDULED"


class ShiftResolutionError(Exception):
    code = "SHIFT_RESOLUTION_FAILED"

    def __init__(self, message: str, *, shift_rule_id: int | None = None):
        super().__init__(message)
        self.shift_rule_id = shift_rule_id


class InvalidShiftError(ShiftResolutionError):
    code = "INVALID_SHIFT"


class ShiftLookupError(ShiftResolutionError):
    code = "SHIFT_NOT_FOUND"


@dataclass(frozen=True, slots=True)
class ParsedShift:
    shift_rule_id: int | None
    name: str
    start: time
    end: time
    break_minutes: int

    @property
    def crosses_midnight(self) -> bool:
        return self.end < self.start

    @property
    def expected_minutes(self) -> int:
        return shift_expected_minutes(self.start, self.end, self.break_minutes)


@dataclass(frozen=True, slots=True)
class DayShift:
    source: ShiftSource
    shift: ParsedShift | None
    is_workday: bool
    expected_minutes: int


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def parse_hhmm(value: object) -> time:
    if not isinstance(value, str):
        raise ValueError(f"Expected HH:MM string, got {type(value).__name__}")
    parts = value.strip().split(":")
    # Postgres TIME columns round-trip as HH:MM:SS; seconds are ignored.
    if len(parts) not in (2, 3):
        raise ValueError(f"Invalid time value: {value!r}")
    hour = int(parts[0])
    minute = int(parts[1])
    if hour < 0 or hour > 23 or minute < 0 or minute > 59:
        raise ValueError(f"Invalid time value: {value!r}")
    return time(hour=hour, minute=minute)


def parse_shift_rule(rule: ShiftRule) -> ParsedShift:
    try:
        start = parse_hhmm(rule.start_time)
        end = parse_hhmm(rule.end_time)
    except ValueError as exc:
        raise InvalidShiftError(
            f"Shift rule {rule.id} has malformed start/end time",
            shift_rule_id=rule.id,
        ) from exc
    return ParsedShift(
        shift_rule_id=rule.id,
        name=rule.name,
        start=start,
        end=end,
        break_minutes=int(rule.break_duration_minutes or 0),
    )


def rule_covers_weekday(rule: ShiftRule, day: date) -> bool:
    return weekday_name(day) in (rule.work_days or [])


def policy_expected_minutes(day: date) -> int:
    weekday = day.weekday()
    if weekday == 6:
        return POLICY_SUNDAY_MINUTES
    if weekday == 5:
        return POLICY_SATURDAY_MINUTES
    return POLICY_WEEKDAY_MINUTES


def ordered_assigned_rules(employee: Employee) -> list[ShiftRule]:
    """Assigned shift rules in configuration order (sort_order, then id).

    Ordering is made explicit here instead of trusting query result order.
    Raises ShiftLookupError when an assignment points at a missing rule.
    """
    assignments = sorted(
        employee.shift_assignments or [],
        key=lambda item: (item.sort_order or 0, item.id or 0),
    )
    rules: list[ShiftRule] = []
    for assignment in assignments:
        if assignment.shift_rule is None:
            raise ShiftLookupError(
                f"Assignment {assignment.id} references a missing shift rule",
                shift_rule_id=assignment.shift_rule_id,
            )
        rules.append(assignment.shift_rule)
    return rules


def resolve_day_shift(employee: Employee, day: date) -> DayShift:
    """Pick the shift that governs ``day`` for ``employee``.

    First match in assignment order wins when several assigned rules cover
    the weekday. Callers relying on a specific rule must order assignments.
    """
    assigned_rules = ordered_assigned_rules(employee)
    if assigned_rules:
        for rule in assigned_rules:
            if rule_covers_weekday(rule, day):
                parsed = parse_shift_rule(rule)
                return DayShift(
                    source=ShiftSource.ASSIGNMENT,
                    shift=parsed,
                    is_workday=True,
                    expected_minutes=parsed.expected_minutes,
                )
        # No assigned rule covers this weekday: the default policy applies.
        expected = policy_expected_minutes(day)
        return DayShift(
            source=ShiftSource.UNSCHEDULED,
            shift=None,
            is_workday=expected > 0,
            expected_minutes=expected,
        )

    legacy_rule = employee.shift_rule
    if legacy_rule is not None:
        if not rule_covers_weekday(legacy_rule, day):
            return DayShift(source=ShiftSource.LEGACY, shift=None, is_workday=False, expected_minutes=0)
        parsed = parse_shift_rule(legacy_rule)
        return DayShift(
            source=ShiftSource.LEGACY,
            shift=parsed,
            is_workday=True,
            expected_minutes=parsed.expected_minutes,
        )

    expected = policy_expected_minutes(day)
    return DayShift(source=ShiftSource.POLICY, shift=None, is_workday=expected > 0, expected_minutes=expected)
