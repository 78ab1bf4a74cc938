from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from timebank.errors import ApiError
from timebank.models import Employee, EmployeeShift, Justification, TimeEvent
from timebank.schemas import (
    DayRecordRead,
    EmployeeReportRead,
    JustificationSummary,
    ReportMetadata,
    ReportResponse,
    TimeEventRead,
)
from timebank.services.day_window import baseline_day_window, compute_day_window, to_utc
from timebank.services.events import events_in_window, list_events_for_users
from timebank.services.overrides import apply_overrides, load_approved_justifications, load_holiday_dates
from timebank.services.shift_resolver import ShiftResolutionError, resolve_day_shift
from timebank.services.worked_time import accumulate_worked_minutes
from timebank.settings import get_settings

logger = logging.getLogger("timebank.reports")

END_OF_DAY = time(23, 59, 59, 999000)

FLAG_OPEN_INTERVAL = "OPEN_INTERVAL"
FLAG_MISSING_PUNCH = "MISSING_PUNCH"
FLAG_NEGATIVE_EXPECTED = "NEGATIVE_EXPECTED"


class ReportCancelledError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class ReportFilters:
    start: datetime
    end: datetime
    user_id: int | None = None
    shift_id: int | None = None
    only_issues: bool = False

    @property
    def start_day(self) -> date:
        return to_utc(self.start).date()

    @property
    def end_day(self) -> date:
        return to_utc(self.end).date()


@dataclass(frozen=True, slots=True)
class ComputedDay:
    record: DayRecordRead
    visible: bool


def _parse_instant(raw: str, *, field_name: str) -> tuple[datetime, bool]:
    value = raw.strip()
    if len(value) == 10:
        try:
            day = date.fromisoformat(value)
        except ValueError as exc:
            raise ApiError.invalid_date(field_name) from exc
        return datetime.combine(day, time.min, tzinfo=timezone.utc), True

    if value[-1:] in {"Z", "z"}:
        value = f"{value[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ApiError.invalid_date(field_name) from exc
    return to_utc(parsed), False


def resolve_report_range(
    start_raw: str | None,
    end_raw: str | None,
    *,
    now: datetime,
    default_range_days: int | None = None,
) -> tuple[datetime, datetime]:
    """Turn raw query values into an inclusive UTC instant range.

    A date-only ``end_raw`` is widened to 23:59:59.999 of that day so the
    whole final day is included. Inverted ranges are rejected instead of
    producing an empty report.
    """
    now_utc = to_utc(now)
    if default_range_days is None:
        default_range_days = get_settings().report_default_range_days

    if start_raw:
        start, _ = _parse_instant(start_raw, field_name="startDate")
    else:
        start = now_utc - timedelta(days=default_range_days)

    if end_raw:
        end, date_only = _parse_instant(end_raw, field_name="endDate")
        if date_only:
            end = datetime.combine(end.date(), END_OF_DAY, tzinfo=timezone.utc)
    else:
        end = now_utc

    if end < start:
        raise ApiError.invalid_date_range()
    return start, end


def iter_days(start_day: date, end_day: date) -> Iterator[date]:
    cursor = start_day
    while cursor <= end_day:
        yield cursor
        cursor += timedelta(days=1)


def load_employee_page(
    db: Session,
    *,
    company_id: int,
    user_id: int | None,
    shift_id: int | None,
    page: int,
    limit: int,
) -> tuple[list[Employee], int]:
    stmt = select(Employee).where(Employee.company_id == company_id)
    if user_id is not None:
        stmt = stmt.where(Employee.id == user_id)
    if shift_id is not None:
        assigned_ids = select(EmployeeShift.employee_id).where(EmployeeShift.shift_rule_id == shift_id)
        stmt = stmt.where(or_(Employee.id.in_(assigned_ids), Employee.shift_rule_id == shift_id))

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    # full_name is not unique; id keeps page boundaries stable.
    page_stmt = (
        stmt.options(
            selectinload(Employee.shift_assignments).selectinload(EmployeeShift.shift_rule),
            selectinload(Employee.shift_rule),
        )
        .order_by(Employee.full_name.asc(), Employee.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    employees = list(db.scalars(page_stmt).all())
    return employees, int(total)


def _justification_summary(justification: Justification | None) -> JustificationSummary | None:
    if justification is None:
        return None
    return JustificationSummary(type=justification.type, description=justification.description)


def compute_day(
    employee: Employee,
    day: date,
    *,
    events: Sequence[TimeEvent],
    holiday_dates: set[date],
    justifications: Sequence[Justification],
    now: datetime,
) -> ComputedDay:
    flags: list[str] = []
    error: str | None = None
    shift_source: str | None = None

    try:
        day_shift = resolve_day_shift(employee, day)
    except ShiftResolutionError as exc:
        logger.warning(
            "report_shift_unresolved",
            extra={
                "employee_id": employee.id,
                "day": day.isoformat(),
                "shift_rule_id": exc.shift_rule_id,
                "error_code": exc.code,
            },
        )
        error = exc.code
        flags.append(exc.code)
        window = baseline_day_window(day)
        expected = 0
    else:
        shift_source = day_shift.source.value
        window = compute_day_window(day, day_shift.shift)
        expected = day_shift.expected_minutes

    override = apply_overrides(day, holiday_dates=holiday_dates, justifications=justifications)
    if override.expected_override is not None:
        expected = override.expected_override
    if expected < 0:
        flags.append(FLAG_NEGATIVE_EXPECTED)
        logger.warning(
            "report_negative_expected_minutes",
            extra={"employee_id": employee.id, "day": day.isoformat(), "expected_minutes": expected},
        )

    day_events = events_in_window(events, window)
    worked = accumulate_worked_minutes(day_events, window_end=window.end, now=now)

    is_future = day > to_utc(now).date()
    if worked.has_open_interval:
        flags.append(FLAG_OPEN_INTERVAL)
    if not day_events and expected > 0 and not is_future:
        flags.append(FLAG_MISSING_PUNCH)

    record = DayRecordRead(
        date=day,
        worked_minutes=math.floor(worked.minutes),
        expected_minutes=expected,
        balance_minutes=math.floor(worked.minutes - expected),
        events=[TimeEventRead.model_validate(event) for event in day_events],
        is_holiday=override.is_holiday,
        justification=_justification_summary(override.justification),
        shift_source=shift_source,
        flags=flags,
        error=error,
    )
    visible = (
        bool(day_events)
        or (expected > 0 and not is_future)
        or override.is_holiday
        or override.justification is not None
        or error is not None
    )
    return ComputedDay(record=record, visible=visible)


def build_employee_report(
    employee: Employee,
    *,
    days: Sequence[date],
    events: Sequence[TimeEvent],
    holiday_dates: set[date],
    justifications: Sequence[Justification],
    now: datetime,
    only_issues: bool = False,
) -> EmployeeReportRead:
    """Compute every day for one employee and fold them into a report row.

    ``totalBalanceMinutes`` sums all computed days (floored per day), before
    hidden days are dropped and before the only-issues trim.
    """
    total_balance = 0
    row_error: str | None = None
    visible_days: list[DayRecordRead] = []

    for day in days:
        computed = compute_day(
            employee,
            day,
            events=events,
            holiday_dates=holiday_dates,
            justifications=justifications,
            now=now,
        )
        total_balance += computed.record.balance_minutes
        if computed.record.error is not None and row_error is None:
            row_error = computed.record.error
        if computed.visible:
            visible_days.append(computed.record)

    if only_issues:
        visible_days = [record for record in visible_days if record.balance_minutes < 0]

    return EmployeeReportRead(
        id=employee.id,
        full_name=employee.full_name,
        role=employee.role,
        report=visible_days,
        total_balance_minutes=total_balance,
        status="error" if row_error else "ok",
        error=row_error,
    )


def _row_has_issue(row: EmployeeReportRead) -> bool:
    return any(record.balance_minutes < 0 for record in row.report)


def generate_report(
    db: Session,
    *,
    company_id: int,
    filters: ReportFilters,
    page: int,
    limit: int,
    now: datetime,
    is_cancelled: Callable[[], bool] | None = None,
) -> ReportResponse:
    employees, total = load_employee_page(
        db,
        company_id=company_id,
        user_id=filters.user_id,
        shift_id=filters.shift_id,
        page=page,
        limit=limit,
    )
    user_ids = [employee.id for employee in employees]
    holiday_dates = load_holiday_dates(
        db,
        company_id=company_id,
        start_day=filters.start_day,
        end_day=filters.end_day,
    )
    justifications_by_user = load_approved_justifications(
        db,
        user_ids=user_ids,
        start_day=filters.start_day,
        end_day=filters.end_day,
    )
    events_by_user = list_events_for_users(db, user_ids=user_ids, start=filters.start, end=filters.end)
    days = list(iter_days(filters.start_day, filters.end_day))

    rows: list[EmployeeReportRead] = []
    for employee in employees:
        if is_cancelled is not None and is_cancelled():
            logger.info(
                "report_cancelled",
                extra={"company_id": company_id, "completed_rows": len(rows), "page": page},
            )
            raise ReportCancelledError("Report generation was cancelled by the caller")

        row = build_employee_report(
            employee,
            days=days,
            events=events_by_user.get(employee.id, []),
            holiday_dates=holiday_dates,
            justifications=justifications_by_user.get(employee.id, []),
            now=now,
            only_issues=filters.only_issues,
        )
        if row.error is not None:
            logger.warning(
                "report_row_failed",
                extra={"company_id": company_id, "employee_id": employee.id, "error_code": row.error},
            )
        if filters.only_issues and not _row_has_issue(row):
            continue
        rows.append(row)

    logger.info(
        "report_generated",
        extra={
            "company_id": company_id,
            "page": page,
            "limit": limit,
            "employee_total": total,
            "row_count": len(rows),
            "day_count": len(days),
            "only_issues": filters.only_issues,
        },
    )
    return ReportResponse(
        data=rows,
        metadata=ReportMetadata(
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit) if limit > 0 else 0,
        ),
    )
