from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from timebank.models import Holiday, Justification, JustificationStatus


@dataclass(frozen=True, slots=True)
class DayOverride:
    expected_override: int | None
    is_holiday: bool
    justification: Justification | None

    @property
    def applies(self) -> bool:
        return self.expected_override is not None


NO_OVERRIDE = DayOverride(expected_override=None, is_holiday=False, justification=None)


def load_holiday_dates(
    db: Session,
    *,
    company_id: int,
    start_day: date,
    end_day: date,
) -> set[date]:
    rows = db.scalars(
        select(Holiday.holiday_date).where(
            Holiday.holiday_date >= start_day,
            Holiday.holiday_date <= end_day,
            or_(Holiday.company_id.is_(None), Holiday.company_id == company_id),
        )
    ).all()
    return set(rows)


def load_approved_justifications(
    db: Session,
    *,
    user_ids: Sequence[int],
    start_day: date,
    end_day: date,
) -> dict[int, list[Justification]]:
    grouped: dict[int, list[Justification]] = {user_id: [] for user_id in user_ids}
    if not user_ids:
        return grouped

    rows = db.scalars(
        select(Justification)
        .where(
            Justification.user_id.in_(list(user_ids)),
            Justification.status == JustificationStatus.APPROVED,
            Justification.start_date <= end_day,
            func.coalesce(Justification.end_date, Justification.start_date) >= start_day,
        )
        .order_by(Justification.start_date.asc(), Justification.id.asc())
    ).all()
    for justification in rows:
        grouped.setdefault(justification.user_id, []).append(justification)
    return grouped


def justification_end_date(justification: Justification) -> date:
    return justification.end_date or justification.start_date


def justification_covers(justification: Justification, day: date) -> bool:
    if justification.status != JustificationStatus.APPROVED:
        return False
    return justification.start_date <= day <= justification_end_date(justification)


def apply_overrides(
    day: date,
    *,
    holiday_dates: set[date],
    justifications: Iterable[Justification],
) -> DayOverride:
    """Holiday first, then the first approved justification covering the day.

    Both force expected minutes to zero; when both apply only the holiday
    flag is reported.
    """
    if day in holiday_dates:
        return DayOverride(expected_override=0, is_holiday=True, justification=None)

    for justification in justifications:
        if justification_covers(justification, day):
            return DayOverride(expected_override=0, is_holiday=False, justification=justification)

    return NO_OVERRIDE
