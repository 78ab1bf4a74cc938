from __future__ import annotations

from datetime import date

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from timebank.errors import ApiError
from timebank.models import Holiday
from timebank.schemas import HolidayCreate


def list_holidays(
    db: Session,
    *,
    company_id: int,
    year: int | None = None,
) -> list[Holiday]:
    stmt = (
        select(Holiday)
        .where(or_(Holiday.company_id.is_(None), Holiday.company_id == company_id))
        .order_by(Holiday.holiday_date.asc(), Holiday.id.asc())
    )
    if year is not None:
        stmt = stmt.where(
            Holiday.holiday_date >= date(year, 1, 1),
            Holiday.holiday_date <= date(year, 12, 31),
        )
    return list(db.scalars(stmt).all())


def create_holiday(db: Session, *, company_id: int, payload: HolidayCreate) -> Holiday:
    existing = db.scalar(
        select(Holiday).where(
            Holiday.holiday_date == payload.date,
            Holiday.company_id == company_id,
        )
    )
    if existing is not None:
        raise ApiError.conflict(
            "HOLIDAY_EXISTS",
            f"A holiday is already registered on {payload.date.isoformat()}.",
        )

    holiday = Holiday(holiday_date=payload.date, name=payload.name.strip(), company_id=company_id)
    db.add(holiday)
    db.commit()
    db.refresh(holiday)
    return holiday


def delete_holiday(db: Session, *, company_id: int, holiday_id: int) -> None:
    holiday = db.get(Holiday, holiday_id)
    if holiday is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Holiday not found")
    # Global holidays are seeded data, not company-owned.
    if holiday.company_id != company_id:
        raise ApiError.forbidden("Holiday belongs to another company.")

    db.delete(holiday)
    db.commit()
