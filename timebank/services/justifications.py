from __future__ import annotations

from datetime import date, datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from timebank.errors import ApiError
from timebank.models import Employee, Justification, JustificationStatus
from timebank.schemas import JustificationCreateRequest


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def list_justifications(
    db: Session,
    *,
    company_id: int,
    user_id: int | None = None,
    status_filter: JustificationStatus | None = None,
    start_day: date | None = None,
    end_day: date | None = None,
) -> list[Justification]:
    stmt = (
        select(Justification)
        .where(Justification.company_id == company_id)
        .order_by(Justification.start_date.desc(), Justification.id.desc())
    )
    if user_id is not None:
        stmt = stmt.where(Justification.user_id == user_id)
    if status_filter is not None:
        stmt = stmt.where(Justification.status == status_filter)
    if end_day is not None:
        stmt = stmt.where(Justification.start_date <= end_day)
    if start_day is not None:
        stmt = stmt.where(func.coalesce(Justification.end_date, Justification.start_date) >= start_day)
    return list(db.scalars(stmt).all())


def create_approved_justification(
    db: Session,
    *,
    company_id: int,
    manager_id: int,
    payload: JustificationCreateRequest,
) -> Justification:
    """Record a justification on behalf of an employee.

    Manager-entered justifications skip the review queue and count toward
    reports immediately.
    """
    employee = db.get(Employee, payload.user_id)
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    if employee.company_id != company_id:
        raise ApiError.forbidden("Employee belongs to another company.")

    justification = Justification(
        user_id=payload.user_id,
        company_id=company_id,
        type=payload.type.strip(),
        description=payload.description,
        start_date=payload.start_date,
        end_date=payload.end_date,
        status=JustificationStatus.APPROVED,
        approved_by=manager_id,
        approved_at=_utcnow(),
    )
    db.add(justification)
    db.commit()
    db.refresh(justification)
    return justification


def review_justification(
    db: Session,
    *,
    company_id: int,
    manager_id: int,
    justification_id: int,
    decision: JustificationStatus,
) -> Justification:
    if decision == JustificationStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="status must be approved or rejected",
        )

    justification = db.get(Justification, justification_id)
    if justification is None or justification.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Justification not found")
    if justification.status != JustificationStatus.PENDING:
        raise ApiError.conflict("JUSTIFICATION_ALREADY_REVIEWED", "Only pending justifications can be reviewed.")

    justification.status = decision
    justification.approved_by = manager_id
    justification.approved_at = _utcnow()
    db.commit()
    db.refresh(justification)
    return justification
