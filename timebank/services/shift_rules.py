from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from timebank.errors import ApiError
from timebank.models import ShiftRule
from timebank.schemas import ShiftRuleCreate
from timebank.services.shift_resolver import InvalidShiftError, parse_shift_rule


def list_shift_rules(db: Session, *, company_id: int) -> list[ShiftRule]:
    stmt = (
        select(ShiftRule)
        .where(or_(ShiftRule.company_id.is_(None), ShiftRule.company_id == company_id))
        .order_by(ShiftRule.name.asc(), ShiftRule.id.asc())
    )
    return list(db.scalars(stmt).all())


def create_shift_rule(db: Session, *, company_id: int, payload: ShiftRuleCreate) -> ShiftRule:
    rule = ShiftRule(
        company_id=company_id,
        name=payload.name.strip(),
        start_time=payload.start_time,
        end_time=payload.end_time,
        break_duration_minutes=payload.break_duration_minutes,
        work_days=list(payload.work_days),
        daily_hours=payload.daily_hours,
    )
    # Reject rows the report engine would later mark INVALID_SHIFT.
    try:
        parse_shift_rule(rule)
    except InvalidShiftError as exc:
        raise ApiError.validation(str(exc), code="INVALID_SHIFT") from exc

    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def delete_shift_rule(db: Session, *, company_id: int, shift_rule_id: int) -> None:
    rule = db.get(ShiftRule, shift_rule_id)
    if rule is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Shift rule not found")
    if rule.company_id != company_id:
        raise ApiError.forbidden("Shift rule belongs to another company.")

    db.delete(rule)
    db.commit()
