from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from timebank.audit import log_audit
from timebank.db import get_db
from timebank.models import JustificationStatus
from timebank.schemas import (
    HolidayCreate,
    HolidayRead,
    JustificationCreateRequest,
    JustificationRead,
    JustificationReviewRequest,
    ShiftRuleCreate,
    ShiftRuleRead,
    WeeklyHoursDay,
)
from timebank.security import AuthContext, require_manager, require_user
from timebank.services.holidays import create_holiday, delete_holiday, list_holidays
from timebank.services.justifications import (
    create_approved_justification,
    list_justifications,
    review_justification,
)
from timebank.services.shift_rules import create_shift_rule, delete_shift_rule, list_shift_rules
from timebank.services.weekly_hours import calculate_weekly_hours

router = APIRouter(tags=["manager"])


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get("/api/shifts", response_model=list[ShiftRuleRead])
def list_shifts_endpoint(
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> list[ShiftRuleRead]:
    return list_shift_rules(db, company_id=auth.company_id)


@router.post("/api/shifts", response_model=ShiftRuleRead, status_code=status.HTTP_201_CREATED)
def create_shift_endpoint(
    payload: ShiftRuleCreate,
    request: Request,
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> ShiftRuleRead:
    rule = create_shift_rule(db, company_id=auth.company_id, payload=payload)
    log_audit(
        db,
        company_id=auth.company_id,
        actor_id=str(auth.user_id),
        action="SHIFT_RULE_CREATED",
        success=True,
        entity_type="shift_rule",
        entity_id=str(rule.id),
        details={"name": rule.name, "start_time": rule.start_time, "end_time": rule.end_time},
        request_id=_request_id(request),
    )
    return rule


@router.delete("/api/shifts/{shift_rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_shift_endpoint(
    shift_rule_id: int,
    request: Request,
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> None:
    delete_shift_rule(db, company_id=auth.company_id, shift_rule_id=shift_rule_id)
    log_audit(
        db,
        company_id=auth.company_id,
        actor_id=str(auth.user_id),
        action="SHIFT_RULE_DELETED",
        success=True,
        entity_type="shift_rule",
        entity_id=str(shift_rule_id),
        request_id=_request_id(request),
    )


@router.get("/api/setup/holidays", response_model=list[HolidayRead])
def list_holidays_endpoint(
    year: int | None = Query(default=None, ge=1970),
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> list[HolidayRead]:
    return list_holidays(db, company_id=auth.company_id, year=year)


@router.post("/api/setup/holidays", response_model=HolidayRead, status_code=status.HTTP_201_CREATED)
def create_holiday_endpoint(
    payload: HolidayCreate,
    request: Request,
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> HolidayRead:
    holiday = create_holiday(db, company_id=auth.company_id, payload=payload)
    log_audit(
        db,
        company_id=auth.company_id,
        actor_id=str(auth.user_id),
        action="HOLIDAY_CREATED",
        success=True,
        entity_type="holiday",
        entity_id=str(holiday.id),
        details={"date": holiday.holiday_date.isoformat(), "name": holiday.name},
        request_id=_request_id(request),
    )
    return holiday


@router.delete("/api/setup/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holiday_endpoint(
    holiday_id: int,
    request: Request,
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> None:
    delete_holiday(db, company_id=auth.company_id, holiday_id=holiday_id)
    log_audit(
        db,
        company_id=auth.company_id,
        actor_id=str(auth.user_id),
        action="HOLIDAY_DELETED",
        success=True,
        entity_type="holiday",
        entity_id=str(holiday_id),
        request_id=_request_id(request),
    )


@router.get("/api/manager/justifications", response_model=list[JustificationRead])
def list_justifications_endpoint(
    user_id: int | None = Query(default=None, alias="userId", ge=1),
    status_filter: JustificationStatus | None = Query(default=None, alias="status"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> list[JustificationRead]:
    return list_justifications(
        db,
        company_id=auth.company_id,
        user_id=user_id,
        status_filter=status_filter,
        start_day=start_date,
        end_day=end_date,
    )


@router.post(
    "/api/manager/justifications",
    response_model=JustificationRead,
    status_code=status.HTTP_201_CREATED,
)
def create_justification_endpoint(
    payload: JustificationCreateRequest,
    request: Request,
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> JustificationRead:
    justification = create_approved_justification(
        db,
        company_id=auth.company_id,
        manager_id=auth.user_id,
        payload=payload,
    )
    log_audit(
        db,
        company_id=auth.company_id,
        actor_id=str(auth.user_id),
        action="JUSTIFICATION_CREATED",
        success=True,
        entity_type="justification",
        entity_id=str(justification.id),
        details={"user_id": justification.user_id, "type": justification.type},
        request_id=_request_id(request),
    )
    return justification


@router.patch("/api/manager/justifications/{justification_id}", response_model=JustificationRead)
def review_justification_endpoint(
    justification_id: int,
    payload: JustificationReviewRequest,
    request: Request,
    auth: AuthContext = Depends(require_manager),
    db: Session = Depends(get_db),
) -> JustificationRead:
    justification = review_justification(
        db,
        company_id=auth.company_id,
        manager_id=auth.user_id,
        justification_id=justification_id,
        decision=JustificationStatus(payload.status),
    )
    log_audit(
        db,
        company_id=auth.company_id,
        actor_id=str(auth.user_id),
        action="JUSTIFICATION_REVIEWED",
        success=True,
        entity_type="justification",
        entity_id=str(justification.id),
        details={"status": justification.status.value},
        request_id=_request_id(request),
    )
    return justification


@router.get("/api/dashboard/weekly-hours", response_model=list[WeeklyHoursDay])
def weekly_hours_endpoint(
    user_id: int | None = Query(default=None, alias="userId", ge=1),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
) -> list[WeeklyHoursDay]:
    if not auth.is_manager:
        user_id = auth.user_id
    return calculate_weekly_hours(
        db,
        company_id=auth.company_id,
        now=datetime.now(timezone.utc),
        user_id=user_id,
    )
