import asyncio
import logging
import threading
from contextlib import suppress
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from timebank.db import get_db
from timebank.errors import ApiError
from timebank.schemas import ReportResponse
from timebank.security import AuthContext, require_user
from timebank.services.reports import (
    ReportCancelledError,
    ReportFilters,
    generate_report,
    resolve_report_range,
)
from timebank.settings import get_settings

router = APIRouter(tags=["reports"])
settings = get_settings()
logger = logging.getLogger("timebank.reports")


def get_report_now() -> datetime:
    return datetime.now(timezone.utc)


async def _watch_disconnect(request: Request, cancelled: threading.Event, poll_seconds: float) -> None:
    while not cancelled.is_set():
        if await request.is_disconnected():
            cancelled.set()
            return
        await asyncio.sleep(poll_seconds)


@router.get("/api/reports", response_model=ReportResponse)
async def get_report(
    request: Request,
    user_id: int | None = Query(default=None, alias="userId", ge=1),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.report_default_limit, ge=1, le=settings.report_max_limit),
    shift_id: int | None = Query(default=None, alias="shiftId", ge=1),
    only_issues: bool = Query(default=False, alias="onlyIssues"),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_report_now),
) -> ReportResponse:
    # Employees only ever see their own row.
    if not auth.is_manager:
        user_id = auth.user_id

    start, end = resolve_report_range(start_date, end_date, now=now)
    filters = ReportFilters(
        start=start,
        end=end,
        user_id=user_id,
        shift_id=shift_id,
        only_issues=only_issues,
    )

    cancelled = threading.Event()
    watcher = asyncio.create_task(
        _watch_disconnect(request, cancelled, settings.report_disconnect_poll_seconds)
    )
    try:
        return await asyncio.to_thread(
            generate_report,
            db,
            company_id=auth.company_id,
            filters=filters,
            page=page,
            limit=limit,
            now=now,
            is_cancelled=cancelled.is_set,
        )
    except ReportCancelledError as exc:
        logger.info(
            "report_client_disconnected",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "company_id": auth.company_id,
                "page": page,
            },
        )
        raise ApiError.client_closed_request() from exc
    finally:
        watcher.cancel()
        with suppress(asyncio.CancelledError):
            await watcher
