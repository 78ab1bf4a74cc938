from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from timebank.models import Employee, TimeEvent, TimeEventType

if TYPE_CHECKING:
    from timebank.services.day_window import DayWindow


class EventKind(str, enum.Enum):
    OPENING = "OPENING"
    CLOSING = "CLOSING"


OPENING_EVENT_TYPES = frozenset(
    {
        TimeEventType.CLOCK_IN,
        TimeEventType.WORK_RESUME,
        TimeEventType.BREAK_END,
    }
)
CLOSING_EVENT_TYPES = frozenset(
    {
        TimeEventType.CLOCK_OUT,
        TimeEventType.WORK_PAUSE,
        TimeEventType.BREAK_START,
    }
)


def classify_event(event_type: TimeEventType | str) -> EventKind:
    normalized = TimeEventType(event_type)
    if normalized in OPENING_EVENT_TYPES:
        return EventKind.OPENING
    return EventKind.CLOSING


def list_events_for_users(
    db: Session,
    *,
    user_ids: Sequence[int],
    start: datetime,
    end: datetime,
) -> dict[int, list[TimeEvent]]:
    """Fetch every event of the given users inside ``[start, end]`` in one read.

    Lists come back ordered by ``(timestamp, id)`` so per-day slicing never
    needs to sort again. Users without events get an empty list.
    """
    grouped: dict[int, list[TimeEvent]] = {user_id: [] for user_id in user_ids}
    if not user_ids:
        return grouped

    rows = db.scalars(
        select(TimeEvent)
        .where(
            TimeEvent.user_id.in_(list(user_ids)),
            TimeEvent.timestamp >= start,
            TimeEvent.timestamp <= end,
        )
        .order_by(TimeEvent.timestamp.asc(), TimeEvent.id.asc())
    ).all()
    for event in rows:
        grouped.setdefault(event.user_id, []).append(event)
    return grouped


def events_in_window(events: Iterable[TimeEvent], window: DayWindow) -> list[TimeEvent]:
    return [event for event in events if window.contains(event.timestamp)]


def list_company_events(
    db: Session,
    *,
    company_id: int,
    start: datetime,
    end: datetime,
    user_id: int | None = None,
) -> list[TimeEvent]:
    stmt = (
        select(TimeEvent)
        .join(Employee, Employee.id == TimeEvent.user_id)
        .where(
            Employee.company_id == company_id,
            TimeEvent.timestamp >= start,
            TimeEvent.timestamp <= end,
        )
        .order_by(TimeEvent.user_id.asc(), TimeEvent.timestamp.asc(), TimeEvent.id.asc())
    )
    if user_id is not None:
        stmt = stmt.where(TimeEvent.user_id == user_id)
    return list(db.scalars(stmt).all())
