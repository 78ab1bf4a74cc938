from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.orm import Session

from timebank.models import TimeEvent
from timebank.schemas import WeeklyHoursDay
from timebank.services.day_window import to_utc
from timebank.services.events import list_company_events
from timebank.services.worked_time import accumulate_worked_minutes

WEEKLY_DAY_COUNT = 7
SHORT_WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def calculate_weekly_hours(
    db: Session,
    *,
    company_id: int,
    now: datetime,
    user_id: int | None = None,
) -> list[WeeklyHoursDay]:
    """Worked hours per UTC calendar day for the last seven days, today included.

    Days are bucketed by the event's UTC date, not by the business-day window
    used for balances. Only today's open interval runs up to ``now``; an open
    interval on an earlier day is not extended.
    """
    now_utc = to_utc(now)
    today = now_utc.date()
    first_day = today - timedelta(days=WEEKLY_DAY_COUNT - 1)
    start = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

    events = list_company_events(db, company_id=company_id, start=start, end=now_utc, user_id=user_id)

    buckets: dict[date, dict[int, list[TimeEvent]]] = defaultdict(lambda: defaultdict(list))
    for event in events:
        buckets[to_utc(event.timestamp).date()][event.user_id].append(event)

    result: list[WeeklyHoursDay] = []
    for offset in range(WEEKLY_DAY_COUNT):
        day = first_day + timedelta(days=offset)
        per_user = buckets.get(day, {})
        cap = now_utc if day == today else datetime.combine(day, time.min, tzinfo=timezone.utc)
        total_minutes = 0.0
        for user_events in per_user.values():
            total_minutes += accumulate_worked_minutes(user_events, window_end=cap, now=now_utc).minutes
        total_hours = total_minutes / 60
        result.append(
            WeeklyHoursDay(
                date=day,
                name=SHORT_WEEKDAY_NAMES[day.weekday()],
                hours=round(total_hours, 1),
                # Per active user; equals hours for a single-user view.
                avg_hours=round(total_hours / len(per_user), 1) if per_user else 0.0,
                user_count=len(per_user),
            )
        )
    return result
