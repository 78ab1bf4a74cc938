from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from timebank.models import TimeEvent
from timebank.services.day_window import to_utc
from timebank.services.events import EventKind, classify_event


@dataclass(frozen=True, slots=True)
class WorkedTime:
    minutes: float
    open_since: datetime | None = None

    @property
    def has_open_interval(self) -> bool:
        return self.open_since is not None


def accumulate_worked_minutes(
    events: Iterable[TimeEvent],
    *,
    window_end: datetime,
    now: datetime,
) -> WorkedTime:
    """Pair opening and closing events into worked intervals.

    ``events`` must already be sorted by timestamp. A second opening event
    while an interval is open is ignored, as is a closing event with nothing
    open. An interval left open at the end is counted up to
    ``min(now, window_end)`` and only when that cap lies after the opening.
    Minutes are returned unrounded.
    """
    total_seconds = 0.0
    open_ts: datetime | None = None

    for event in events:
        ts = to_utc(event.timestamp)
        kind = classify_event(event.event_type)
        if kind == EventKind.OPENING:
            if open_ts is None:
                open_ts = ts
        elif open_ts is not None:
            total_seconds += (ts - open_ts).total_seconds()
            open_ts = None

    if open_ts is not None:
        limit = min(to_utc(now), to_utc(window_end))
        if limit > open_ts:
            total_seconds += (limit - open_ts).total_seconds()

    return WorkedTime(minutes=total_seconds / 60, open_since=open_ts)
