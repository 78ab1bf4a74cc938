from __future__ import annotations

import unittest
from datetime import date, datetime, timezone
from unittest.mock import patch

from timebank.models import TimeEvent, TimeEventType
from timebank.services.weekly_hours import calculate_weekly_hours


def _event(event_id: int, user_id: int, event_type: TimeEventType, ts: datetime) -> TimeEvent:
    return TimeEvent(id=event_id, user_id=user_id, event_type=event_type, timestamp=ts)


class WeeklyHoursTests(unittest.TestCase):
    def test_hours_are_bucketed_per_utc_day(self) -> None:
        now = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)
        events = [
            _event(1, 1, TimeEventType.CLOCK_IN, datetime(2024, 1, 8, 20, 0, tzinfo=timezone.utc)),
            _event(2, 2, TimeEventType.CLOCK_IN, datetime(2024, 1, 9, 8, 0, tzinfo=timezone.utc)),
            _event(3, 2, TimeEventType.CLOCK_OUT, datetime(2024, 1, 9, 17, 0, tzinfo=timezone.utc)),
            _event(5, 3, TimeEventType.CLOCK_IN, datetime(2024, 1, 9, 10, 0, tzinfo=timezone.utc)),
            _event(6, 3, TimeEventType.CLOCK_OUT, datetime(2024, 1, 9, 14, 0, tzinfo=timezone.utc)),
            _event(4, 1, TimeEventType.CLOCK_IN, datetime(2024, 1, 10, 8, 0, tzinfo=timezone.utc)),
        ]

        with patch("timebank.services.weekly_hours.list_company_events", return_value=events) as mocked:
            result = calculate_weekly_hours(object(), company_id=1, now=now)

        self.assertEqual(mocked.call_args.kwargs["start"], datetime(2024, 1, 4, tzinfo=timezone.utc))
        self.assertEqual([item.date for item in result][0], date(2024, 1, 4))
        self.assertEqual(len(result), 7)
        by_date = {item.date: item for item in result}
        # Forgotten clock-out on a past day is not extended.
        self.assertEqual(by_date[date(2024, 1, 8)].hours, 0.0)
        self.assertEqual(by_date[date(2024, 1, 8)].user_count, 1)
        self.assertEqual(by_date[date(2024, 1, 9)].hours, 13.0)
        self.assertEqual(by_date[date(2024, 1, 9)].avg_hours, 6.5)
        self.assertEqual(by_date[date(2024, 1, 9)].user_count, 2)
        # Today's open interval runs until now.
        self.assertEqual(by_date[date(2024, 1, 10)].hours, 4.0)
        self.assertEqual(by_date[date(2024, 1, 10)].name, "Wed")
        self.assertEqual(by_date[date(2024, 1, 5)].user_count, 0)
        self.assertEqual(by_date[date(2024, 1, 5)].avg_hours, 0.0)
        self.assertEqual(by_date[date(2024, 1, 10)].avg_hours, 4.0)


if __name__ == "__main__":
    unittest.main()
