from __future__ import annotations

import json
import logging
import sys
import unittest
from datetime import date

from timebank.logging_utils import JsonFormatter


class JsonFormatterTests(unittest.TestCase):
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.makeLogRecord({"name": "timebank.reports", "levelname": "WARNING", "msg": "report_row_failed"})
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_extra_fields_are_flattened_next_to_the_event(self) -> None:
        formatter = JsonFormatter("Timebank")

        line = formatter.format(self._record(employee_id=3, day=date(2024, 1, 10)))

        payload = json.loads(line)
        self.assertEqual(payload["event"], "report_row_failed")
        self.assertEqual(payload["service"], "Timebank")
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["logger"], "timebank.reports")
        self.assertEqual(payload["employee_id"], 3)
        self.assertEqual(payload["day"], "2024-01-10")
        self.assertNotIn("msg", payload)
        self.assertNotIn("lineno", payload)

    def test_exception_text_is_included(self) -> None:
        formatter = JsonFormatter("Timebank")
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.makeLogRecord({"msg": "unhandled_error", "exc_info": sys.exc_info()})

        payload = json.loads(formatter.format(record))

        self.assertIn("ValueError: boom", payload["exception"])


if __name__ == "__main__":
    unittest.main()
