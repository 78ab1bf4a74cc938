from __future__ import annotations

import unittest
from unittest.mock import patch

from timebank.models import TimeEventType
from timebank.services.schema_guard import expected_columns, migration_head, verify_runtime_schema


class _FakeResult:
    def __init__(self, value):
        self._value = value

    def scalar(self):  # type: ignore[no-untyped-def]
        return self._value


class _FakeConnection:
    def __init__(self, version_value):
        self._version_value = version_value

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, exc_type, exc, tb):  # type: ignore[no-untyped-def]
        return False

    def execute(self, _statement):  # type: ignore[no-untyped-def]
        return _FakeResult(self._version_value)


class _FakeEngine:
    def __init__(self, version_value):
        self._version_value = version_value

    def connect(self):  # type: ignore[no-untyped-def]
        return _FakeConnection(self._version_value)


class _FakeInspector:
    def __init__(self, *, columns_by_table: dict[str, set[str]], enums: list[dict[str, object]]):
        self._columns_by_table = columns_by_table
        self._enums = enums

    def get_columns(self, table_name: str):  # type: ignore[no-untyped-def]
        columns = self._columns_by_table[table_name]
        return [{"name": item} for item in columns]

    def get_enums(self):  # type: ignore[no-untyped-def]
        return self._enums


def _complete_enums() -> list[dict[str, object]]:
    return [
        {"name": "time_event_type", "labels": [member.value for member in TimeEventType]},
        {"name": "justification_status", "labels": ["pending", "approved", "rejected"]},
    ]


class SchemaGuardTests(unittest.TestCase):
    def _verify(self, *, columns=None, enums=None, version="0001_initial", expected="0001_initial"):  # type: ignore[no-untyped-def]
        fake_inspector = _FakeInspector(
            columns_by_table=expected_columns() if columns is None else columns,
            enums=_complete_enums() if enums is None else enums,
        )
        with patch("timebank.services.schema_guard.inspect", return_value=fake_inspector):
            return verify_runtime_schema(_FakeEngine(version), expected_revision=expected)  # type: ignore[arg-type]

    def test_complete_schema_passes(self) -> None:
        result = self._verify()

        self.assertTrue(result.ok)
        self.assertEqual(result.issues, [])
        self.assertEqual(result.warnings, [])
        self.assertEqual(result.revision, "0001_initial")

    def test_guarded_columns_follow_the_models(self) -> None:
        columns = expected_columns()

        self.assertIn("date", columns["holidays"])
        self.assertIn("sort_order", columns["employee_shifts"])
        self.assertIn("break_duration_minutes", columns["shift_rules"])

    def test_missing_columns_enum_labels_and_version_are_issues(self) -> None:
        columns = expected_columns()
        columns["employee_shifts"].discard("sort_order")
        columns["justifications"] -= {"end_date", "status"}

        result = self._verify(
            columns=columns,
            enums=[
                {"name": "time_event_type", "labels": ["clock_in", "clock_out"]},
                {"name": "justification_status", "labels": ["pending", "approved", "rejected"]},
            ],
            version="",
        )

        self.assertFalse(result.ok)
        self.assertIn("MISSING_COLUMNS:employee_shifts:sort_order", result.issues)
        self.assertIn("MISSING_COLUMNS:justifications:end_date,status", result.issues)
        self.assertIn(
            "MISSING_ENUM_VALUES:time_event_type:break_end,break_start,work_pause,work_resume",
            result.issues,
        )
        self.assertIn("ALEMBIC_VERSION_EMPTY", result.issues)
        self.assertIsNone(result.revision)

    def test_missing_enum_type_is_only_a_warning(self) -> None:
        result = self._verify(enums=[])

        self.assertTrue(result.ok)
        self.assertIn("ENUM_NOT_FOUND:time_event_type", result.warnings)

    def test_revision_behind_head_is_a_warning(self) -> None:
        result = self._verify(version="0000_bootstrap")

        self.assertTrue(result.ok)
        self.assertEqual(result.warnings, ["ALEMBIC_REVISION_MISMATCH:0000_bootstrap:0001_initial"])

    def test_migration_head_is_the_latest_revision(self) -> None:
        self.assertEqual(migration_head(), "0001_initial")


if __name__ == "__main__":
    unittest.main()
