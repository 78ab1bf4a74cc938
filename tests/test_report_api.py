from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import datetime, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.exc import OperationalError

from timebank.db import get_db
from timebank.main import app
from timebank.models import Employee, TimeEvent, TimeEventType
from timebank.routers.reports import get_report_now
from timebank.schemas import ReportMetadata, ReportResponse
from timebank.security import AuthContext, require_user
from timebank.settings import Settings

NOW = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)


class _ScalarRows:
    def __init__(self, rows):
        self._rows = rows

    def all(self):
        return self._rows


class _FakeReportDB:
    def __init__(self, *, total, scalars_values):
        self._total = total
        self._scalars_values = list(scalars_values)

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        return self._total

    def scalars(self, _statement):  # type: ignore[no-untyped-def]
        if not self._scalars_values:
            return _ScalarRows([])
        return _ScalarRows(self._scalars_values.pop(0))


class _UnavailableDB:
    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        raise OperationalError("SELECT count(*)", {}, Exception("connection refused"))

    def scalars(self, _statement):  # type: ignore[no-untyped-def]
        raise OperationalError("SELECT", {}, Exception("connection refused"))


def _override_get_db(fake_db):
    def _override() -> Generator[object, None, None]:
        yield fake_db

    return _override


def _manager() -> AuthContext:
    return AuthContext(user_id=100, role="manager", company_id=1)


def _empty_response() -> ReportResponse:
    return ReportResponse(data=[], metadata=ReportMetadata(total=0, page=1, limit=10, total_pages=0))


class ReportEndpointTests(unittest.TestCase):
    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_report_payload_uses_camel_case_keys(self) -> None:
        employee = Employee(id=1, company_id=1, full_name="Ana Souza", role="employee", is_active=True)
        events = [
            TimeEvent(id=1, user_id=1, event_type=TimeEventType.CLOCK_IN, timestamp=datetime(2024, 1, 10, 8, 5, tzinfo=timezone.utc)),
            TimeEvent(id=2, user_id=1, event_type=TimeEventType.CLOCK_OUT, timestamp=datetime(2024, 1, 10, 17, 10, tzinfo=timezone.utc)),
        ]
        fake_db = _FakeReportDB(total=1, scalars_values=[[employee], [], [], events])
        app.dependency_overrides[get_db] = _override_get_db(fake_db)
        app.dependency_overrides[require_user] = _manager
        app.dependency_overrides[get_report_now] = lambda: NOW
        client = TestClient(app)

        response = client.get("/api/reports?startDate=2024-01-10&endDate=2024-01-10")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["metadata"], {"total": 1, "page": 1, "limit": 10, "totalPages": 1})
        row = payload["data"][0]
        self.assertEqual(row["full_name"], "Ana Souza")
        self.assertEqual(row["totalBalanceMinutes"], 65)
        day = row["report"][0]
        self.assertEqual(day["date"], "2024-01-10")
        self.assertEqual(day["workedMinutes"], 545)
        self.assertEqual(day["expectedMinutes"], 480)
        self.assertEqual(day["balanceMinutes"], 65)
        self.assertFalse(day["isHoliday"])
        self.assertEqual([event["event_type"] for event in day["events"]], ["clock_in", "clock_out"])
        self.assertIn("X-Request-Id", response.headers)

    def test_employee_role_only_sees_own_row(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        app.dependency_overrides[require_user] = lambda: AuthContext(user_id=7, role="employee", company_id=1)
        app.dependency_overrides[get_report_now] = lambda: NOW
        client = TestClient(app)

        with patch("timebank.routers.reports.generate_report", return_value=_empty_response()) as mocked:
            response = client.get("/api/reports?userId=99&onlyIssues=true")

        self.assertEqual(response.status_code, 200)
        filters = mocked.call_args.kwargs["filters"]
        self.assertEqual(filters.user_id, 7)
        self.assertTrue(filters.only_issues)
        self.assertEqual(mocked.call_args.kwargs["company_id"], 1)

    def test_manager_can_filter_by_user_and_shift(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        app.dependency_overrides[require_user] = _manager
        app.dependency_overrides[get_report_now] = lambda: NOW
        client = TestClient(app)

        with patch("timebank.routers.reports.generate_report", return_value=_empty_response()) as mocked:
            response = client.get("/api/reports?userId=99&shiftId=3&page=2&limit=5")

        self.assertEqual(response.status_code, 200)
        kwargs = mocked.call_args.kwargs
        self.assertEqual(kwargs["filters"].user_id, 99)
        self.assertEqual(kwargs["filters"].shift_id, 3)
        self.assertEqual(kwargs["page"], 2)
        self.assertEqual(kwargs["limit"], 5)

    def test_invalid_date_returns_400(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        app.dependency_overrides[require_user] = _manager
        app.dependency_overrides[get_report_now] = lambda: NOW
        client = TestClient(app)

        response = client.get("/api/reports?startDate=not-a-date")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_DATE")

    def test_inverted_range_returns_400(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        app.dependency_overrides[require_user] = _manager
        app.dependency_overrides[get_report_now] = lambda: NOW
        client = TestClient(app)

        response = client.get("/api/reports?startDate=2024-01-12&endDate=2024-01-10")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_DATE_RANGE")

    def test_limit_above_maximum_is_rejected(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        app.dependency_overrides[require_user] = _manager
        client = TestClient(app)

        response = client.get("/api/reports?limit=500")

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_data_store_failure_returns_503(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_UnavailableDB())
        app.dependency_overrides[require_user] = _manager
        app.dependency_overrides[get_report_now] = lambda: NOW
        client = TestClient(app)

        response = client.get("/api/reports?startDate=2024-01-10&endDate=2024-01-10")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["error"]["code"], "DATA_STORE_UNAVAILABLE")


class ReportAuthTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = Settings(jwt_secret="test-secret")

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def _token(self, **claims) -> str:
        payload = {
            "sub": "7",
            "role": "employee",
            "company_id": 1,
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
            "exp": 9999999999,
        }
        payload.update(claims)
        return jwt.encode(payload, self.settings.jwt_secret, algorithm="HS256")

    def test_missing_token_is_rejected(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        client = TestClient(app)

        response = client.get("/api/reports")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "INVALID_TOKEN")

    def test_valid_token_scopes_report_to_company_and_user(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        app.dependency_overrides[get_report_now] = lambda: NOW
        client = TestClient(app)

        with (
            patch("timebank.security.get_settings", return_value=self.settings),
            patch("timebank.routers.reports.generate_report", return_value=_empty_response()) as mocked,
        ):
            response = client.get(
                "/api/reports",
                headers={"Authorization": f"Bearer {self._token(company_id=4)}"},
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(mocked.call_args.kwargs["company_id"], 4)
        self.assertEqual(mocked.call_args.kwargs["filters"].user_id, 7)

    def test_token_signed_with_other_secret_is_rejected(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        client = TestClient(app)
        token = jwt.encode({"sub": "7", "role": "manager", "company_id": 1}, "other-secret", algorithm="HS256")

        with patch("timebank.security.get_settings", return_value=self.settings):
            response = client.get("/api/reports", headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 401)

    def test_token_with_unknown_role_is_rejected(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(object())
        client = TestClient(app)

        with patch("timebank.security.get_settings", return_value=self.settings):
            response = client.get(
                "/api/reports",
                headers={"Authorization": f"Bearer {self._token(role='superuser')}"},
            )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "INVALID_TOKEN")


class HealthTests(unittest.TestCase):
    def test_health_reports_schema_guard_state(self) -> None:
        client = TestClient(app)

        response = client.get("/health")

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["status"], "ok")
        self.assertIn("schema_guard", payload)
        self.assertIn("issues", payload["schema_guard"])


if __name__ == "__main__":
    unittest.main()
