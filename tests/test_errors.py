from __future__ import annotations

import json
import unittest
from types import SimpleNamespace

from fastapi import HTTPException

from timebank.errors import ApiError, request_id_of


def _request(request_id: str | None = None) -> SimpleNamespace:
    return SimpleNamespace(state=SimpleNamespace(request_id=request_id))


class ApiErrorTests(unittest.TestCase):
    def test_response_carries_code_message_and_request_id(self) -> None:
        response = ApiError.invalid_date_range().to_response(_request("req-1"))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            json.loads(response.body),
            {
                "error": {
                    "code": "INVALID_DATE_RANGE",
                    "message": "endDate must be greater than or equal to startDate.",
                    "request_id": "req-1",
                }
            },
        )

    def test_report_specific_errors(self) -> None:
        closed = ApiError.client_closed_request()
        unavailable = ApiError.data_store_unavailable()
        bad_date = ApiError.invalid_date("startDate")

        self.assertEqual((closed.status_code, closed.code), (499, "CLIENT_CLOSED_REQUEST"))
        self.assertEqual((unavailable.status_code, unavailable.code), (503, "DATA_STORE_UNAVAILABLE"))
        self.assertEqual((bad_date.status_code, bad_date.code), (400, "INVALID_DATE"))
        self.assertEqual(bad_date.message, "startDate is not a valid date.")

    def test_http_exception_maps_to_stable_codes(self) -> None:
        not_found = ApiError.from_http_exception(HTTPException(status_code=404, detail="Holiday not found"))
        teapot = ApiError.from_http_exception(HTTPException(status_code=418))

        self.assertEqual((not_found.code, not_found.message), ("NOT_FOUND", "Holiday not found"))
        self.assertEqual(teapot.code, "HTTP_ERROR")
        self.assertEqual(teapot.status_code, 418)

    def test_missing_request_id_is_reported_as_unknown(self) -> None:
        self.assertEqual(request_id_of(_request()), "unknown")


if __name__ == "__main__":
    unittest.main()
