from __future__ import annotations

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

# Non-standard status used by nginx for a client that went away mid-request.
HTTP_CLIENT_CLOSED_REQUEST = 499

_CODES_BY_HTTP_STATUS = {
    401: "INVALID_TOKEN",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    422: "VALIDATION_ERROR",
}


class ApiError(Exception):
    """Error rendered as ``{"error": {"code", "message", "request_id"}}``."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message

    @classmethod
    def invalid_token(cls, message: str = "Token is invalid.") -> ApiError:
        return cls(401, "INVALID_TOKEN", message)

    @classmethod
    def forbidden(cls, message: str = "Insufficient permissions.") -> ApiError:
        return cls(403, "FORBIDDEN", message)

    @classmethod
    def conflict(cls, code: str, message: str) -> ApiError:
        return cls(409, code, message)

    @classmethod
    def validation(cls, message: str, *, code: str = "VALIDATION_ERROR") -> ApiError:
        return cls(422, code, message)

    @classmethod
    def invalid_date(cls, field_name: str) -> ApiError:
        return cls(400, "INVALID_DATE", f"{field_name} is not a valid date.")

    @classmethod
    def invalid_date_range(cls) -> ApiError:
        return cls(400, "INVALID_DATE_RANGE", "endDate must be greater than or equal to startDate.")

    @classmethod
    def client_closed_request(cls) -> ApiError:
        return cls(
            HTTP_CLIENT_CLOSED_REQUEST,
            "CLIENT_CLOSED_REQUEST",
            "Client disconnected before the report was ready.",
        )

    @classmethod
    def data_store_unavailable(cls) -> ApiError:
        return cls(503, "DATA_STORE_UNAVAILABLE", "The data store is unavailable. Please retry.")

    @classmethod
    def internal(cls) -> ApiError:
        return cls(500, "INTERNAL_ERROR", "Unexpected server error.")

    @classmethod
    def from_http_exception(cls, exc: HTTPException) -> ApiError:
        code = _CODES_BY_HTTP_STATUS.get(exc.status_code, "HTTP_ERROR")
        message = str(exc.detail) if exc.detail else "Request failed."
        return cls(exc.status_code, code, message)

    def to_response(self, request: Request) -> JSONResponse:
        payload = {
            "error": {
                "code": self.code,
                "message": self.message,
                "request_id": request_id_of(request),
            }
        }
        return JSONResponse(status_code=self.status_code, content=payload)


def request_id_of(request: Request) -> str:
    return str(getattr(request.state, "request_id", None) or "unknown")
