"""
Standard API response envelope.

Every endpoint answers with:

    {
        "responseCode": "SUCCESS",
        "message": "User retrieved successfully",
        "datetime": "2024-01-01T12:00:00.000Z",
        "data": {...}            # omitted when there is no payload
    }
"""

from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

CODE_SUCCESS = "SUCCESS"
CODE_BAD_REQUEST = "BAD_REQUEST"
CODE_INVALID_REQUEST = "INVALID_REQUEST"
CODE_UNAUTHORIZED = "UNAUTHORIZED"
CODE_FORBIDDEN = "FORBIDDEN"
CODE_NOT_FOUND = "NOT_FOUND"
CODE_CONFLICT = "CONFLICT"
CODE_SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
CODE_GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"
CODE_INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

STATUS_CODES = {
    400: CODE_BAD_REQUEST,
    401: CODE_UNAUTHORIZED,
    403: CODE_FORBIDDEN,
    404: CODE_NOT_FOUND,
    409: CODE_CONFLICT,
    422: CODE_INVALID_REQUEST,
    503: CODE_SERVICE_UNAVAILABLE,
    504: CODE_GATEWAY_TIMEOUT,
}


def format_datetime(value: datetime | None = None) -> str:
    """UTC timestamp with millisecond precision and a trailing ``Z``."""
    value = (value or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def envelope(code: str, message: str, data: Any = None) -> dict[str, Any]:
    """
    Build a response body.

    Raises:
        ValueError: If code or message is empty
    """
    if not code:
        raise ValueError("response code cannot be empty")
    if not message:
        raise ValueError("message cannot be empty")

    body: dict[str, Any] = {
        "responseCode": code,
        "message": message,
        "datetime": format_datetime(),
    }
    if data is not None:
        body["data"] = jsonable_encoder(data)
    return body


def send_success(code: str, message: str, status_code: int = 200, data: Any = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(code, message, data))


def send_error(status_code: int, message: str, code: str | None = None) -> JSONResponse:
    code = code or STATUS_CODES.get(status_code, CODE_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=status_code, content=envelope(code, message))
