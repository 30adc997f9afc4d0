from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

GENERIC_ERROR_MESSAGE = "Something went wrong!"
DEFAULT_ERROR_MESSAGES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    503: "Service Unavailable",
}


class CorsOriginDenied(Exception):
    """Raised when a request carries an Origin outside the allow-list."""

    def __init__(self, origin: str) -> None:
        super().__init__(f"Not allowed by CORS: {origin}")
        self.origin = origin


def build_error_payload(*, message: str) -> dict[str, Any]:
    return {"success": False, "message": message}


def http_error(status_code: int, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail=message)


def error_response(
    request: Request,
    *,
    status_code: int,
    message: str,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    headers = {"X-Request-Id": request_id} if request_id else None
    return JSONResponse(
        build_error_payload(message=message),
        status_code=status_code,
        headers=headers,
    )


def internal_error_response(request: Request) -> JSONResponse:
    return error_response(request, status_code=500, message=GENERIC_ERROR_MESSAGE)


def normalize_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail: Optional[Any] = exc.detail
    if isinstance(detail, dict):
        message = str(detail.get("message") or DEFAULT_ERROR_MESSAGES.get(exc.status_code, "Request failed"))
    elif detail:
        message = str(detail)
    else:
        message = DEFAULT_ERROR_MESSAGES.get(exc.status_code, "Request failed")

    response = error_response(request, status_code=exc.status_code, message=message)
    for name, value in (exc.headers or {}).items():
        response.headers[name] = value
    return response
