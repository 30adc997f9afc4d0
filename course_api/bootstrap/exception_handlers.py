from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from course_api.errors import error_response, internal_error_response, normalize_http_exception


def handle_unexpected_error(request: Request, exc: Exception, *, logger: logging.Logger) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
        },
    )
    return internal_error_response(request)


def register_exception_handlers(api: FastAPI, *, logger: logging.Logger) -> None:
    """Register error handlers and the route-level 500 funnel.

    Call before the CORS layer is installed so error responses for admitted
    origins still pass through it and carry the CORS headers.
    """

    @api.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return normalize_http_exception(request, exc)

    @api.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = "; ".join(err.get("msg", "invalid request") for err in exc.errors())
        return error_response(request, status_code=400, message=message or "invalid request")

    @api.exception_handler(Exception)
    async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
        return handle_unexpected_error(request, exc, logger=logger)

    @api.middleware("http")
    async def route_error_funnel(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return handle_unexpected_error(request, exc, logger=logger)


def register_error_funnel(api: FastAPI, *, logger: logging.Logger) -> None:
    """Outer funnel for errors raised by the middleware chain itself, such as CORS denials."""

    @api.middleware("http")
    async def global_error_funnel(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return handle_unexpected_error(request, exc, logger=logger)
