from __future__ import annotations

import logging
import sys
import time
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

REQUEST_COUNT = Counter(
    "course_api_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "course_api_http_request_duration_seconds",
    "HTTP request latency (seconds)",
    ["method", "path"],
)
ALLOWED_HTTP_METHOD_LABELS = {"GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"}
MAX_PATH_LABEL_LENGTH = 96
UNMATCHED_PATH_LABEL = "/_unmatched"

logger = logging.getLogger("course_api.requests")


def _resolve_route_template(request: Request, api: FastAPI) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path:
        return str(route_path)

    for candidate in api.router.routes:
        try:
            matched, _ = candidate.matches(request.scope)
        except (AttributeError, KeyError, TypeError, ValueError):
            continue
        if matched == Match.FULL and getattr(candidate, "path", None):
            return str(candidate.path)
    return UNMATCHED_PATH_LABEL


def metric_method_label(method: str | None) -> str:
    normalized = (method or "").upper()
    if normalized in ALLOWED_HTTP_METHOD_LABELS:
        return normalized
    return "OTHER"


def metric_path_label(request: Request, api: FastAPI) -> str:
    path = _resolve_route_template(request, api)
    if len(path) > MAX_PATH_LABEL_LENGTH:
        return "/_label_too_long"
    return path


def metric_status_label(status_code: int) -> str:
    if 100 <= int(status_code) <= 599:
        return str(int(status_code))
    return "000"


def status_code_from_exception(exc: BaseException) -> int:
    if isinstance(exc, RequestValidationError):
        return 400
    if isinstance(exc, StarletteHTTPException):
        return int(exc.status_code)
    return 500


def build_request_log_payload(
    *,
    request_id: str,
    method: str,
    path: str,
    status_code: int,
    elapsed_seconds: float,
    client_ip: str | None,
) -> dict[str, str | int | float | None]:
    return {
        "request_id": request_id,
        "method": method,
        "path": path,
        "status_code": int(status_code),
        "duration_ms": round(elapsed_seconds * 1000, 2),
        "client_ip": client_ip,
    }


def _observe_request_metrics(*, method: str, path: str, status_code: int, elapsed_seconds: float) -> None:
    method_label = metric_method_label(method)
    REQUEST_COUNT.labels(method_label, path, metric_status_label(status_code)).inc()
    REQUEST_LATENCY.labels(method_label, path).observe(elapsed_seconds)


def register_observability(api: FastAPI) -> None:
    """Request id propagation, request logging and Prometheus metrics.

    Registered after the core middleware so it wraps them: CORS denials and
    oversized bodies are logged and counted like any other response.
    """

    @api.middleware("http")
    async def request_observability(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
        finally:
            elapsed = time.perf_counter() - started
            path = metric_path_label(request, api)
            client_ip = getattr(request.state, "client_ip", None) or (
                request.client.host if request.client else None
            )
            current_exc = sys.exc_info()[1]
            status_code = (
                status_code_from_exception(current_exc) if current_exc is not None else int(response.status_code)
            )
            _observe_request_metrics(
                method=request.method,
                path=path,
                status_code=status_code,
                elapsed_seconds=elapsed,
            )
            log_payload = build_request_log_payload(
                request_id=request_id,
                method=request.method,
                path=path,
                status_code=status_code,
                elapsed_seconds=elapsed,
                client_ip=client_ip,
            )
            if current_exc is not None:
                logger.exception("request_failed", extra=log_payload)
            elif status_code >= 500:
                logger.warning("request_completed", extra=log_payload)
            else:
                logger.info("request_completed", extra=log_payload)

        response.headers["X-Request-Id"] = request_id
        return response

    @api.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
