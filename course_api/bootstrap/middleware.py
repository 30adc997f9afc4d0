from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from course_api.config import Config
from course_api.cors import build_allowed_origins, is_origin_allowed
from course_api.errors import CorsOriginDenied, error_response
from course_api.security_proxy import client_ip, client_scheme

ReceiveMessage = MutableMapping[str, Any]
BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization"]
REQUEST_BODY_OVERFLOW_ATTR = "_request_body_overflow_bytes"
REQUEST_RECEIVE_ATTR = "_receive"

logger = logging.getLogger("course_api.cors")


def _payload_too_large_response(request: Request) -> Response:
    return error_response(request, status_code=413, message="Payload Too Large")


def _invalid_content_length_response(request: Request) -> Response:
    return error_response(request, status_code=400, message="Invalid Content-Length header")


def register_core_middleware(api: FastAPI, config: Config) -> None:
    """Install body limit, proxy trust and CORS, innermost first."""
    allowed_origins = build_allowed_origins(config)
    api.state.allowed_origins = allowed_origins
    max_request_body_bytes = int(config.MAX_REQUEST_BODY_BYTES)
    trusted_hops = int(config.TRUST_PROXY_HOPS)

    @api.middleware("http")
    async def request_context(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request.state.client_ip = client_ip(request, trusted_hops=trusted_hops)
        request.state.scheme = client_scheme(request, trusted_hops=trusted_hops)

        if request.method not in BODY_METHODS:
            return await call_next(request)

        content_length = None
        content_length_raw = (request.headers.get("content-length") or "").strip()
        if content_length_raw:
            try:
                content_length = int(content_length_raw)
            except ValueError:
                return _invalid_content_length_response(request)
            if content_length < 0:
                return _invalid_content_length_response(request)
            if content_length > max_request_body_bytes:
                return _payload_too_large_response(request)

        received_bytes = 0
        original_receive = cast(Callable[[], Awaitable[ReceiveMessage]], getattr(request, REQUEST_RECEIVE_ATTR))

        async def guarded_receive() -> ReceiveMessage:
            nonlocal received_bytes
            message = await original_receive()
            if message.get("type") != "http.request":
                return message

            received_bytes += len(message.get("body", b"") or b"")
            if received_bytes > max_request_body_bytes:
                setattr(request.state, REQUEST_BODY_OVERFLOW_ATTR, received_bytes)
                # Stop reading request body as soon as the limit is exceeded.
                return {"type": "http.request", "body": b"", "more_body": False}
            return message

        setattr(request, REQUEST_RECEIVE_ATTR, guarded_receive)
        try:
            response = await call_next(request)
        except Exception:
            if getattr(request.state, REQUEST_BODY_OVERFLOW_ATTR, None) is not None:
                return _payload_too_large_response(request)
            raise

        if getattr(request.state, REQUEST_BODY_OVERFLOW_ATTR, None) is not None:
            return _payload_too_large_response(request)
        return response

    api.add_middleware(
        CORSMiddleware,
        allow_origins=list(allowed_origins),
        allow_credentials=True,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @api.middleware("http")
    async def cors_origin_guard(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        origin = request.headers.get("origin")
        if not is_origin_allowed(origin, allowed_origins):
            logger.warning(
                "cors_origin_blocked",
                extra={"origin": origin, "request_id": getattr(request.state, "request_id", None)},
            )
            raise CorsOriginDenied(cast(str, origin))
        return await call_next(request)
