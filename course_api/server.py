"""Process lifecycle: bind, serve, and terminate with the right exit status.

Exit status is 0 after an operator interrupt and 1 when required configuration
is missing or invalid, or an asynchronous error escapes every handler.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

import uvicorn

from course_api import create_app
from course_api.bootstrap import InvalidConfigurationError, MissingConfigurationError, validate_startup_config
from course_api.bootstrap.contracts import RouteGroups
from course_api.config import Config
from course_api.logging_config import configure_logging

STARTUP_POLL_SECONDS = 0.05

logger = logging.getLogger("course_api.server")


class LifecyclePhase(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


_TRANSITIONS = {
    LifecyclePhase.STARTING: {LifecyclePhase.LISTENING, LifecyclePhase.SHUTTING_DOWN},
    LifecyclePhase.LISTENING: {LifecyclePhase.SHUTTING_DOWN},
    LifecyclePhase.SHUTTING_DOWN: {LifecyclePhase.TERMINATED},
    LifecyclePhase.TERMINATED: set(),
}


class ProcessLifecycle:
    def __init__(self, server: Any, *, port: int) -> None:
        self.server = server
        self.port = port
        self.phase = LifecyclePhase.STARTING
        self.exit_code = 0

    def _transition(self, phase: LifecyclePhase) -> None:
        if phase not in _TRANSITIONS[self.phase]:
            raise RuntimeError(f"Invalid lifecycle transition: {self.phase.value} -> {phase.value}")
        self.phase = phase

    def _bound_port(self) -> int:
        for listener in getattr(self.server, "servers", None) or []:
            for sock in getattr(listener, "sockets", None) or []:
                return int(sock.getsockname()[1])
        return int(self.port)

    def mark_listening(self) -> None:
        self._transition(LifecyclePhase.LISTENING)
        port = self._bound_port()
        logger.info("server_listening on port %s", port, extra={"port": port})

    def begin_shutdown(self) -> None:
        if self.phase in (LifecyclePhase.SHUTTING_DOWN, LifecyclePhase.TERMINATED):
            return
        self._transition(LifecyclePhase.SHUTTING_DOWN)
        logger.info("server_shutting_down")
        # uvicorn stops accepting, drains in-flight requests, then runs lifespan shutdown.
        self.server.should_exit = True

    def handle_unhandled_error(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        # Interrupts and explicit exits carry their own exit status.
        if isinstance(exc, (KeyboardInterrupt, SystemExit)):
            return
        logger.error(
            "unhandled_async_error: %s",
            context.get("message", "unhandled error in event loop"),
            exc_info=exc if isinstance(exc, BaseException) else None,
        )
        self.exit_code = 1
        self.begin_shutdown()

    def terminate(self) -> None:
        if self.phase is LifecyclePhase.TERMINATED:
            return
        self.begin_shutdown()
        self._transition(LifecyclePhase.TERMINATED)

    async def serve(self) -> int:
        asyncio.get_running_loop().set_exception_handler(self.handle_unhandled_error)
        serve_task = asyncio.create_task(self.server.serve(), name="http-server")

        while self.phase is LifecyclePhase.STARTING and not serve_task.done():
            await asyncio.wait({serve_task}, timeout=STARTUP_POLL_SECONDS)
            if getattr(self.server, "started", False) and self.phase is LifecyclePhase.STARTING:
                self.mark_listening()

        await serve_task
        self.terminate()
        return self.exit_code


def build_server(app: Any, config: Config) -> uvicorn.Server:
    server_config = uvicorn.Config(
        app,
        host=config.HOST,
        port=int(config.PORT),
        log_config=None,
        # Forwarded headers are resolved by the app's own proxy-trust middleware.
        proxy_headers=False,
    )
    return uvicorn.Server(server_config)


def run(config: Config | None = None, *, route_groups: RouteGroups | None = None) -> None:
    if config is None:
        config = Config()
    configure_logging(level=config.LOG_LEVEL, json_logs=config.LOG_JSON)

    try:
        validate_startup_config(config)
    except MissingConfigurationError as exc:
        for name in exc.missing:
            logger.error("Missing environment variable: %s", name, extra={"missing": name})
        raise SystemExit(1) from None
    except InvalidConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1) from None

    app = create_app(config, route_groups=route_groups)
    lifecycle = ProcessLifecycle(build_server(app, config), port=config.PORT)
    try:
        exit_code = asyncio.run(lifecycle.serve())
    except KeyboardInterrupt:
        logger.info("server_interrupted")
        lifecycle.terminate()
        exit_code = lifecycle.exit_code
    raise SystemExit(exit_code)
