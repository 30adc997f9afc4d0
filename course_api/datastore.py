"""Background datastore connection and readiness tracking.

The connection probe is started at startup and not awaited, so requests may
arrive before the datastore is reachable. Handlers that need the datastore can
depend on :func:`require_datastore_ready` instead of assuming availability.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from sqlalchemy import text

from course_api.errors import http_error

logger = logging.getLogger("course_api.datastore")


@dataclass
class DatastoreState:
    ready: bool = False
    error: str | None = None
    task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return not self.ready and self.error is None

    def mark_ready(self) -> None:
        self.ready = True
        self.error = None

    def mark_failed(self, error: str) -> None:
        self.ready = False
        self.error = error


def _probe(engine: Any) -> None:
    with engine.begin() as conn:
        conn.execute(text("SELECT 1"))


async def connect_datastore(engine: Any, state: DatastoreState) -> None:
    try:
        await asyncio.to_thread(_probe, engine)
    except Exception as exc:
        state.mark_failed(type(exc).__name__)
        logger.exception("datastore_connect_failed")
        return
    state.mark_ready()
    logger.info("datastore_connected")


def start_datastore_connection(engine: Any, state: DatastoreState) -> asyncio.Task[None]:
    state.task = asyncio.create_task(connect_datastore(engine, state), name="datastore-connect")
    return state.task


async def stop_datastore_connection(engine: Any, state: DatastoreState) -> None:
    task = state.task
    if task is not None and not task.done():
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
    state.ready = False
    if engine is not None and hasattr(engine, "dispose"):
        engine.dispose()
        logger.info("datastore_disconnected")


def get_datastore_state(request: Request) -> DatastoreState:
    return request.app.state.datastore


def require_datastore_ready(request: Request) -> None:
    state = get_datastore_state(request)
    if not state.ready:
        raise http_error(503, "Datastore is not ready")
