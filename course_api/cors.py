from __future__ import annotations

from collections.abc import Sequence

from course_api.config import Config


def build_allowed_origins(config: Config) -> tuple[str, ...]:
    """Deployed frontend first, then the local development origin."""
    origins: list[str] = []
    for raw in (config.FRONTEND_URL, config.DEV_LOCAL_ORIGIN):
        value = (raw or "").strip()
        if value and value not in origins:
            origins.append(value)
    return tuple(origins)


def is_origin_allowed(origin: str | None, allowed_origins: Sequence[str]) -> bool:
    # Same-origin and non-browser clients send no Origin header.
    if not origin:
        return True
    return origin in allowed_origins
