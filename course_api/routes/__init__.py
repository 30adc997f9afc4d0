from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, FastAPI

from course_api.routes.dev import router as dev_router

API_PREFIX = "/api/v1"

# Mount order is part of the public contract.
ROUTE_PREFIXES: tuple[tuple[str, str], ...] = (
    ("media", f"{API_PREFIX}/media"),
    ("user", f"{API_PREFIX}/user"),
    ("course", f"{API_PREFIX}/course"),
    ("purchase", f"{API_PREFIX}/purchase"),
    ("progress", f"{API_PREFIX}/progress"),
)
ROUTE_GROUP_NAMES = tuple(name for name, _ in ROUTE_PREFIXES)
DEV_PREFIX = f"{API_PREFIX}/dev"


def default_route_groups() -> dict[str, APIRouter]:
    """Empty placeholder groups, one per prefix."""
    return {name: APIRouter(tags=[name]) for name in ROUTE_GROUP_NAMES}


def register_routes(
    app: FastAPI,
    route_groups: Mapping[str, APIRouter],
    *,
    dependencies: list[Any] | None = None,
) -> None:
    unknown = sorted(set(route_groups) - set(ROUTE_GROUP_NAMES))
    if unknown:
        raise RuntimeError(f"Unknown route groups: {', '.join(unknown)}")
    missing = [name for name in ROUTE_GROUP_NAMES if name not in route_groups]
    if missing:
        raise RuntimeError(f"Missing route groups: {', '.join(missing)}")

    dep = dependencies or []
    for name, prefix in ROUTE_PREFIXES:
        app.include_router(route_groups[name], prefix=prefix, dependencies=dep)
    app.include_router(dev_router, prefix=DEV_PREFIX)
