from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

from fastapi import APIRouter

RouteDependencies: TypeAlias = list[Any]
RouteGroups: TypeAlias = Mapping[str, APIRouter]
DatastoreHealthCheck: TypeAlias = Callable[[], tuple[bool, str | None]]
