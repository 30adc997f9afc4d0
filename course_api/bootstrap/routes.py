from __future__ import annotations

from fastapi import FastAPI

from course_api.bootstrap.contracts import RouteDependencies, RouteGroups
from course_api.routes import register_routes


def register_domain_routes(
    api: FastAPI,
    *,
    route_groups: RouteGroups,
    route_dependencies: RouteDependencies | None = None,
) -> None:
    register_routes(api, route_groups, dependencies=route_dependencies)
