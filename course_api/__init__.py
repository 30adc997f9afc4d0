import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from course_api.bootstrap import (
    register_core_middleware,
    register_domain_routes,
    register_error_funnel,
    register_exception_handlers,
    register_system_routes,
    validate_startup_config,
)
from course_api.bootstrap.contracts import RouteGroups
from course_api.config import Config
from course_api.database import init_db
from course_api.datastore import DatastoreState, start_datastore_connection, stop_datastore_connection
from course_api.logging_config import configure_logging
from course_api.observability import register_observability
from course_api.routes import default_route_groups
from course_api.version import APP_VERSION

OPENAPI_TAGS: list[dict[str, str]] = [
    {"name": "system", "description": "System and health endpoints"},
    {"name": "media", "description": "Media upload and serving"},
    {"name": "user", "description": "Account management"},
    {"name": "course", "description": "Course catalog and content"},
    {"name": "purchase", "description": "Payment and checkout"},
    {"name": "progress", "description": "Learner progress tracking"},
    {"name": "dev", "description": "Ownership check"},
]

logger = logging.getLogger("course_api.api")


def create_app(
    app_config: Config | None = None,
    *,
    route_groups: RouteGroups | None = None,
    route_dependencies: list[Any] | None = None,
) -> FastAPI:
    if app_config is None:
        app_config = Config()

    configure_logging(level=app_config.LOG_LEVEL, json_logs=app_config.LOG_JSON)
    validate_startup_config(app_config)

    @asynccontextmanager
    async def _lifespan(_api: FastAPI):
        # Not awaited: requests may be served before the datastore answers.
        start_datastore_connection(_api.state.db_engine, _api.state.datastore)
        try:
            yield
        finally:
            await stop_datastore_connection(_api.state.db_engine, _api.state.datastore)

    api = FastAPI(
        title="Course Marketplace API",
        version=APP_VERSION,
        description="HTTP bootstrap for the course marketplace services",
        openapi_tags=OPENAPI_TAGS,
        lifespan=_lifespan,
    )
    api.state.config = app_config
    api.state.datastore = DatastoreState()
    api.state.db_engine = init_db(
        str(app_config.DATABASE_URL),
        pool_size=app_config.DB_POOL_SIZE,
        max_overflow=app_config.DB_MAX_OVERFLOW,
        pool_timeout_seconds=app_config.DB_POOL_TIMEOUT_SECONDS,
        pool_recycle_seconds=app_config.DB_POOL_RECYCLE_SECONDS,
        connect_timeout_seconds=app_config.DB_CONNECT_TIMEOUT_SECONDS,
    )

    # Middleware added later wraps middleware added earlier.
    register_exception_handlers(api, logger=logger)
    register_core_middleware(api, app_config)
    register_error_funnel(api, logger=logger)
    register_observability(api)

    def datastore_health_check() -> tuple[bool, str | None]:
        state: DatastoreState = api.state.datastore
        if state.ready:
            return True, None
        if state.pending:
            return False, "datastore connection pending"
        return False, "datastore connection failed"

    register_domain_routes(
        api,
        route_groups=route_groups if route_groups is not None else default_route_groups(),
        route_dependencies=route_dependencies,
    )
    register_system_routes(api, datastore_health_check=datastore_health_check)

    return api
