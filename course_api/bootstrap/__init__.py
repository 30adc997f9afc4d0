from course_api.bootstrap.exception_handlers import register_error_funnel, register_exception_handlers
from course_api.bootstrap.middleware import register_core_middleware
from course_api.bootstrap.routes import register_domain_routes
from course_api.bootstrap.system_routes import register_system_routes
from course_api.bootstrap.validation import (
    InvalidConfigurationError,
    MissingConfigurationError,
    validate_startup_config,
)

__all__ = [
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "register_core_middleware",
    "register_domain_routes",
    "register_error_funnel",
    "register_system_routes",
    "register_exception_handlers",
    "validate_startup_config",
]
