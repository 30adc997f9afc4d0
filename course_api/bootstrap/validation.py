from __future__ import annotations

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from course_api.config import Config

MAX_PORT = 65535


class MissingConfigurationError(RuntimeError):
    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing environment variable(s): {', '.join(missing)}")
        self.missing = list(missing)


class InvalidConfigurationError(RuntimeError):
    pass


def _validate_database_url(database_url: str) -> None:
    scheme = database_url.split("://", 1)[0] if "://" in database_url else "<none>"
    try:
        make_url(database_url).get_dialect()
    except (ArgumentError, NoSuchModuleError):
        # Credentials stay out of the message; only the scheme is reported.
        raise InvalidConfigurationError(
            f"DATABASE_URL must be a SQLAlchemy database URL with a supported dialect (got scheme '{scheme}')."
        ) from None


def validate_startup_config(config: Config) -> None:
    missing = config.missing_required_settings
    if missing:
        raise MissingConfigurationError(missing)
    _validate_database_url(str(config.DATABASE_URL).strip())
    if not 0 < int(config.PORT) <= MAX_PORT:
        raise InvalidConfigurationError(f"PORT must be between 1 and {MAX_PORT}.")
    if int(config.MAX_REQUEST_BODY_BYTES) <= 0:
        raise InvalidConfigurationError("MAX_REQUEST_BODY_BYTES must be greater than 0.")
    if int(config.TRUST_PROXY_HOPS) < 0:
        raise InvalidConfigurationError("TRUST_PROXY_HOPS must be greater than or equal to 0.")
    if int(config.DB_POOL_SIZE) <= 0:
        raise InvalidConfigurationError("DB_POOL_SIZE must be greater than 0.")
    if int(config.DB_MAX_OVERFLOW) < 0:
        raise InvalidConfigurationError("DB_MAX_OVERFLOW must be greater than or equal to 0.")
    if int(config.DB_POOL_TIMEOUT_SECONDS) <= 0:
        raise InvalidConfigurationError("DB_POOL_TIMEOUT_SECONDS must be greater than 0.")
    if int(config.DB_POOL_RECYCLE_SECONDS) <= 0:
        raise InvalidConfigurationError("DB_POOL_RECYCLE_SECONDS must be greater than 0.")
    if int(config.DB_CONNECT_TIMEOUT_SECONDS) <= 0:
        raise InvalidConfigurationError("DB_CONNECT_TIMEOUT_SECONDS must be greater than 0.")
