from __future__ import annotations

from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

REQUIRED_SETTINGS = ("STRIPE_SECRET_KEY", "FRONTEND_URL", "DATABASE_URL")
PRODUCTION_ENVS = frozenset({"prod", "production"})


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Required; left optional here so validation can name every missing key.
    STRIPE_SECRET_KEY: str | None = None
    FRONTEND_URL: str | None = None
    DATABASE_URL: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "MONGO_URI"),
    )

    HOST: str = "0.0.0.0"
    PORT: int = 3000
    APP_ENV: str = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    TRUST_PROXY_HOPS: int = 1
    MAX_REQUEST_BODY_BYTES: int = 102_400

    DEV_LOCAL_ORIGIN: str = "http://localhost:5173"
    DEV_CREATED_BY: str = "MD SAMIR ANSARI"

    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT_SECONDS: int = 30
    DB_POOL_RECYCLE_SECONDS: int = 1800
    DB_CONNECT_TIMEOUT_SECONDS: int = 5

    @property
    def app_env(self) -> str:
        value = (self.APP_ENV or "").strip().lower()
        return value or "development"

    @property
    def is_production(self) -> bool:
        return self.app_env in PRODUCTION_ENVS

    @property
    def missing_required_settings(self) -> List[str]:
        return [name for name in REQUIRED_SETTINGS if not (getattr(self, name) or "").strip()]
