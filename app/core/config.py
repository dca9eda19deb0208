"""Application configuration using Pydantic Settings.

This project loads configuration from environment variables.

Optionally, you may point `ENV_FILE` at a local env file (for development).
In secret-manager workflows, do not set `ENV_FILE` (or set it to an empty
string) so injected environment variables are the single source of truth.
"""

import os
from enum import Enum

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url


class AppEnvironment(str, Enum):
    """Application environment values."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


# Engine-level options that some deployments put in DATABASE_URL; they must not
# reach the driver's connect() call.
_ENGINE_QUERY_OPTIONS = {"pool_size", "max_overflow", "pool_timeout", "pool_recycle"}

# Scheme -> (async driver scheme, sync driver scheme)
_DRIVER_SCHEMES = {
    "mysql": ("mysql+aiomysql", "mysql+pymysql"),
    "mariadb": ("mysql+aiomysql", "mysql+pymysql"),
    "postgresql": ("postgresql+asyncpg", "postgresql+psycopg"),
    "postgres": ("postgresql+asyncpg", "postgresql+psycopg"),
    "sqlite": ("sqlite+aiosqlite", "sqlite+pysqlite"),
}


def _normalize_url(url: str, *, use_async: bool) -> str:
    """Pick the driver for a database URL and drop engine-only query options."""
    parsed = make_url(url)
    drivers = _DRIVER_SCHEMES.get(parsed.get_backend_name())
    if drivers is not None:
        parsed = parsed.set(drivername=drivers[0] if use_async else drivers[1])

    query = {key: value for key, value in parsed.query.items() if key not in _ENGINE_QUERY_OPTIONS}
    return parsed.set(query=query).render_as_string(hide_password=False)


class Settings(BaseSettings):
    """
    Application settings with type validation.

    Configuration is loaded from environment variables, with support
    for .env files in development.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "data-route-api"
    app_log_level: str = "INFO"
    app_region: str = "local"

    # Observability
    observability_enabled: bool = True
    observability_structured_logs: bool = True
    observability_request_id_header: str = "X-Request-ID"

    # Database - Runtime app user (used by FastAPI)
    database_url_app: str
    database_echo: bool = False

    # Metrics token for protecting /metrics endpoint
    metrics_token: str | None = None

    # Health check token for protecting /health and /readyz endpoints (optional)
    health_token: str | None = None

    # CORS Configuration
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Data route policy
    # Rows returned by list when the caller sends no limit
    data_list_default_limit: int = 20
    # Offset applied to list when the caller sends none (None = no OFFSET clause)
    data_list_default_offset: int | None = None
    # Row bound applied to remove when the caller sends none (MySQL only).
    # Unset rather than 1: SQLite and PostgreSQL have no DELETE ... LIMIT, so a
    # default bound would make every remove fail there. Set 1 on MySQL to cap
    # each remove at a single row.
    data_remove_default_limit: int | None = None
    # Whether edit/remove may run with an empty where clause (caller must also opt in)
    data_allow_unconditional_update: bool = False
    data_allow_unconditional_delete: bool = False
    # Extra comma-separated field names to strip from list results
    data_redacted_fields: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def data_redacted_fields_list(self) -> list[str]:
        """Parse extra redacted field names into a list."""
        return [name.strip() for name in self.data_redacted_fields.split(",") if name.strip()]

    @property
    def async_url(self) -> str:
        """Database URL with the async driver selected."""
        return _normalize_url(self.database_url_app, use_async=True)

    @property
    def sync_url(self) -> str:
        """Database URL with the sync driver selected."""
        return _normalize_url(self.database_url_app, use_async=False)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        """Validate and parse app_env to AppEnvironment enum."""
        if isinstance(v, AppEnvironment):
            return v
        try:
            return AppEnvironment(v.lower())
        except ValueError:
            raise ValueError(
                f"app_env must be one of {[e.value for e in AppEnvironment]}, got '{v}'"
            )

    @field_validator("data_list_default_limit", "data_remove_default_limit")
    @classmethod
    def validate_positive_limit(cls, v: int | None) -> int | None:
        """Limits must be positive when set."""
        if v is not None and v < 1:
            raise ValueError(f"limit defaults must be >= 1, got {v}")
        return v

    @field_validator("data_list_default_offset")
    @classmethod
    def validate_offset(cls, v: int | None) -> int | None:
        """Offsets must not be negative when set."""
        if v is not None and v < 0:
            raise ValueError(f"data_list_default_offset must be >= 0, got {v}")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """
        Validate production-specific settings.

        These checks prevent insecure configurations from being deployed to production.
        """
        if self.app_env == AppEnvironment.PROD:
            if self.data_allow_unconditional_update or self.data_allow_unconditional_delete:
                raise ValueError(
                    "Unconditional update/delete must not be enabled in production"
                )

            if self.observability_enabled and not self.metrics_token:
                raise ValueError("METRICS_TOKEN is required in production")

            if self.database_url_app.startswith("sqlite"):
                raise ValueError("DATABASE_URL_APP must not use SQLite in production")

            # CORS must not allow localhost in production
            for origin in self.cors_origins_list:
                if "localhost" in origin or "127.0.0.1" in origin:
                    raise ValueError(
                        f"CORS origins must not contain localhost in production: {origin}"
                    )

        return self


settings = Settings()
