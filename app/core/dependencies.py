"""
FastAPI dependency injection utilities.

Provides reusable dependencies for the database handle and the data service.
Hooks, the result filter and the startup callback are configured once on
``app.state.data_route`` by ``create_app``; every request shares them.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from app.core.config import settings
from app.core.db import get_async_engine
from app.db.database import AsyncEngineDatabase, Database, RegisterCallback
from app.services.data_service import DataPolicy, DataService
from app.sql.hooks import FieldHooks
from app.sql.redaction import DEFAULT_SENSITIVE_FIELDS, RedactionFilter, ResultFilter

# ============================================================================
# Data Route Configuration
# ============================================================================


@dataclass(frozen=True)
class DataRouteConfig:
    """Startup-time configuration shared by every data route request."""

    hooks: FieldHooks
    result_filter: ResultFilter
    policy: DataPolicy
    on_register: RegisterCallback | None = None


def build_data_route_config(
    hooks: FieldHooks | None = None,
    result_filter: ResultFilter | None = None,
    on_register: RegisterCallback | None = None,
) -> DataRouteConfig:
    """
    Combine caller-supplied pieces with the configured defaults.

    Without an explicit result filter the default denylist is used, extended
    by DATA_REDACTED_FIELDS.
    """
    if result_filter is None:
        result_filter = RedactionFilter(DEFAULT_SENSITIVE_FIELDS).extended(
            settings.data_redacted_fields_list
        )
    return DataRouteConfig(
        hooks=hooks or FieldHooks(),
        result_filter=result_filter,
        policy=DataPolicy.from_settings(settings),
        on_register=on_register,
    )


def get_data_route_config(request: Request) -> DataRouteConfig:
    """Configuration stored on the application at startup."""
    config = getattr(request.app.state, "data_route", None)
    if config is None:
        config = build_data_route_config()
        request.app.state.data_route = config
    return config


# ============================================================================
# Database Dependencies
# ============================================================================


def get_database() -> Database:
    """
    Database handle dependency for FastAPI endpoints.

    Wraps the process-wide async engine; each execute call runs in its own
    short transaction.

    Usage:
        @router.get("/readyz")
        async def readyz(database: DatabaseDep):
            await database.execute(Statement("SELECT 1"))
    """
    return AsyncEngineDatabase(get_async_engine())


# Type alias for database handle dependency
DatabaseDep = Annotated[Database, Depends(get_database)]


# ============================================================================
# Service Dependencies
# ============================================================================


def get_data_service(
    database: DatabaseDep,
    config: Annotated[DataRouteConfig, Depends(get_data_route_config)],
) -> DataService:
    """Data service bound to the request's database handle and the shared configuration."""
    return DataService(
        database,
        hooks=config.hooks,
        result_filter=config.result_filter,
        policy=config.policy,
    )


# Type alias for data service dependency
DataServiceDep = Annotated[DataService, Depends(get_data_service)]
