"""
Application entry point.

``create_app`` wires the data and health routers, middleware, exception
handlers and the token-protected Prometheus endpoint. Deployments that need
field hooks, a custom result filter or schema bootstrapping build their own
app with ``create_app(hooks=..., result_filter=..., on_register=...)``;
the module-level ``app`` uses the defaults.
"""

import hmac
import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.data import router as data_router
from app.api.routes.health import router as health_router
from app.core.config import AppEnvironment, settings
from app.core.db import reset_async_engine
from app.core.dependencies import build_data_route_config, get_database
from app.core.errors import DataRouteError, get_status_code
from app.core.middleware import RequestSizeLimitMiddleware
from app.core.observability import (
    ObservabilityMiddleware,
    configure_structured_logging,
    extract_request_context,
    metrics_endpoint,
)
from app.core.request_logging import RequestLoggingMiddleware
from app.db.database import RegisterCallback
from app.services.data_service import DataService
from app.sql.hooks import FieldHooks
from app.sql.redaction import ResultFilter

if settings.observability_structured_logs:
    configure_structured_logging(settings.app_log_level)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
MAX_BODY_BYTES = 1024 * 1024

REDACTED = "[REDACTED]"
_REDACTED_DETAIL_KEYS = frozenset({"sql", "template"})
# File paths, SQL statements and ??-templates
_LEAKY_VALUE = re.compile(
    r"[/\\][\w/-]+\.py|SELECT.*FROM|INSERT INTO|UPDATE.*SET|DELETE FROM|\?\?",
    re.IGNORECASE,
)


def _sanitize_error_details(details: dict[str, Any]) -> dict[str, Any]:
    """
    Strip SQL text, statement templates and file paths from error details.

    Only applied in production; other environments see the details as raised.
    """
    if settings.app_env != AppEnvironment.PROD:
        return details

    def scrub(key: str | None, value: Any) -> Any:
        if key in _REDACTED_DETAIL_KEYS:
            return REDACTED
        if isinstance(value, str):
            return REDACTED if _LEAKY_VALUE.search(value) else value
        if isinstance(value, dict):
            return {k: scrub(k, v) for k, v in value.items()}
        if isinstance(value, list):
            return [scrub(None, item) if isinstance(item, dict) else item for item in value]
        return value

    return {key: scrub(key, value) for key, value in details.items()}


def _error_response(
    status_code: int,
    error: str,
    message: Any,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "details": details or {}},
        headers=headers,
    )


async def data_route_error_handler(request: Request, exc: DataRouteError) -> JSONResponse:
    """ValidationError -> 400, BuildError -> 422, ExecutionError -> 500."""
    status_code = get_status_code(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"{type(exc).__name__}: {exc.message}",
        extra={"details": exc.details, **extract_request_context(request)},
    )
    return _error_response(
        status_code, type(exc).__name__, exc.message, _sanitize_error_details(exc.details)
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies are reported as ValidationError before any SQL is built."""
    errors = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    logger.warning(
        "ValidationError: invalid request body",
        extra={"errors": errors, **extract_request_context(request)},
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "ValidationError",
        "Invalid request parameters",
        {"errors": errors},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if exc.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        logger.warning(
            f"Access denied: {exc.detail}",
            extra={
                "security_event": True,
                "client_ip": request.client.host if request.client else "unknown",
                **extract_request_context(request),
            },
        )
    elif exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code}: {exc.detail}", extra=extract_request_context(request))
    return _error_response(exc.status_code, "HTTPException", exc.detail, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception: {exc}", exc_info=True, extra=extract_request_context(request)
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
    )


def require_metrics_token(request: Request) -> None:
    """Compare X-Metrics-Token against METRICS_TOKEN in constant time."""
    expected = settings.metrics_token
    if not expected:
        logger.error(
            "Metrics endpoint accessed but METRICS_TOKEN not configured",
            extra={"security_event": True},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Metrics token not configured",
        )
    supplied = request.headers.get("X-Metrics-Token") or ""
    if not hmac.compare_digest(supplied, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid metrics token")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the register callback once, then dispose the engine on shutdown."""
    config = app.state.data_route
    if config.on_register is not None:
        # Resolve through overrides so tests register against their own database
        database = app.dependency_overrides.get(get_database, get_database)()
        service = DataService(
            database,
            hooks=config.hooks,
            result_filter=config.result_filter,
            policy=config.policy,
        )
        await service.register(config.on_register)
    yield
    await reset_async_engine()


def create_app(
    *,
    hooks: FieldHooks | None = None,
    result_filter: ResultFilter | None = None,
    on_register: RegisterCallback | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        hooks: Field hooks applied by every data operation
        result_filter: Replaces the default redaction of list results
        on_register: Called once with the database handle at startup
    """
    app = FastAPI(
        title="Data Route API",
        description="Generic add/edit/remove/list access over database tables",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.data_route = build_data_route_config(
        hooks=hooks, result_filter=result_filter, on_register=on_register
    )

    # Starlette runs the last-added middleware first
    if settings.observability_enabled:
        app.add_middleware(
            ObservabilityMiddleware,
            request_id_header=settings.observability_request_id_header,
        )
    if settings.app_env in (AppEnvironment.LOCAL, AppEnvironment.TEST):
        app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestSizeLimitMiddleware, max_size_bytes=MAX_BODY_BYTES)

    app.add_exception_handler(DataRouteError, data_route_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(data_router, prefix=API_PREFIX)

    if settings.observability_enabled:

        @app.get(
            "/metrics",
            include_in_schema=False,
            dependencies=[Depends(require_metrics_token)],
        )
        def prometheus_metrics() -> Response:
            return metrics_endpoint()

    return app


app = create_app()
