"""
Observability for the Data Route API.

Provides:
- JSON log formatting that stamps each record with the request ID and region
- Request correlation IDs carried in a context variable
- Prometheus metrics for HTTP traffic, statement execution and data route calls
- Middleware that times requests and echoes the request ID header

Usage:
    from app.core.observability import db_metrics, get_request_id, metrics
"""

import json
import logging
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

_request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
_region_ctx: ContextVar[str] = ContextVar("region", default="")


def generate_request_id() -> str:
    """Return a fresh UUID4 string for request correlation."""
    return str(uuid.uuid4())


def get_request_id() -> str:
    return _request_id_ctx.get()


def set_correlation_id(request_id: str) -> None:
    _request_id_ctx.set(request_id)


def get_region() -> str:
    return _region_ctx.get()


def set_region(region: str) -> None:
    _region_ctx.set(region)


# ============================================================================
# Logging
# ============================================================================

# Attributes every LogRecord carries; anything else arrived through extra=
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


class StructuredFormatter(logging.Formatter):
    """
    Render log records as one JSON object per line.

    Keys: timestamp, level, logger, message, file, line, function, plus
    request_id and region when a request is in flight, exception when
    exc_info is set, and extra for fields passed through ``extra=``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        for key, value in (("request_id", get_request_id()), ("region", get_region())):
            if value:
                entry[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["exception"] = {"type": type(exc).__name__, "message": str(exc)}

        extra = {k: v for k, v in vars(record).items() if k not in _STANDARD_RECORD_ATTRS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def configure_structured_logging(level: str = "INFO") -> None:
    """Replace root handlers with a single stream handler using StructuredFormatter."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


# ============================================================================
# Prometheus metrics
# ============================================================================


class Metrics:
    """Metric families exported on /metrics, all labelled by region."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        self.http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route and status",
            ["method", "route", "status_code", "region"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "route", "region"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=registry,
        )

        # One observation per executed statement
        self.db_query_duration_seconds = Histogram(
            "db_query_duration_seconds",
            "Statement execution time in seconds",
            ["operation", "region"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            registry=registry,
        )
        self.db_queries_total = Counter(
            "db_queries_total",
            "Executed statements by operation and status",
            ["operation", "status", "region"],
            registry=registry,
        )

        self.data_operations_total = Counter(
            "data_operations_total",
            "Data route calls by operation and outcome",
            ["operation", "outcome", "region"],
            registry=registry,
        )
        self.data_rows_returned = Histogram(
            "data_rows_returned",
            "Rows returned per list call",
            ["region"],
            buckets=(0, 1, 5, 10, 20, 50, 100, 250, 500, 1000),
            registry=registry,
        )
        self.data_fields_redacted_total = Counter(
            "data_fields_redacted_total",
            "Sensitive fields stripped from list results",
            ["region"],
            registry=registry,
        )


metrics = Metrics(CollectorRegistry())


class DBMetricsWrapper:
    """
    Times statement execution.

        with db_metrics.track("list"):
            result = await conn.execute(clause, params)
    """

    def __init__(self, metrics_instance: Metrics | None = None) -> None:
        self.metrics = metrics_instance or metrics

    @contextmanager
    def track(self, operation: str) -> Iterator[None]:
        region = get_region() or "unknown"
        status = "error"
        started = time.perf_counter()
        try:
            yield
            status = "success"
        finally:
            self.metrics.db_query_duration_seconds.labels(
                operation=operation, region=region
            ).observe(time.perf_counter() - started)
            self.metrics.db_queries_total.labels(
                operation=operation, status=status, region=region
            ).inc()


db_metrics = DBMetricsWrapper()


def metrics_endpoint() -> Response:
    """Prometheus text exposition of the application registry."""
    return Response(content=generate_latest(metrics.registry), media_type=CONTENT_TYPE_LATEST)


# ============================================================================
# Middleware
# ============================================================================


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Assigns the request ID and region, records HTTP metrics and logs one line
    per request on the ``app.request`` logger.

    Probe and scrape paths are counted but not logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        metrics_instance: Metrics | None = None,
        skip_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
    ) -> None:
        super().__init__(app)
        self.metrics = metrics_instance or metrics
        self.skip_paths = tuple(skip_paths or ("/api/v1/health", "/api/v1/readyz", "/metrics"))
        self.request_id_header = request_id_header
        self.logger = logging.getLogger("app.request")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        from app.core.config import settings

        request_id = request.headers.get(self.request_id_header) or generate_request_id()
        set_correlation_id(request_id)
        set_region(settings.app_region)

        route = getattr(request.state, "route", None)
        path = route.path if route else request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = self._observe(request.method, path, 500, started)
            self.logger.error(
                f"{request.method} {path} failed: {type(exc).__name__}",
                extra={"method": request.method, "route": path, "latency_ms": elapsed},
                exc_info=True,
            )
            raise

        elapsed = self._observe(request.method, path, response.status_code, started)
        response.headers[self.request_id_header] = request_id
        if not path.startswith(self.skip_paths):
            self.logger.info(
                f"{request.method} {path}",
                extra={
                    "method": request.method,
                    "route": path,
                    "status_code": response.status_code,
                    "latency_ms": elapsed,
                },
            )
        return response

    def _observe(self, method: str, route: str, status_code: int, started: float) -> float:
        """Record the request in the HTTP metrics and return latency in ms."""
        seconds = time.perf_counter() - started
        region = get_region() or "unknown"
        self.metrics.http_requests_total.labels(
            method=method, route=route, status_code=status_code, region=region
        ).inc()
        self.metrics.http_request_duration_seconds.labels(
            method=method, route=route, region=region
        ).observe(seconds)
        return round(seconds * 1000, 2)


def extract_request_context(request: Request) -> dict[str, Any]:
    """Request fields attached to error logs."""
    return {
        "request_id": get_request_id(),
        "method": request.method,
        "path": request.url.path,
        "region": get_region(),
    }
