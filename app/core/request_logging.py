"""
Request/response logging middleware for data route calls.

Logs each call as one structured entry (method, path, sanitized headers and
body, status, duration). Request bodies of ``add``/``edit`` carry row values,
so body fields named like credentials are masked with the same denylist the
list results are redacted with.

Enabled in local/test environments.
"""

import json
import logging
import time
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.observability import get_region, get_request_id
from app.sql.redaction import DEFAULT_SENSITIVE_FIELDS, RedactionFilter

logger = logging.getLogger("app.api")

REDACTED = "***REDACTED***"

# Sensitive headers that should be redacted
SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "x-metrics-token",
    "x-health-token",
}

# Body keys masked in addition to the result denylist
SENSITIVE_BODY_FIELDS = {
    "token",
    "secret",
    "access_token",
    "refresh_token",
    "client_secret",
}

SKIP_PATHS = ("/metrics", "/api/v1/health", "/api/v1/readyz")

_body_filter = RedactionFilter(DEFAULT_SENSITIVE_FIELDS).extended(SENSITIVE_BODY_FIELDS)


def _sanitize_headers(headers: dict[str, str]) -> dict[str, str]:
    """Redact sensitive headers."""
    return {k: REDACTED if k.lower() in SENSITIVE_HEADERS else v for k, v in headers.items()}


def _sanitize_body(body: Any) -> Any:
    """Mask sensitive keys at any depth of a JSON body."""
    if isinstance(body, dict):
        return {
            k: REDACTED if _body_filter.is_sensitive(k) else _sanitize_body(v)
            for k, v in body.items()
        }
    if isinstance(body, list):
        return [_sanitize_body(item) for item in body]
    return body


def _decode_body(raw: bytes, max_size: int) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        return _sanitize_body(json.loads(text))
    except json.JSONDecodeError:
        return text[:max_size]


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every data route call as a single JSON ``api_call`` entry."""

    def __init__(self, app: ASGIApp, max_body_size: int = 5000) -> None:
        super().__init__(app)
        # Cap for non-JSON bodies; JSON bodies are logged whole after masking
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        body = None
        if request.method in ("POST", "PUT", "PATCH"):
            body = _decode_body(await request.body(), self.max_body_size)

        response = await call_next(request)

        entry: dict[str, Any] = {
            "type": "api_call",
            "request_id": get_request_id() or "unknown",
            "request": {
                "method": request.method,
                "path": request.url.path,
                "headers": _sanitize_headers(dict(request.headers)),
                "body": body,
            },
            "response": {
                "status_code": response.status_code,
                "headers": _sanitize_headers(dict(response.headers)),
            },
            "performance": {
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        }
        if get_region():
            entry["region"] = get_region()

        logger.log(_level_for(response.status_code), json.dumps(entry, default=str))
        return response
