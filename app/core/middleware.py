"""Request body size limit middleware for the data route."""

import logging
from collections.abc import Callable

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

_TOO_LARGE_BODY = (
    '{"error":"RequestTooLarge","message":"Request body exceeds maximum allowed size","details":{}}'
)


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject request bodies larger than a fixed size with 413.

    Both the Content-Length header and the bytes actually received are
    checked, so a missing or understated header does not bypass the limit.
    """

    def __init__(self, app: ASGIApp, max_size_bytes: int = 1024 * 1024) -> None:
        """
        Initialize middleware with max request size.

        Args:
            app: ASGI application
            max_size_bytes: Maximum request body size (default: 1MB)
        """
        super().__init__(app)
        self.max_size_bytes = max_size_bytes

    def _reject(self, request: Request, size: int, source: str) -> Response:
        logger.warning(
            f"Request size {size} bytes ({source}) exceeds limit {self.max_size_bytes} bytes",
            extra={"path": request.url.path},
        )
        return Response(
            content=_TOO_LARGE_BODY,
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            media_type="application/json",
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and enforce size limit.

        Args:
            request: Incoming request
            call_next: Next middleware/route handler

        Returns:
            Response or 413 error if request too large
        """
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > self.max_size_bytes:
                return self._reject(request, int(content_length), "header")

        if request.method in ("POST", "PUT", "PATCH"):
            # Starlette caches the body on the request, so downstream
            # handlers can read it again.
            body = await request.body()
            if len(body) > self.max_size_bytes:
                return self._reject(request, len(body), "actual")

        return await call_next(request)
