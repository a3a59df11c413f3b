"""HTTP access logging middleware."""
from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request before and after handler execution, and on errors."""

    def __init__(self, app, logger: logging.Logger | None = None) -> None:
        super().__init__(app)
        self.logger = logger or logging.getLogger("api.access")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        method = request.method
        path = request.url.path
        client = request.client.host if request.client else None
        self.logger.debug(
            f"Incoming request {method} {path}",
            extra={"method": method, "path": path, "client": client},
        )
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self.logger.exception(
                f"Request failed {method} {path}",
                extra={"method": method, "path": path, "client": client, "took_ms": elapsed_ms},
            )
            raise
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        self.logger.info(
            f"Handled {method} {path}",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "client": client,
                "took_ms": elapsed_ms,
            },
        )
        return response
