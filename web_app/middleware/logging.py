"""Request logging middleware."""

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Rejections by the rate limiter
REJECTED_STATUSES = frozenset({403, 429})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request: method, path, client, status and duration."""

    def __init__(self, app, logger: logging.Logger = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger("tinylink.web")

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        line = f"{request.method} {request.url.path} from {client_ip}"

        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception(f"{line} - Unhandled error after {self._elapsed_ms(start):.2f}ms")
            raise

        level = logging.WARNING if response.status_code in REJECTED_STATUSES else logging.INFO
        self.logger.log(
            level,
            f"{line} - Status: {response.status_code} - Duration: {self._elapsed_ms(start):.2f}ms",
        )
        return response

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.perf_counter() - start) * 1000
