"""Rate limiting middleware."""

import logging
from typing import Callable, Iterable

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from tinylink.common.headers import client_identity
from tinylink.ratelimit import RateLimitDecision

from ..api.schemas import ErrorResponse, RateLimitResponse


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests from clients that are over budget or deny-listed.

    The limiter is read from ``app.state.rate_limiter`` at request time, so it
    can be created in the lifespan after the middleware stack is built.
    """

    def __init__(
        self,
        app,
        trust_forwarded: bool = False,
        exempt_paths: Iterable[str] = ("/health",),
        logger: logging.Logger = None,
    ):
        super().__init__(app)
        self.trust_forwarded = trust_forwarded
        self.exempt_paths = frozenset(exempt_paths)
        self.logger = logger or logging.getLogger("tinylink.web")

    async def dispatch(self, request: Request, call_next: Callable):
        limiter = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or request.url.path in self.exempt_paths:
            return await call_next(request)

        identity = client_identity(
            dict(request.headers),
            request.client.host if request.client else None,
            trust_forwarded=self.trust_forwarded,
        )
        decision = await limiter.check(identity)

        if decision is RateLimitDecision.BLACKLISTED:
            self.logger.info(f"Rejected blacklisted client {identity}: {request.method} {request.url.path}")
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content=ErrorResponse(detail="Client is temporarily blacklisted").model_dump(),
            )

        if decision is RateLimitDecision.RATE_LIMITED:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=RateLimitResponse(
                    detail="Rate limit exceeded",
                    limit=limiter.limit,
                    time_window=limiter.window_seconds,
                    retry_after=limiter.blacklist_seconds,
                ).model_dump(),
                headers={"Retry-After": str(limiter.blacklist_seconds)},
            )

        return await call_next(request)
