"""FastAPI application factory."""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .middleware.logging import LoggingMiddleware
from .middleware.ratelimit import RateLimitMiddleware


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 rather than FastAPI's default 422."""
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message},
    )


def create_app(
    service_instance,
    config,
    rate_limiter=None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        service_instance: ShortLinkService instance (may be set later in the lifespan)
        config: Configuration instance
        rate_limiter: Optional RateLimiter (may be set later in the lifespan)

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="tinylink",
        description="URL shortening service with cached resolution and rate limiting",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Store instances in app state for access in routes
    app.state.service = service_instance
    app.state.config = config
    app.state.rate_limiter = rate_limiter

    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # Innermost first: rate limiting runs inside logging, so rejections are logged
    if config.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            trust_forwarded=config.trust_forwarded_headers,
        )
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(api_router, tags=["API"])

    return app
