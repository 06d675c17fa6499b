"""API routes implementation."""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from .schemas import (
    ErrorResponse,
    HealthResponse,
    ShortenRequest,
    ShortenResponse,
    ShortLinkResponse,
)
from tinylink.common.url_builder import short_url_for_request
from tinylink.exceptions import (
    GenerationExhaustedError,
    InvalidURLError,
    ShortLinkNotFoundError,
    StoreUnavailableError,
)

router = APIRouter()


def _not_found(short_code: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Short code '{short_code}' not found",
    )


def _unavailable(e: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Internal error: {str(e)}",
    )


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Create short URL",
)
async def shorten_url(request: Request, body: ShortenRequest):
    """Create a shortened URL."""
    service = request.app.state.service
    config = request.app.state.config

    try:
        link = await service.create_short_link(body.url)
    except InvalidURLError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (GenerationExhaustedError, StoreUnavailableError) as e:
        raise _unavailable(e)

    short_url = short_url_for_request(
        link.short_code,
        headers=dict(request.headers),
        fallback_base_url=config.base_url,
        request_scheme=request.url.scheme,
        request_host=request.headers.get("host"),
    )

    return ShortenResponse.from_link(link, short_url=short_url)


@router.get(
    "/shorten/{short_code}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    responses={404: {"model": ErrorResponse, "description": "Short code not found"}},
    summary="Redirect to the original URL",
)
async def redirect_to_url(request: Request, short_code: str):
    """Redirect to the original URL (this also counts the access)."""
    service = request.app.state.service

    try:
        long_url = await service.resolve(short_code)
    except ShortLinkNotFoundError:
        raise _not_found(short_code)
    except StoreUnavailableError as e:
        raise _unavailable(e)

    # 302 so clients keep coming back through the counter
    return RedirectResponse(url=long_url, status_code=status.HTTP_302_FOUND)


@router.put(
    "/shorten/{short_code}",
    response_model=ShortLinkResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        404: {"model": ErrorResponse, "description": "Short code not found"},
    },
    summary="Update short URL",
)
async def update_url(request: Request, short_code: str, body: ShortenRequest):
    """Point a short code at a new URL."""
    service = request.app.state.service

    try:
        link = await service.update_short_link(short_code, body.url)
    except InvalidURLError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ShortLinkNotFoundError:
        raise _not_found(short_code)
    except StoreUnavailableError as e:
        raise _unavailable(e)

    return ShortLinkResponse.from_link(link)


@router.delete(
    "/shorten/{short_code}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: {"model": ErrorResponse, "description": "Short code not found"}},
    summary="Delete short URL",
)
async def delete_url(request: Request, short_code: str):
    """Delete a short URL."""
    service = request.app.state.service

    try:
        await service.delete_short_link(short_code)
    except ShortLinkNotFoundError:
        raise _not_found(short_code)
    except StoreUnavailableError as e:
        raise _unavailable(e)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/shorten/{short_code}/stats",
    response_model=ShortLinkResponse,
    responses={404: {"model": ErrorResponse, "description": "Short code not found"}},
    summary="Get URL statistics",
)
async def get_url_stats(request: Request, short_code: str):
    """Get a short URL record including its access count."""
    service = request.app.state.service

    try:
        link = await service.get_stats(short_code)
    except ShortLinkNotFoundError:
        raise _not_found(short_code)
    except StoreUnavailableError as e:
        raise _unavailable(e)

    return ShortLinkResponse.from_link(link)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(request: Request):
    """Health check endpoint for load balancers and monitoring."""
    service = request.app.state.service

    health = await service.health_check()

    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
