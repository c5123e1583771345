"""
Rate Limiting Service

Per-client rate limiting with slowapi. Limits are counted in Redis so they
hold across API instances; with rate limiting disabled (tests, local dev)
no storage is touched.

Every recommendation endpoint uses RATE_LIMIT_DEFAULT (100/minute by
default). AI endpoints call a paid upstream and use the stricter
AI_RATE_LIMIT.
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

AI_RATE_LIMIT = "20/minute"


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Honors X-Forwarded-For / X-Real-IP set by the load balancer, falling
    back to the direct connection address.
    """
    # X-Forwarded-For can contain multiple IPs; first is the client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """Create the limiter, backed by Redis when rate limiting is enabled."""
    storage_uri = settings.redis_url if settings.rate_limit_enabled else "memory://"

    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri=storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"default: {settings.rate_limit_default}"
    )

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Return the standard error envelope with 429 Too Many Requests.

    Adds Retry-After and X-RateLimit-Limit headers.
    """
    limit_detail = str(exc.detail)

    response = JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests. Please slow down.",
        },
    )
    response.headers["Retry-After"] = str(60)
    response.headers["X-RateLimit-Limit"] = limit_detail

    logger.warning(
        f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}"
    )

    return response
