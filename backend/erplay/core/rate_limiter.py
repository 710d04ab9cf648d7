"""
Rate Limiting for the ERPlay API
================================
Implements rate limiting using slowapi with in-memory storage.

- Default: RATE_LIMIT_PER_MINUTE per user (or per IP when anonymous)
- /auth/login: 10 req/min (brute force protection)
- /auth/forgot-password: 3 req/min (mail flooding protection)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from erplay.core.config import settings
from erplay.core.logging_config import logger


LOGIN_LIMIT = "10/minute"
FORGOT_PASSWORD_LIMIT = "3/minute"


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key: authenticated user ID (set by the auth dependency),
    else the client IP address.
    """
    user_id = getattr(request.state, 'user_id', None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    strategy="fixed-window",
    enabled=not settings.TESTING,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return {"error": ...} with a Retry-After header"""
    retry_after = "60"
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}",
        extra={"event_type": "rate_limit", "http_path": request.url.path}
    )
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests. Please slow down."},
        headers={"Retry-After": retry_after},
    )

