"""Rate limiting configuration using slowapi.

SCALABILITY NOTES:
- Production with several workers should use Redis:
  RATELIMIT_STORAGE_URI="redis://host:port/db"
- memory:// storage keeps separate counters per worker/replica
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

_using_redis = settings.ratelimit_storage_uri.startswith("redis://")

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.default_rate_limit],
    storage_uri=settings.ratelimit_storage_uri,
    in_memory_fallback_enabled=_using_redis,
    key_prefix="spt:",
)


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    """Custom handler for rate limit exceeded errors."""
    detail = exc.detail if isinstance(exc, RateLimitExceeded) else str(exc)
    logger.warning(
        "ratelimit.exceeded",
        extra={"client": get_remote_address(request), "limit": detail},
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please slow down.",
            "retry_after": detail,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )


READ_LIMIT = "120/minute"

WRITE_LIMIT = "30/minute"
