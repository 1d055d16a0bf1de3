"""
Rate limiting using slowapi
"""
from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
import structlog

logger = structlog.get_logger()

# Limits are per route; see the *_limit decorators below
limiter = Limiter(key_func=get_remote_address)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(
        "rate_limit_exceeded",
        client_ip=request.client.host if request.client else "unknown",
        path=request.url.path,
        limit=str(exc.detail),
    )
    return _rate_limit_exceeded_handler(request, exc)


def upload_limit():
    """Uploads run the document parsers"""
    return limiter.limit("10/minute")


def generation_limit():
    return limiter.limit("5/minute")


def admin_limit():
    return limiter.limit("200/minute")
