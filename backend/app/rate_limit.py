import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config.settings import settings

logger = structlog.get_logger()

DEFAULT_MESSAGE = "Too many requests, please try again later."
WRITE_MESSAGE = "Too many write requests, please slow down."

# Every client IP shares one request budget across the whole API; writes
# draw from a second, smaller budget shared by POST and DELETE.
limiter = Limiter(
    key_func=get_remote_address,
    application_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)

write_limit = limiter.shared_limit(
    settings.rate_limit_writes, scope="watchlist_writes", error_message=WRITE_MESSAGE
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("rate_limited", client=get_remote_address(request), path=request.url.path)
    message = WRITE_MESSAGE if exc.detail == WRITE_MESSAGE else DEFAULT_MESSAGE
    return JSONResponse(status_code=429, content={"detail": {"message": message}})
