from fastapi import Request

from shuttle.config import settings
from shuttle.exceptions import ThrottledError
from shuttle.observability import get_logger
from shuttle.security.rate_limiter import RateLimiter, RateLimiterRegistry

logger = get_logger(__name__)

def client_identifier(request: Request) -> str:
    """Rate-limit key for the caller: first X-Forwarded-For hop, else the socket peer"""
    if settings.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

def get_rate_limiters(request: Request) -> RateLimiterRegistry:
    """Limiters owned by the running application (see ``shuttle.main.create_app``)"""
    return request.app.state.rate_limiters

def enforce_rate_limit(limiter: RateLimiter, client_id: str) -> None:
    """Raise ThrottledError when ``client_id`` is over ``limiter``'s budget"""
    if limiter.allow(client_id):
        return

    retry_after = limiter.retry_after(client_id)
    logger.warning(
        "Rate limit exceeded",
        limiter=limiter.name,
        client_id=client_id,
        limit=limiter.max_requests,
        window_seconds=limiter.window_seconds,
        retry_after=retry_after,
    )
    raise ThrottledError(retry_after=retry_after)
