"""
Rate Limiter Configuration

In-memory slowapi limiter keyed by the real client IP. Each edge instance
keeps its own counters.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind the hosting proxy"""
    # X-Forwarded-For: first entry is the original client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """Create the process-wide limiter"""
    return Limiter(
        key_func=get_real_client_ip,
        enabled=settings.rate_limit_enabled,
        headers_enabled=False,
    )


# Global rate limiter instance
limiter = create_limiter()


RATE_LIMITS = {
    "checkout": settings.checkout_rate_limit,
    "proxy": settings.proxy_rate_limit,
    "notify": settings.notify_rate_limit,
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a surface"""
    return RATE_LIMITS.get(operation, "100/minute")
