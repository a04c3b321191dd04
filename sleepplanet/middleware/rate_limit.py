"""Rate limiting for the login endpoint"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from sleepplanet.config import Settings
from sleepplanet.middleware.auth import Authorized


def get_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting

    Priority:
    1. Authenticated admin id (from the auth guard)
    2. IP address (for unauthenticated)
    """
    state = getattr(request.state, "auth", None)
    if isinstance(state, Authorized):
        return f"admin:{state.claims.admin_id}"
    return get_remote_address(request)


def build_limiter(settings: Settings) -> Limiter:
    """Limiter owned by one application; counters are not shared between apps."""
    return Limiter(
        key_func=get_identifier,
        storage_uri="memory://",
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED
    )
