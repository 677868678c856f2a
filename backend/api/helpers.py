"""Shared API helpers for route handlers.

Rate limiting and request-scoped dependencies used across multiple route files.
"""

from fastapi import Request

from config import settings
from models import DEFAULT_USER_ID
from services.rate_limiter import RateLimiters, RateLimitResult, build_rate_limiters


class TooManyAttemptsError(Exception):
    """Raised by routes when a rate limiter rejects the request.

    Rendered by the handler registered in ``main`` as a 429 with a
    ``retry_after`` body field and a ``Retry-After`` header.
    """

    def __init__(self, result: RateLimitResult):
        self.result = result
        super().__init__("Too many attempts")


def get_current_user_id() -> str:
    """The user every request acts as (single-user deployment)."""
    return DEFAULT_USER_ID


def get_rate_limiters(request: Request) -> RateLimiters:
    """Limiters built in the app lifespan.

    Falls back to creating a set on first use when the app was started
    without its lifespan (e.g. a bare TestClient).
    """
    limiters = getattr(request.app.state, "rate_limiters", None)
    if limiters is None:
        limiters = build_rate_limiters()
        request.app.state.rate_limiters = limiters
    return limiters


def client_key(request: Request) -> str:
    """Rate-limit key for the calling client (its peer address).

    ``X-Forwarded-For`` is only honoured when the peer is one of
    ``settings.TRUSTED_PROXIES``; anyone else could rotate it to get a
    fresh bucket on every request.
    """
    host = request.client.host if request.client is not None else None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded and host in settings.TRUSTED_PROXIES:
        return forwarded.split(",")[0].strip()
    return host or "unknown"


def enforce(result: RateLimitResult) -> None:
    """Raise :class:`TooManyAttemptsError` for a rejected check."""
    if not result.allowed:
        raise TooManyAttemptsError(result)
