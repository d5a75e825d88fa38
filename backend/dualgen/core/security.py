"""Rate limiting and response/audit middleware keyed on the trust headers."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from .config import get_settings

logger = logging.getLogger(__name__)

USER_ID_HEADER = "x-user-id"
USER_TIER_HEADER = "x-user-tier"

# Applied to every response; the broker only ever serves JSON
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Cache-Control": "no-store",
}

UNLOGGED_PATHS = frozenset({"/", "/health", "/favicon.ico"})


def get_user_or_ip(request: Request) -> str:
    """
    Rate limit key: the x-user-id trust header, else the client address.

    Keying on the user keeps one account's quota shared across all the
    gateways that forward its requests.
    """
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


def generation_rate_limit() -> str:
    """Rate limit for metered generation endpoints, read from settings."""
    return get_settings().rate_limit


limiter = Limiter(key_func=get_user_or_ip)


def client_address(request: Request) -> str:
    """First hop of X-Forwarded-For when present, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamps SECURITY_HEADERS onto every response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One audit line per request: route, outcome, latency and who was metered.

    The user id and tier come from the trust headers. Bodies and the
    x-v0-api-key / x-claude-api-key headers are never logged.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)

        if request.url.path in UNLOGGED_PATHS:
            return response

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        user_id = request.headers.get(USER_ID_HEADER) or "-"
        tier = request.headers.get(USER_TIER_HEADER) or "-"
        message = (
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed_ms}ms (user={user_id} tier={tier} client={client_address(request)})"
        )

        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)
        return response
