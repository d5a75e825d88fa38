"""FastAPI dependencies shared by the routers."""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from ..core.config import get_settings
from ..core.orchestrator import Orchestrator
from ..subscriptions import StatelessSubscriptionValidator, SubscriptionStore


def get_store(request: Request) -> SubscriptionStore:
    """The app's subscription store, injected by create_app."""
    return request.app.state.store


def get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


async def require_admin(x_admin_key: Optional[str] = Header(default=None)) -> None:
    """
    FastAPI dependency guarding admin routes with the shared X-Admin-Key secret.

    Raises:
        HTTPException 403 if admin access is disabled or the key does not match
    """
    expected = get_settings().admin_api_key
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access is disabled",
        )
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )


def get_validator(request: Request) -> StatelessSubscriptionValidator:
    """Stateless validator sharing the store's catalog."""
    return request.app.state.store.validator
