"""Admin API routes for managing stored subscriptions."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from ..core.security import limiter
from ..subscriptions import SubscriptionStore
from .deps import get_store, require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


@router.get("/users")
@limiter.limit("60/minute")
async def list_users(request: Request, store: SubscriptionStore = Depends(get_store)) -> dict:
    """All stored subscriptions with their usage summaries."""
    users = store.get_all_users()
    return {
        "users": [
            {"user_id": user.user_id, **store.get_usage_summary(user.user_id)}
            for user in users
        ],
        "total": len(users),
    }


@router.post("/users/{user_id}/reset")
@limiter.limit("30/minute")
async def reset_user(request: Request, user_id: str, store: SubscriptionStore = Depends(get_store)) -> dict:
    """Start a new billing period for one user."""
    async with store.lock_for(user_id):
        store.reset_monthly_usage(user_id)
    logger.info(f"Admin reset monthly usage for user {user_id}")
    return {"success": True, "subscription": store.get_usage_summary(user_id)}


@router.post("/reset-monthly")
@limiter.limit("10/minute")
async def reset_monthly(request: Request, store: SubscriptionStore = Depends(get_store)) -> dict:
    """Start a new billing period for every stored user."""
    count = store.reset_all_monthly_usage()
    return {"success": True, "users_reset": count}


@router.delete("/users/{user_id}")
@limiter.limit("10/minute")
async def delete_user(request: Request, user_id: str, store: SubscriptionStore = Depends(get_store)) -> dict:
    """Remove a stored subscription."""
    async with store.lock_for(user_id):
        deleted = store.delete_user(user_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info(f"Admin deleted user {user_id}")
    return {"success": True}
