"""Billing API routes for tiers, credit packages and stored subscriptions."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from ..core.generation_tiers import get_available_models
from ..core.security import limiter
from ..models.subscription import ApiKeys
from ..subscriptions import Action, SubscriptionStore
from .deps import get_store

router = APIRouter(prefix="/billing", tags=["billing"])
logger = logging.getLogger(__name__)


# ============ Request/Response Models ============


class PurchaseRequest(BaseModel):
    """Request body for buying a credit package."""
    package: str = Field(..., min_length=1, description="Package key: small, medium, large or xlarge")


class UpgradeRequest(BaseModel):
    """Request body for changing subscription tier."""
    tier: str = Field(..., min_length=1, description="Target tier: free, pro or byok")
    v0_api_key: Optional[str] = Field(default=None, alias="v0ApiKey")
    claude_api_key: Optional[str] = Field(default=None, alias="claudeApiKey")

    model_config = ConfigDict(populate_by_name=True)


class CreateProjectRequest(BaseModel):
    name: Optional[str] = None


# ============ Catalog Endpoints ============


@router.get("/tiers")
async def list_tiers(store: SubscriptionStore = Depends(get_store)) -> dict:
    """All subscription tiers with pricing, allotments and features."""
    return {"tiers": store.catalog.describe()["tiers"]}


@router.get("/packages")
async def list_packages(store: SubscriptionStore = Depends(get_store)) -> dict:
    """All one-time credit packages."""
    return {"packages": store.catalog.describe()["packages"]}


@router.get("/models")
async def list_models() -> dict:
    """Models per provider and the generation tiers built from them."""
    return get_available_models()


# ============ Subscription Endpoints ============


@router.get("/subscriptions/{user_id}")
async def get_subscription(user_id: str, store: SubscriptionStore = Depends(get_store)) -> dict:
    """Usage summary for a stored subscription (created on first access)."""
    return {"user_id": user_id, **store.get_usage_summary(user_id)}


@router.post("/subscriptions/{user_id}/purchase")
@limiter.limit("10/minute")
async def purchase_package(
    request: Request,
    user_id: str,
    purchase: PurchaseRequest,
    store: SubscriptionStore = Depends(get_store),
) -> dict:
    """Buy a credit package. Any purchase unlocks the Dual AI Builder."""
    async with store.lock_for(user_id):
        store.purchase_credit_package(user_id, purchase.package)
    package = store.catalog.get_credit_package(purchase.package)
    return {
        "success": True,
        "message": f"Purchased {package.name}: +{package.credits_granted} credits, Dual AI Builder unlocked",
        "subscription": store.get_usage_summary(user_id),
    }


@router.post("/subscriptions/{user_id}/upgrade")
@limiter.limit("10/minute")
async def upgrade_subscription(
    request: Request,
    user_id: str,
    upgrade: UpgradeRequest,
    store: SubscriptionStore = Depends(get_store),
) -> dict:
    """Move a stored subscription to another tier. BYOK requires both provider keys."""
    api_keys = None
    if upgrade.v0_api_key or upgrade.claude_api_key:
        api_keys = ApiKeys(v0_api_key=upgrade.v0_api_key, gateway_api_key=upgrade.claude_api_key)

    async with store.lock_for(user_id):
        user = store.upgrade_subscription(user_id, upgrade.tier.strip().lower(), api_keys)

    return {
        "success": True,
        "message": f"Upgraded to {store.catalog.get_tier_config(user.tier).name}",
        "subscription": store.get_usage_summary(user_id),
    }


@router.post("/subscriptions/{user_id}/projects")
async def create_project(
    user_id: str,
    project: CreateProjectRequest,
    store: SubscriptionStore = Depends(get_store),
) -> dict:
    """Count a new project against the tier's project limit (403 when reached)."""
    async with store.metered(user_id, Action.CREATE_PROJECT):
        logger.info(f"Creating project {project.name or '(unnamed)'} for user {user_id}")
    return {
        "success": True,
        "projects": store.get_project_usage(user_id),
    }
