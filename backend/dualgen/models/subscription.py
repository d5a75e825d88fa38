"""Pydantic models for subscriptions and per-request user context."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiKeys(BaseModel):
    """Provider credentials supplied by a bring-your-own-key user."""
    v0_api_key: Optional[str] = Field(default=None, description="v0.dev API key")
    gateway_api_key: Optional[str] = Field(default=None, description="AI Gateway / Claude API key")

    model_config = ConfigDict(frozen=True)

    @property
    def is_complete(self) -> bool:
        return bool(self.v0_api_key) and bool(self.gateway_api_key)

    @property
    def is_empty(self) -> bool:
        return not self.v0_api_key and not self.gateway_api_key


class UserSubscription(BaseModel):
    """Mutable subscription record owned by SubscriptionStore."""
    user_id: str = Field(..., description="Unique user ID")
    tier: str = Field(default="free", description="Subscription tier")
    credits_remaining: Decimal = Field(default=Decimal(0), ge=0, description="Credit balance")
    completions_used: int = Field(default=0, ge=0, description="Completions used this period")
    projects_created: int = Field(default=0, ge=0, description="Projects created")
    has_dual_ai: bool = Field(default=False, description="Dual AI unlocked")
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    last_activity: datetime = Field(default_factory=utcnow)
    api_keys: Optional[ApiKeys] = None

    model_config = ConfigDict(validate_assignment=True)


class UserContext(BaseModel):
    """
    Immutable per-request snapshot of a user's entitlements.

    completions_remaining is derived from the tier catalog and is math.inf for
    tiers with unlimited completions.
    """
    user_id: str
    tier: str
    credits_remaining: Decimal = Field(..., ge=0)
    monthly_completions: int = Field(default=0, description="Allotment reported by the caller")
    completions_used: int = Field(..., ge=0)
    completions_remaining: Union[int, float] = Field(..., ge=0)
    projects_created: int = Field(..., ge=0)
    has_dual_access: bool
    api_keys: ApiKeys = Field(default_factory=ApiKeys)

    model_config = ConfigDict(frozen=True)


class DenialReason(str, Enum):
    """Why validate_action refused an action."""
    USAGE_LIMIT = "usage_limit"
    FEATURE_LOCKED = "feature_locked"
    PROJECT_LIMIT = "project_limit"


# HTTP status for each denial: 402 when more usage must be bought, 403 when
# the tier itself does not allow the action.
DENIAL_STATUS_CODES = {
    DenialReason.USAGE_LIMIT: 402,
    DenialReason.FEATURE_LOCKED: 403,
    DenialReason.PROJECT_LIMIT: 403,
}


class ValidationResult(BaseModel):
    """Transient permit/deny decision for one action."""
    is_valid: bool
    can_proceed: bool
    credits_required: int
    error: Optional[str] = None
    denial: Optional[DenialReason] = None
    user_context: UserContext

    model_config = ConfigDict(frozen=True)

    @property
    def status_code(self) -> int:
        if self.denial is None:
            return 200
        return DENIAL_STATUS_CODES[self.denial]
