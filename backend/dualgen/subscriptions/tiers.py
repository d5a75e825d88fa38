"""Subscription tier definitions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

# Sentinel for "no limit" on completions and projects
UNLIMITED = -1


class SubscriptionTier(str, Enum):
    """Subscription tiers, valued as they appear in the x-user-tier header."""
    FREE = "free"
    PRO = "pro"
    PRO_BYOK = "byok"


@dataclass(frozen=True)
class TierConfig:
    """Static entitlements granted by a subscription tier."""
    tier: Union[SubscriptionTier, str]
    name: str
    price: int
    monthly_credits: int
    monthly_completions: int  # UNLIMITED or >= 0
    project_limit: int  # UNLIMITED or >= 0
    has_dual_ai: bool
    requires_own_keys: bool
    features: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_unlimited_completions(self) -> bool:
        return self.monthly_completions == UNLIMITED

    @property
    def has_unlimited_projects(self) -> bool:
        return self.project_limit == UNLIMITED


FREE_TIER_CONFIG = TierConfig(
    tier=SubscriptionTier.FREE,
    name="Free",
    price=0,
    monthly_credits=5,  # $5 usage credit per month
    monthly_completions=0,  # No chat completions included
    project_limit=200,
    has_dual_ai=False,
    requires_own_keys=False,
    features=(
        "MCP Connect",
        "Website Builder",
        "$5 usage credit per month",
        "Create up to 200 projects",
        "Access to 1 AI Builder",
        "Purchase additional credits outside monthly limits",
        "Any top-up unlocks Dual AI Builder",
    ),
)

PRO_TIER_CONFIG = TierConfig(
    tier=SubscriptionTier.PRO,
    name="Pro",
    price=20,
    monthly_credits=20,
    monthly_completions=300,
    project_limit=UNLIMITED,
    has_dual_ai=True,
    requires_own_keys=False,
    features=(
        "MCP Connect",
        "300 Chat Completions",
        "$20 usage credit per month",
        "Unlimited projects",
        "Purchase additional credits outside monthly limits",
        "Dual AI Builder included (Claude + v0.dev in parallel)",
    ),
)

PRO_BYOK_TIER_CONFIG = TierConfig(
    tier=SubscriptionTier.PRO_BYOK,
    name="Pro (Bring Your Own Keys)",
    price=10,  # 50% discount for supplying provider keys
    monthly_credits=20,
    monthly_completions=300,
    project_limit=UNLIMITED,
    has_dual_ai=True,
    requires_own_keys=True,
    features=(
        "MCP Connect",
        "300 Chat Completions",
        "$20 usage credit per month",
        "Unlimited projects",
        "Uses your own v0 and Claude API keys",
        "Dual AI Builder included (Claude + v0.dev in parallel)",
    ),
)

SUBSCRIPTION_CONFIGS: dict[SubscriptionTier, TierConfig] = {
    SubscriptionTier.FREE: FREE_TIER_CONFIG,
    SubscriptionTier.PRO: PRO_TIER_CONFIG,
    SubscriptionTier.PRO_BYOK: PRO_BYOK_TIER_CONFIG,
}
