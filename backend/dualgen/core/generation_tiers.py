"""Model and cost selection for basic/premium/enterprise generation requests."""

from dataclasses import dataclass
from typing import Optional

from ..models.generation import GenerationTierName
from ..subscriptions.tiers import SubscriptionTier

# Gateway model identifiers (provider/model)
CLAUDE_3_5_SONNET = "anthropic/claude-3-5-sonnet-20241022"
CLAUDE_3_HAIKU = "anthropic/claude-3-haiku-20240307"
CLAUDE_3_OPUS = "anthropic/claude-3-opus-20240229"

V0_MODELS = ("v0-1.5-md", "v0-1.5-lg")
GATEWAY_MODELS = (CLAUDE_3_5_SONNET, CLAUDE_3_HAIKU, CLAUDE_3_OPUS)


@dataclass(frozen=True)
class GenerationTierConfig:
    name: GenerationTierName
    v0_model: str
    gateway_model: str
    estimated_cost: float  # USD per dual request
    description: str


TIER_CONFIGS: dict[GenerationTierName, GenerationTierConfig] = {
    GenerationTierName.BASIC: GenerationTierConfig(
        name=GenerationTierName.BASIC,
        v0_model="v0-1.5-md",
        gateway_model=CLAUDE_3_HAIKU,
        estimated_cost=0.02,
        description="Fast, cost-effective generation",
    ),
    GenerationTierName.PREMIUM: GenerationTierConfig(
        name=GenerationTierName.PREMIUM,
        v0_model="v0-1.5-md",
        gateway_model=CLAUDE_3_5_SONNET,
        estimated_cost=0.08,
        description="Balanced quality and speed",
    ),
    GenerationTierName.ENTERPRISE: GenerationTierConfig(
        name=GenerationTierName.ENTERPRISE,
        v0_model="v0-1.5-lg",
        gateway_model=CLAUDE_3_OPUS,
        estimated_cost=0.25,
        description="Highest quality generation",
    ),
}

# Subscription tiers that may request the enterprise generation tier
ENTERPRISE_SUBSCRIPTIONS = frozenset({SubscriptionTier.PRO.value, SubscriptionTier.PRO_BYOK.value})


def get_tier_config(tier) -> GenerationTierConfig:
    return TIER_CONFIGS[GenerationTierName(tier)]


def can_request_tier(subscription_tier: str, tier) -> bool:
    """
    Whether a subscription tier may request a generation tier.

    Basic is open to every tier, premium to every tier except free, and
    enterprise only to pro and byok.
    """
    tier = GenerationTierName(tier)
    if tier == GenerationTierName.PREMIUM:
        return subscription_tier != SubscriptionTier.FREE.value
    if tier == GenerationTierName.ENTERPRISE:
        return subscription_tier in ENTERPRISE_SUBSCRIPTIONS
    return True


def get_available_models() -> dict:
    return {
        "v0": list(V0_MODELS),
        "gateway": list(GATEWAY_MODELS),
        "tiers": {
            name.value: {
                "v0_model": config.v0_model,
                "gateway_model": config.gateway_model,
                "estimated_cost": config.estimated_cost,
                "description": config.description,
            }
            for name, config in TIER_CONFIGS.items()
        },
    }


def tier_access_error(subscription_tier: str, tier) -> Optional[str]:
    """Denial message when a subscription may not request a generation tier, else None."""
    tier = GenerationTierName(tier)
    if can_request_tier(subscription_tier, tier):
        return None
    if tier == GenerationTierName.PREMIUM:
        return "Premium tier requires a paid subscription"
    return f"{tier.value.capitalize()} tier requires a pro or byok subscription"
