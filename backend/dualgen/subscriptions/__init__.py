"""Subscription tiers, credit packages and entitlement rules."""

from .catalog import DEFAULT_CATALOG, Catalog
from .ledger import Action, UsageDelta, UsageLedger, credits_required
from .packages import CREDIT_PACKAGES, CreditPackage
from .store import SubscriptionStore
from .tiers import SUBSCRIPTION_CONFIGS, UNLIMITED, SubscriptionTier, TierConfig
from .validator import StatelessSubscriptionValidator, validate_user_context

__all__ = [
    "DEFAULT_CATALOG",
    "Catalog",
    "Action",
    "UsageDelta",
    "UsageLedger",
    "credits_required",
    "CREDIT_PACKAGES",
    "CreditPackage",
    "SubscriptionStore",
    "SUBSCRIPTION_CONFIGS",
    "UNLIMITED",
    "SubscriptionTier",
    "TierConfig",
    "StatelessSubscriptionValidator",
    "validate_user_context",
]
