"""
In-memory subscription store for deployments that cannot carry usage state in
request headers.

The store exclusively owns its UserSubscription records. Single-step mutations
never await, so they are atomic on the event loop; multi-step sequences that
await (check credits, call a provider, charge) go through `metered`, which
holds a per-user asyncio.Lock so concurrent requests for the same user are
serialized while different users proceed independently.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncIterator, Callable, MutableMapping, Optional, Union

from ..core.errors import ConfigError, ConflictError, EntitlementDenied
from ..models.subscription import (
    DENIAL_STATUS_CODES,
    ApiKeys,
    UserContext,
    UserSubscription,
    ValidationResult,
)
from .catalog import DEFAULT_CATALOG, Catalog
from .ledger import Action, UsageDelta, UsageLedger, remaining_completions
from .tiers import UNLIMITED, SubscriptionTier
from .validator import StatelessSubscriptionValidator

logger = logging.getLogger(__name__)

SUBSCRIPTION_PERIOD = timedelta(days=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubscriptionStore:
    """Owns the user_id -> UserSubscription mapping and applies entitlement rules to it."""

    def __init__(
        self,
        users: Optional[MutableMapping[str, UserSubscription]] = None,
        catalog: Catalog = DEFAULT_CATALOG,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._users = users if users is not None else {}
        self.catalog = catalog
        self.validator = StatelessSubscriptionValidator(catalog)
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}

    # ============ Records ============

    def get_user_subscription(self, user_id: str) -> UserSubscription:
        """Get or lazily create a user's subscription (free tier, free monthly credits)."""
        user = self._users.get(user_id)
        if user is None:
            free = self.catalog.get_tier_config(SubscriptionTier.FREE)
            user = UserSubscription(
                user_id=user_id,
                tier=SubscriptionTier.FREE.value,
                credits_remaining=Decimal(free.monthly_credits),
                last_activity=self._clock(),
            )
            self._users[user_id] = user
            logger.info(f"Created free subscription for user {user_id}")
        return user

    def get_all_users(self) -> list[UserSubscription]:
        return list(self._users.values())

    def delete_user(self, user_id: str) -> bool:
        """
        Administrative removal. Returns False if the user did not exist.

        Callers racing metered work must hold lock_for(user_id); a held lock
        stays registered so later requests still queue behind it.
        """
        lock = self._locks.get(user_id)
        if lock is not None and not lock.locked():
            del self._locks[user_id]
        return self._users.pop(user_id, None) is not None

    def lock_for(self, user_id: str) -> asyncio.Lock:
        """Per-user lock guarding read-check-write sequences."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def _touch(self, user: UserSubscription) -> None:
        user.last_activity = self._clock()

    # ============ Queries ============

    def _ledger(self, user: UserSubscription) -> UsageLedger:
        tier_config = self.catalog.get_tier_config(user.tier)
        return UsageLedger(
            credits_remaining=user.credits_remaining,
            completions_used=user.completions_used,
            completions_remaining=remaining_completions(
                tier_config.monthly_completions, user.completions_used
            ),
            projects_created=user.projects_created,
        )

    def can_use_dual_ai(self, user_id: str) -> bool:
        user = self.get_user_subscription(user_id)
        return user.has_dual_ai or self.catalog.get_tier_config(user.tier).has_dual_ai

    def can_create_project(self, user_id: str) -> bool:
        user = self.get_user_subscription(user_id)
        limit = self.catalog.get_tier_config(user.tier).project_limit
        return limit == UNLIMITED or user.projects_created < limit

    def has_credits_remaining(self, user_id: str, required_credits: Union[int, Decimal] = 1) -> bool:
        return self.get_user_subscription(user_id).credits_remaining >= required_credits

    def has_completions_remaining(self, user_id: str) -> bool:
        return self._ledger(self.get_user_subscription(user_id)).has_completions

    def get_project_usage(self, user_id: str) -> dict:
        user = self.get_user_subscription(user_id)
        return {
            "used": user.projects_created,
            "limit": self.catalog.get_tier_config(user.tier).project_limit,
            "can_create": self.can_create_project(user_id),
        }

    def get_user_api_keys(self, user_id: str) -> Optional[ApiKeys]:
        return self.get_user_subscription(user_id).api_keys

    def to_context(self, user_id: str) -> UserContext:
        """Snapshot a stored record in the same shape the stateless path parses from headers."""
        user = self.get_user_subscription(user_id)
        tier_config = self.catalog.get_tier_config(user.tier)
        ledger = self._ledger(user)
        return UserContext(
            user_id=user.user_id,
            tier=user.tier,
            credits_remaining=user.credits_remaining,
            monthly_completions=tier_config.monthly_completions,
            completions_used=user.completions_used,
            completions_remaining=ledger.completions_remaining,
            projects_created=user.projects_created,
            has_dual_access=self.can_use_dual_ai(user_id),
            api_keys=user.api_keys or ApiKeys(),
        )

    def get_usage_summary(self, user_id: str) -> dict:
        user = self.get_user_subscription(user_id)
        config = self.catalog.get_tier_config(user.tier)
        return {
            "tier": user.tier,
            "credits": {
                "remaining": float(user.credits_remaining),
                "monthly": config.monthly_credits,
            },
            "completions": {
                "used": user.completions_used,
                "limit": config.monthly_completions,
            },
            "projects": {
                "created": user.projects_created,
                "limit": config.project_limit,
            },
            "features": {
                "has_dual_ai": self.can_use_dual_ai(user_id),
                "requires_own_keys": config.requires_own_keys,
            },
            "subscription_end": user.subscription_end.isoformat() if user.subscription_end else None,
        }

    # ============ Usage ============

    def use_credits(self, user_id: str, amount: Union[int, Decimal]) -> bool:
        """Deduct credits. Returns False, leaving the balance untouched, on overdraft."""
        user = self.get_user_subscription(user_id)
        amount = Decimal(amount)
        if amount < 0 or user.credits_remaining < amount:
            return False
        user.credits_remaining -= amount
        self._touch(user)
        return True

    def use_completion(self, user_id: str) -> bool:
        """Consume one monthly completion. Returns False when none are left."""
        user = self.get_user_subscription(user_id)
        if not self._ledger(user).has_completions:
            return False
        user.completions_used += 1
        self._touch(user)
        return True

    def create_project(self, user_id: str, project_name: Optional[str] = None) -> bool:
        if not self.can_create_project(user_id):
            return False
        user = self.get_user_subscription(user_id)
        user.projects_created += 1
        self._touch(user)
        logger.info(f"User {user_id} created project {project_name or '(unnamed)'}")
        return True

    def validate_action(self, user_id: str, action: Union[Action, str]) -> ValidationResult:
        return self.validator.validate_action(self.to_context(user_id), action)

    def _apply(self, user: UserSubscription, delta: UsageDelta) -> None:
        user.credits_remaining = delta.new_credits_remaining
        user.completions_used = delta.new_completions_used
        user.projects_created = delta.new_projects_created
        self._touch(user)

    def record_usage(self, user_id: str, action: Union[Action, str]) -> UsageDelta:
        """Charge a completed action using the completions-first rule."""
        user = self.get_user_subscription(user_id)
        delta = self._ledger(user).spend(Action(action))
        if not delta.deliverable:
            raise EntitlementDenied(
                f"Insufficient credits for {Action(action).value}",
                reason="usage_limit",
                status_code=402,
            )
        self._apply(user, delta)
        return delta

    @asynccontextmanager
    async def metered(self, user_id: str, action: Union[Action, str]) -> AsyncIterator[ValidationResult]:
        """
        Guard an action with validate-then-charge under the user's lock.

        Usage is recorded only if the body finishes without raising, so a
        failed generation is never charged.

        Usage:
            async with store.metered(user_id, Action.DUAL_AI) as validation:
                result = await orchestrator.orchestrate(prompt)
        """
        action = Action(action)
        async with self.lock_for(user_id):
            result = self.validate_action(user_id, action)
            if not result.can_proceed:
                raise EntitlementDenied(
                    result.error or "Action not permitted",
                    reason=result.denial.value,
                    status_code=DENIAL_STATUS_CODES[result.denial],
                )
            yield result
            delta = self.record_usage(user_id, action)
            logger.info(
                f"Charged {action.value} for user {user_id}: "
                f"{delta.completions_used} completions, {delta.credits_used} credits"
            )

    def commit_usage(self, user_id: str, expected: UserContext, delta: UsageDelta) -> UserSubscription:
        """
        Compare-and-swap commit of a delta computed by the stateless validator.

        Raises ConflictError if the stored counters no longer match the snapshot
        the delta was computed from.
        """
        user = self.get_user_subscription(user_id)
        if (
            user.credits_remaining != expected.credits_remaining
            or user.completions_used != expected.completions_used
            or user.projects_created != expected.projects_created
        ):
            raise ConflictError(f"Usage for user {user_id} changed since it was read; retry the request")
        if not delta.deliverable or delta.new_credits_remaining < 0:
            raise EntitlementDenied(
                "Insufficient credits",
                reason="usage_limit",
                status_code=402,
            )
        self._apply(user, delta)
        return user

    # ============ Billing ============

    def purchase_credit_package(self, user_id: str, package_key: str) -> bool:
        """Add a package's credits. Any purchase permanently unlocks dual AI."""
        package = self.catalog.get_credit_package(package_key)
        user = self.get_user_subscription(user_id)
        user.credits_remaining += Decimal(package.credits_granted)
        user.has_dual_ai = True
        self._touch(user)
        logger.info(f"User {user_id} purchased {package.key} (+{package.credits_granted} credits)")
        return True

    def upgrade_subscription(
        self,
        user_id: str,
        new_tier: Union[SubscriptionTier, str],
        api_keys: Optional[ApiKeys] = None,
    ) -> UserSubscription:
        """
        Move a user to a new tier and grant its monthly credits.

        Raises:
            ConfigError: BYOK tier requested without both provider keys, or
                the tier is not in the catalog.
        """
        if not self.catalog.has_tier(new_tier):
            raise ConfigError(f"Unknown subscription tier: {getattr(new_tier, 'value', new_tier)}")
        config = self.catalog.get_tier_config(new_tier)

        if config.requires_own_keys and (api_keys is None or not api_keys.is_complete):
            raise ConfigError(f"{config.name} requires both v0 and Claude API keys")

        user = self.get_user_subscription(user_id)
        now = self._clock()
        user.tier = getattr(new_tier, "value", new_tier)
        user.credits_remaining += Decimal(config.monthly_credits)
        # Dual access bought with a package is never revoked by a tier change
        user.has_dual_ai = user.has_dual_ai or config.has_dual_ai
        user.subscription_start = now
        user.subscription_end = now + SUBSCRIPTION_PERIOD
        user.last_activity = now
        if api_keys is not None:
            user.api_keys = api_keys

        logger.info(f"User {user_id} upgraded to {user.tier}")
        return user

    def reset_monthly_usage(self, user_id: str) -> UserSubscription:
        """Start a new billing period: zero completions, add the monthly grant."""
        user = self.get_user_subscription(user_id)
        config = self.catalog.get_tier_config(user.tier)
        user.completions_used = 0
        user.credits_remaining += Decimal(config.monthly_credits)
        self._touch(user)
        return user

    def reset_all_monthly_usage(self) -> int:
        """Roll every known user into a new period. Returns the number of users reset."""
        user_ids = list(self._users)
        for user_id in user_ids:
            self.reset_monthly_usage(user_id)
        logger.info(f"Monthly usage reset for {len(user_ids)} users")
        return len(user_ids)
