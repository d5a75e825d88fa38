"""
Stateless entitlement validation.

The caller supplies the user's full usage snapshot in trusted request headers.
Nothing here reads or writes a store: every call takes a UserContext and
returns a decision or a UsageDelta. Persisting the delta (only after the
guarded generation succeeded) is the caller's job.
"""

import logging
import math
from decimal import Decimal
from typing import Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import EntitlementDenied, FieldError, ValidationError
from ..models.subscription import (
    DENIAL_STATUS_CODES,
    ApiKeys,
    DenialReason,
    UserContext,
    ValidationResult,
)
from .catalog import DEFAULT_CATALOG, Catalog
from .ledger import Action, UsageDelta, UsageLedger, credits_required, remaining_completions
from .tiers import UNLIMITED, SubscriptionTier

logger = logging.getLogger(__name__)

# Header names, lower-cased as Starlette presents them
HEADER_USER_ID = "x-user-id"
HEADER_USER_TIER = "x-user-tier"
HEADER_USER_CREDITS = "x-user-credits"
HEADER_USER_COMPLETIONS = "x-user-completions"
HEADER_USER_COMPLETIONS_USED = "x-user-completions-used"
HEADER_USER_PROJECTS = "x-user-projects"
HEADER_HAS_DUAL_ACCESS = "x-has-dual-access"
HEADER_V0_API_KEY = "x-v0-api-key"
HEADER_CLAUDE_API_KEY = "x-claude-api-key"

USER_CONTEXT_HEADERS = (
    HEADER_USER_ID,
    HEADER_USER_TIER,
    HEADER_USER_CREDITS,
    HEADER_USER_COMPLETIONS,
    HEADER_USER_COMPLETIONS_USED,
    HEADER_USER_PROJECTS,
    HEADER_HAS_DUAL_ACCESS,
    HEADER_V0_API_KEY,
    HEADER_CLAUDE_API_KEY,
)


class UserContextHeaders(BaseModel):
    """Schema for the trust headers; every string is coerced to its typed value."""
    user_id: str = Field(..., alias=HEADER_USER_ID, min_length=1)
    tier: str = Field(..., alias=HEADER_USER_TIER)
    credits: Decimal = Field(..., alias=HEADER_USER_CREDITS, ge=0)
    monthly_completions: int = Field(..., alias=HEADER_USER_COMPLETIONS, ge=UNLIMITED)
    completions_used: int = Field(..., alias=HEADER_USER_COMPLETIONS_USED, ge=0)
    projects_created: int = Field(..., alias=HEADER_USER_PROJECTS, ge=0)
    has_dual_access: bool = Field(..., alias=HEADER_HAS_DUAL_ACCESS)
    v0_api_key: Optional[str] = Field(default=None, alias=HEADER_V0_API_KEY)
    claude_api_key: Optional[str] = Field(default=None, alias=HEADER_CLAUDE_API_KEY)

    @field_validator("user_id", "tier", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("tier")
    @classmethod
    def _known_tier(cls, value: str, info: ValidationInfo) -> str:
        catalog = (info.context or {}).get("catalog", DEFAULT_CATALOG)
        value = value.lower()
        if not catalog.has_tier(value):
            valid = ", ".join(catalog.tier_configs)
            raise ValueError(f"must be one of: {valid}")
        return value

    @field_validator("has_dual_access", mode="before")
    @classmethod
    def _strict_bool(cls, value):
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValueError('must be "true" or "false"')

    @field_validator("v0_api_key", "claude_api_key", mode="before")
    @classmethod
    def _blank_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


def collect_field_errors(error: PydanticValidationError) -> list[FieldError]:
    field_errors = []
    for err in error.errors():
        field = ".".join(str(part) for part in err["loc"]) or "headers"
        message = "is required" if err["type"] == "missing" else err["msg"]
        field_errors.append(FieldError(field=field, message=message))
    return field_errors


class StatelessSubscriptionValidator:
    """Decides permit/deny and computes usage from a UserContext snapshot."""

    def __init__(self, catalog: Catalog = DEFAULT_CATALOG):
        self.catalog = catalog

    # ============ Parsing ============

    def parse_user_context_result(
        self,
        headers: Mapping[str, str],
    ) -> Tuple[Optional[UserContext], list[FieldError]]:
        """
        Parse trust headers into a UserContext.

        Returns:
            Tuple of (UserContext, field errors)
            - If parsing succeeds: (UserContext, [])
            - If parsing fails: (None, [FieldError, ...])
        """
        lowered = {str(key).lower(): value for key, value in headers.items()}
        try:
            parsed = UserContextHeaders.model_validate(lowered, context={"catalog": self.catalog})
        except PydanticValidationError as e:
            return None, collect_field_errors(e)

        tier_config = self.catalog.get_tier_config(parsed.tier)
        context = UserContext(
            user_id=parsed.user_id,
            tier=parsed.tier,
            credits_remaining=parsed.credits,
            monthly_completions=parsed.monthly_completions,
            completions_used=parsed.completions_used,
            completions_remaining=remaining_completions(
                tier_config.monthly_completions, parsed.completions_used
            ),
            projects_created=parsed.projects_created,
            has_dual_access=parsed.has_dual_access,
            api_keys=ApiKeys(
                v0_api_key=parsed.v0_api_key,
                gateway_api_key=parsed.claude_api_key,
            ),
        )
        return context, []

    def parse_user_context(self, headers: Mapping[str, str]) -> UserContext:
        """Parse trust headers, raising ValidationError listing every bad field."""
        context, errors = self.parse_user_context_result(headers)
        if context is None:
            raise ValidationError("Invalid user context headers", errors)
        return context

    # ============ Decisions ============

    def _usage_limit_message(self, context: UserContext) -> str:
        pro = self.catalog.get_tier_config(SubscriptionTier.PRO)
        packages = ", ".join(
            f"${p.price_usd} ({p.completions_granted} completions)" for p in self.catalog.packages
        )
        return (
            f"Usage limit reached. Current tier: {context.tier}. "
            f"Upgrade to Pro (${pro.price}/month) for {pro.monthly_completions} completions "
            f"+ ${pro.monthly_credits} credits, or purchase credits: {packages}. "
            "Any purchase unlocks the Dual AI Builder."
        )

    def _feature_locked_message(self) -> str:
        pro = self.catalog.get_tier_config(SubscriptionTier.PRO)
        packages = ", ".join(f"${p.price_usd}" for p in self.catalog.packages)
        return (
            "Dual AI Builder is a premium feature. Unlock it with any purchase: "
            f"Pro subscription (${pro.price}/month) or a credit top-up ({packages})."
        )

    def validate_action(self, context: UserContext, action: Union[Action, str]) -> ValidationResult:
        """Check whether the user may perform an action right now."""
        action = Action(action)
        required = credits_required(action)
        ledger = self.to_ledger(context)

        def deny(reason: DenialReason, message: str) -> ValidationResult:
            logger.info(f"Denied {action.value} for user {context.user_id}: {reason.value}")
            return ValidationResult(
                is_valid=False,
                can_proceed=False,
                credits_required=required,
                error=message,
                denial=reason,
                user_context=context,
            )

        if not ledger.can_afford(action):
            return deny(DenialReason.USAGE_LIMIT, self._usage_limit_message(context))

        if action == Action.DUAL_AI and not context.has_dual_access:
            return deny(DenialReason.FEATURE_LOCKED, self._feature_locked_message())

        if action == Action.CREATE_PROJECT:
            tier_config = self.catalog.get_tier_config(context.tier)
            limit = tier_config.project_limit
            if limit != UNLIMITED and context.projects_created >= limit:
                return deny(
                    DenialReason.PROJECT_LIMIT,
                    f"Project limit reached ({context.projects_created}/{limit}). "
                    "Upgrade to Pro for unlimited projects.",
                )

        return ValidationResult(
            is_valid=True,
            can_proceed=True,
            credits_required=required,
            user_context=context,
        )

    def ensure_allowed(self, context: UserContext, action: Union[Action, str]) -> ValidationResult:
        """validate_action, raising EntitlementDenied instead of returning a denial."""
        result = self.validate_action(context, action)
        if not result.can_proceed:
            raise EntitlementDenied(
                result.error or "Action not permitted",
                reason=result.denial.value,
                status_code=DENIAL_STATUS_CODES[result.denial],
            )
        return result

    def calculate_usage(self, context: UserContext, action: Union[Action, str]) -> UsageDelta:
        """Usage produced by one successful action (completions before credits)."""
        return self.to_ledger(context).spend(Action(action))

    def get_api_keys(self, context: UserContext) -> ApiKeys:
        """BYOK credentials for PRO_BYOK users; empty for everyone else."""
        if context.tier == SubscriptionTier.PRO_BYOK.value:
            return context.api_keys
        return ApiKeys()

    # ============ Reporting ============

    def to_ledger(self, context: UserContext) -> UsageLedger:
        return UsageLedger(
            credits_remaining=context.credits_remaining,
            completions_used=context.completions_used,
            completions_remaining=context.completions_remaining,
            projects_created=context.projects_created,
        )

    def completions_remaining_after(self, context: UserContext, delta: UsageDelta) -> Optional[int]:
        """Completions left after applying delta; None when unlimited."""
        if math.isinf(context.completions_remaining):
            return None
        return max(0, int(context.completions_remaining) - delta.completions_used)

    def generate_usage_summary(self, context: UserContext, delta: UsageDelta) -> str:
        remaining = self.completions_remaining_after(context, delta)
        remaining_text = "unlimited" if remaining is None else str(remaining)
        return (
            f"Usage: {delta.new_completions_used} completions used, {remaining_text} remaining, "
            f"${delta.new_credits_remaining} credits remaining"
        )


default_validator = StatelessSubscriptionValidator()


def validate_user_context(headers: Mapping[str, str]) -> UserContext:
    """Parse trust headers with the default catalog."""
    return default_validator.parse_user_context(headers)
