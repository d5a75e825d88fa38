"""MCP tool handlers.

Each handler takes the raw argument dict, validates it with a pydantic model
and returns a JSON-ready dict. Errors propagate to the server's
handle_tool_error.
"""

import logging
from typing import Any, Awaitable, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import EntitlementDenied, ValidationError
from ..core.generation_tiers import get_available_models, get_tier_config, tier_access_error
from ..core.orchestrator import Orchestrator
from ..models.generation import GenerationTierName, ProviderType
from ..models.subscription import ApiKeys
from ..subscriptions import Action, SubscriptionStore, SubscriptionTier

logger = logging.getLogger(__name__)

# Balance under which get-packages recommends a top-up
LOW_CREDIT_THRESHOLD = 5
RECOMMENDED_PACKAGE = "medium"


# ============ Argument Models ============


class ToolArgs(BaseModel):
    user_id: str = Field(default="anonymous", alias="userId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class PurchaseArgs(ToolArgs):
    package_key: str = Field(..., alias="packageKey")


class SingleGenerationArgs(ToolArgs):
    prompt: str = Field(..., min_length=1)
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    model: Optional[str] = None


class DualGenerationArgs(ToolArgs):
    prompt: str = Field(..., min_length=1)
    tier: GenerationTierName = GenerationTierName.BASIC
    v0_model: Optional[str] = Field(default=None, alias="v0Model")
    gateway_model: Optional[str] = Field(default=None, alias="gatewayModel")


class ApiKeysArgs(BaseModel):
    v0_api_key: Optional[str] = Field(default=None, alias="v0ApiKey")
    claude_api_key: Optional[str] = Field(default=None, alias="claudeApiKey")

    model_config = ConfigDict(populate_by_name=True)

    def to_api_keys(self) -> ApiKeys:
        return ApiKeys(v0_api_key=self.v0_api_key, gateway_api_key=self.claude_api_key)


class SubscriptionArgs(ToolArgs):
    action: Literal["get-status", "purchase-credits", "upgrade-tier", "setup-byok"]
    tier: Optional[str] = None
    package_key: Optional[str] = Field(default=None, alias="packageKey")
    api_keys: Optional[ApiKeysArgs] = Field(default=None, alias="apiKeys")


class ProjectArgs(ToolArgs):
    action: Literal["create", "get-usage"]
    project_name: Optional[str] = Field(default=None, alias="projectName")
    project_type: Optional[Literal["component", "page", "app", "api"]] = Field(default=None, alias="projectType")


# ============ Handlers ============


class ToolHandlers:
    """Binds every MCP tool to an injected store and orchestrator."""

    def __init__(self, store: SubscriptionStore, orchestrator: Orchestrator):
        self.store = store
        self.orchestrator = orchestrator

    @property
    def handlers(self) -> dict[str, Callable[[dict[str, Any]], Awaitable[dict]]]:
        return {
            "get-packages": self.get_packages,
            "purchase-package": self.purchase_package,
            "generate-v0": self.generate_v0,
            "generate-gateway": self.generate_gateway,
            "generate-dual": self.generate_dual,
            "get-config": self.get_config,
            "manage-subscription": self.manage_subscription,
            "manage-project": self.manage_project,
        }

    def _user_info(self, user_id: str) -> dict:
        user = self.store.get_user_subscription(user_id)
        return {
            "id": user_id,
            "tier": user.tier,
            "creditsRemaining": float(user.credits_remaining),
            "completionsUsed": user.completions_used,
            "canUseDualAI": self.store.can_use_dual_ai(user_id),
        }

    def _api_keys(self, user_id: str) -> ApiKeys:
        return self.store.validator.get_api_keys(self.store.to_context(user_id))

    async def get_packages(self, arguments: dict[str, Any]) -> dict:
        args = ToolArgs.model_validate(arguments)
        user = self.store.get_user_subscription(args.user_id)
        low_balance = user.credits_remaining < LOW_CREDIT_THRESHOLD
        packages = self.store.catalog.describe()["packages"]
        return {
            "packages": packages,
            "userInfo": self._user_info(args.user_id),
            "recommendations": [
                {**package, "recommended": low_balance and key == RECOMMENDED_PACKAGE}
                for key, package in packages.items()
            ],
        }

    async def purchase_package(self, arguments: dict[str, Any]) -> dict:
        args = PurchaseArgs.model_validate(arguments)
        async with self.store.lock_for(args.user_id):
            self.store.purchase_credit_package(args.user_id, args.package_key)
        package = self.store.catalog.get_credit_package(args.package_key)
        return {
            "success": True,
            "message": f"Purchased {package.name}: +{package.credits_granted} credits, Dual AI Builder unlocked",
            "userInfo": self._user_info(args.user_id),
        }

    async def _generate_single(self, provider: ProviderType, arguments: dict[str, Any]) -> dict:
        args = SingleGenerationArgs.model_validate(arguments)
        api_keys = self._api_keys(args.user_id)
        api_key = api_keys.v0_api_key if provider == ProviderType.V0 else api_keys.gateway_api_key

        async with self.store.metered(args.user_id, Action.SINGLE_AI):
            response = await self.orchestrator.generate_single(
                provider,
                args.prompt,
                system_prompt=args.system_prompt,
                model=args.model,
                api_key=api_key,
            )

        return {
            "provider": provider.value,
            "success": True,
            "content": response.content,
            "model": response.model,
            "usage": self.store.get_usage_summary(args.user_id),
        }

    async def generate_v0(self, arguments: dict[str, Any]) -> dict:
        return await self._generate_single(ProviderType.V0, arguments)

    async def generate_gateway(self, arguments: dict[str, Any]) -> dict:
        return await self._generate_single(ProviderType.GATEWAY, arguments)

    async def generate_dual(self, arguments: dict[str, Any]) -> dict:
        args = DualGenerationArgs.model_validate(arguments)
        user = self.store.get_user_subscription(args.user_id)
        access_error = tier_access_error(user.tier, args.tier)
        if access_error:
            raise EntitlementDenied(access_error, reason="tier_access", status_code=403)

        api_keys = self._api_keys(args.user_id)
        async with self.store.metered(args.user_id, Action.DUAL_AI):
            orchestration = await self.orchestrator.orchestrate(
                args.prompt,
                tier=args.tier,
                api_keys=api_keys,
                v0_model=args.v0_model,
                gateway_model=args.gateway_model,
            )

        return {
            "provider": "dual",
            "success": True,
            "content": orchestration.result,
            "analysis": orchestration.analysis.model_dump(),
            "tier": orchestration.tier,
            "estimatedCost": orchestration.estimated_cost,
            "tierDescription": orchestration.tier_description,
            "usage": self.store.get_usage_summary(args.user_id),
        }

    async def get_config(self, arguments: dict[str, Any]) -> dict:
        args = ToolArgs.model_validate(arguments)
        settings = self.orchestrator.settings
        user = self.store.get_user_subscription(args.user_id)
        can_use_dual = self.store.can_use_dual_ai(args.user_id)
        catalog = self.store.catalog.describe()
        basic = get_tier_config(GenerationTierName.BASIC)
        return {
            "providers": {
                "v0": {
                    "model": settings.v0_model,
                    "baseUrl": settings.v0_base_url,
                    "available": bool(settings.v0_api_key),
                },
                "gateway": {
                    "model": settings.ai_gateway_model,
                    "baseUrl": settings.ai_gateway_base_url,
                    "available": bool(settings.ai_gateway_api_key),
                },
            },
            "user": self._user_info(args.user_id),
            "availablePackages": catalog["packages"],
            "subscriptionTiers": catalog["tiers"],
            "models": get_available_models(),
            "defaultGenerationTier": {
                "name": basic.name.value,
                "v0Model": basic.v0_model,
                "gatewayModel": basic.gateway_model,
                "estimatedCost": basic.estimated_cost,
            },
            "recommendations": {
                "suggestedPackage": RECOMMENDED_PACKAGE if user.credits_remaining < LOW_CREDIT_THRESHOLD else None,
                "canUseDualAI": can_use_dual,
                "nextTierBenefits": (
                    "Upgrade to Pro for unlimited projects and Dual AI"
                    if user.tier == SubscriptionTier.FREE.value
                    else None
                ),
            },
        }

    async def manage_subscription(self, arguments: dict[str, Any]) -> dict:
        args = SubscriptionArgs.model_validate(arguments)
        user_id = args.user_id

        if args.action == "get-status":
            return {"success": True, "subscription": self.store.get_usage_summary(user_id)}

        async with self.store.lock_for(user_id):
            if args.action == "purchase-credits":
                if not args.package_key:
                    raise ValidationError("packageKey is required for purchase-credits")
                self.store.purchase_credit_package(user_id, args.package_key)
                message = f"Purchased {args.package_key} package"

            elif args.action == "upgrade-tier":
                if not args.tier:
                    raise ValidationError("tier is required for upgrade-tier")
                api_keys = args.api_keys.to_api_keys() if args.api_keys else None
                user = self.store.upgrade_subscription(user_id, args.tier.strip().lower(), api_keys)
                message = f"Upgraded to {self.store.catalog.get_tier_config(user.tier).name}"

            else:
                api_keys = args.api_keys.to_api_keys() if args.api_keys else ApiKeys()
                self.store.upgrade_subscription(user_id, SubscriptionTier.PRO_BYOK, api_keys)
                message = "Bring-your-own-key subscription configured"

        logger.info(f"MCP {args.action} for user {user_id}")
        return {
            "success": True,
            "message": message,
            "subscription": self.store.get_usage_summary(user_id),
        }

    async def manage_project(self, arguments: dict[str, Any]) -> dict:
        args = ProjectArgs.model_validate(arguments)

        if args.action == "create":
            async with self.store.metered(args.user_id, Action.CREATE_PROJECT):
                logger.info(
                    f"Creating {args.project_type or 'project'} "
                    f"{args.project_name or '(unnamed)'} for user {args.user_id}"
                )
            return {
                "success": True,
                "message": f"Project {args.project_name or '(unnamed)'} created",
                "projects": self.store.get_project_usage(args.user_id),
            }

        return {"success": True, "projects": self.store.get_project_usage(args.user_id)}
