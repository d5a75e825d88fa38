"""API routes for UI generation."""

import json
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from ..core.config import get_settings
from ..core.errors import EntitlementDenied, ValidationError
from ..core.generation_tiers import get_tier_config, tier_access_error
from ..core.orchestrator import Orchestrator
from ..core.security import generation_rate_limit, limiter
from ..models.generation import (
    AICompletionData,
    AICompletionRequest,
    AICompletionResponse,
    GenerateRequest,
    ProviderChoice,
    ProviderType,
    UsageReport,
)
from ..subscriptions import Action, StatelessSubscriptionValidator
from ..subscriptions.validator import collect_field_errors
from .deps import get_orchestrator, get_validator

router = APIRouter(prefix="/api", tags=["generation"])
metadata_router = APIRouter(tags=["metadata"])
logger = logging.getLogger(__name__)

SINGLE_PROVIDER_LABELS = {
    ProviderType.V0: "V0 only",
    ProviderType.GATEWAY: "AI Gateway only",
}


async def _read_body(request: Request, model):
    """Parse the JSON body into a pydantic model, mapping failures to 400."""
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON") from None
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError("Invalid request body", collect_field_errors(e)) from None


@router.post("/ai-completion")
@limiter.limit(generation_rate_limit)
async def ai_completion(
    request: Request,
    validator: StatelessSubscriptionValidator = Depends(get_validator),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict:
    """
    Metered generation against one provider or both.

    The caller's usage snapshot arrives in the x-user-* headers. Nothing is
    persisted here: the response reports the usage the caller should record.
    Checks run in order (headers, body, generation tier, entitlement) and a
    provider is only called once all of them pass.
    """
    context = validator.parse_user_context(request.headers)
    body = await _read_body(request, AICompletionRequest)

    access_error = tier_access_error(context.tier, body.tier)
    if access_error:
        raise EntitlementDenied(access_error, reason="tier_access", status_code=403)

    provider_choice = ProviderChoice(body.provider)
    action = Action.DUAL_AI if provider_choice == ProviderChoice.DUAL else Action.SINGLE_AI
    validator.ensure_allowed(context, action)

    api_keys = validator.get_api_keys(context)
    tier_config = get_tier_config(body.tier)

    if provider_choice == ProviderChoice.DUAL:
        orchestration = await orchestrator.orchestrate(
            body.prompt,
            tier=body.tier,
            api_keys=api_keys,
            v0_model=body.v0_model,
            gateway_model=body.gateway_model,
        )
        result = orchestration.result
        estimated_cost = orchestration.estimated_cost
        tier_description = orchestration.tier_description
    else:
        provider = ProviderType(provider_choice.value)
        if provider == ProviderType.V0:
            model = body.model or body.v0_model or tier_config.v0_model
            api_key = api_keys.v0_api_key
        else:
            model = body.model or body.gateway_model or tier_config.gateway_model
            api_key = api_keys.gateway_api_key

        response = await orchestrator.generate_single(
            provider,
            body.prompt,
            system_prompt=body.system_prompt,
            model=model,
            api_key=api_key,
        )
        result = response.content
        # One provider, half the dual estimate
        estimated_cost = tier_config.estimated_cost * 0.5
        tier_description = f"{SINGLE_PROVIDER_LABELS[provider]} - {tier_config.description}"

    delta = validator.calculate_usage(context, action)
    logger.info(f"Completion for user {context.user_id}: {validator.generate_usage_summary(context, delta)}")

    return AICompletionResponse(
        data=AICompletionData(
            result=result,
            provider=provider_choice,
            tier=body.tier,
            estimated_cost=estimated_cost,
            tier_description=tier_description,
            usage=UsageReport(
                credits_used=float(delta.credits_used),
                completions_used=delta.completions_used,
                credits_remaining=float(delta.new_credits_remaining),
                completions_remaining=validator.completions_remaining_after(context, delta),
            ),
        )
    ).model_dump(by_alias=True)


@router.post("/generate")
@limiter.limit(generation_rate_limit)
async def generate(
    request: Request,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> dict:
    """Unmetered dual generation returning the merged result and the prompt analysis."""
    body = await _read_body(request, GenerateRequest)
    orchestration = await orchestrator.orchestrate(body.prompt)
    return {
        "result": orchestration.result,
        "analysis": orchestration.analysis.model_dump(),
    }


@metadata_router.get("/.well-known/oauth-protected-resource")
async def oauth_protected_resource() -> dict:
    """OAuth protected-resource metadata for MCP clients."""
    settings = get_settings()
    resource = settings.public_base_url.rstrip("/")
    return {
        "resource": resource,
        "authorization_servers": settings.auth_server_urls_list or [resource],
        "bearer_methods_supported": ["header"],
    }
