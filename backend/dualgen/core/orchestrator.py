"""Core orchestration engine for dual-provider UI generation."""

import asyncio
import logging
from typing import Optional

from ..models.generation import GenerationTierName, OrchestrationResult, ProviderType
from ..models.subscription import ApiKeys
from ..providers import AIProvider, GatewayProvider, ProviderResponse, V0Provider
from .classifier import analyze_prompt
from .config import Settings, get_settings
from .errors import ProviderError
from .generation_tiers import get_tier_config
from .prompts import build_task, get_system_prompt

logger = logging.getLogger(__name__)

AI_SEPARATOR = "\n\n// === AI SEPARATOR ===\n\n"


def merge_results(v0_content: str, gateway_content: str) -> str:
    """Concatenate both outputs, v0 first."""
    return f"{v0_content}{AI_SEPARATOR}{gateway_content}"


class Orchestrator:
    """
    Fans one generation request out to v0 and the AI gateway and merges the results.

    Responsibilities:
    - Initialize both providers from settings
    - Classify the prompt and build the shared task text
    - Call both providers concurrently with the generation tier's models
    - Bound every call by the configured timeout
    - Fail the whole request if either provider fails
    """

    def __init__(
        self,
        providers: Optional[dict[ProviderType, AIProvider]] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            providers: Pre-built providers keyed by type (built from settings when None)
            settings: Application settings (cached settings when None)
        """
        self.settings = settings or get_settings()
        self.providers = providers if providers is not None else self._initialize_providers()

    def _initialize_providers(self) -> dict[ProviderType, AIProvider]:
        """Both providers are always registered; BYOK users may supply keys the service lacks."""
        if not self.settings.v0_api_key:
            logger.warning("V0_API_KEY not set; v0 calls require caller-supplied keys")
        if not self.settings.ai_gateway_api_key:
            logger.warning("AI_GATEWAY_API_KEY not set; gateway calls require caller-supplied keys")

        prompts_dir = self.settings.system_prompts_dir
        return {
            ProviderType.V0: V0Provider(
                api_key=self.settings.v0_api_key,
                base_url=self.settings.v0_base_url,
                default_model=self.settings.v0_model,
                default_system_prompt=get_system_prompt(ProviderType.V0, prompts_dir),
                timeout=self.settings.provider_timeout_seconds,
                max_tokens=self.settings.provider_max_tokens,
                temperature=self.settings.provider_temperature,
            ),
            ProviderType.GATEWAY: GatewayProvider(
                api_key=self.settings.ai_gateway_api_key,
                base_url=self.settings.ai_gateway_base_url,
                default_model=self.settings.ai_gateway_model,
                default_system_prompt=get_system_prompt(ProviderType.GATEWAY, prompts_dir),
                timeout=self.settings.provider_timeout_seconds,
                max_tokens=self.settings.provider_max_tokens,
                temperature=self.settings.provider_temperature,
            ),
        }

    def _get_provider(self, provider_type: ProviderType) -> AIProvider:
        provider = self.providers.get(ProviderType(provider_type))
        if provider is None:
            raise ProviderError(ProviderType(provider_type).value, "provider not configured")
        return provider

    async def _call_provider(
        self,
        provider_type: ProviderType,
        prompt: str,
        system_prompt: Optional[str],
        model: Optional[str],
        api_key: Optional[str],
    ) -> ProviderResponse:
        """Single provider call bounded by provider_timeout_seconds."""
        provider = self._get_provider(provider_type)
        timeout = self.settings.provider_timeout_seconds
        try:
            return await asyncio.wait_for(
                provider.generate(prompt, system_prompt=system_prompt, model=model, api_key=api_key),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"{provider.name} timed out after {timeout}s")
            raise ProviderError(provider.name, f"timed out after {timeout}s") from None

    async def orchestrate(
        self,
        prompt: str,
        tier: GenerationTierName = GenerationTierName.BASIC,
        api_keys: Optional[ApiKeys] = None,
        v0_model: Optional[str] = None,
        gateway_model: Optional[str] = None,
    ) -> OrchestrationResult:
        """
        Generate with both providers and merge the outputs.

        Args:
            prompt: Raw user prompt
            tier: Generation tier selecting models and cost estimate
            api_keys: Caller credentials (BYOK); service keys when empty
            v0_model: Overrides the tier's v0 model
            gateway_model: Overrides the tier's gateway model

        Returns:
            OrchestrationResult with the merged text and classifier output

        Raises:
            ProviderError: If either provider fails or times out. No partial
                result is returned.
        """
        tier_config = get_tier_config(tier)
        api_keys = api_keys or ApiKeys()
        analysis = analyze_prompt(prompt)
        task = build_task(prompt, analysis.content_type, analysis.library)

        logger.info(
            f"Dual generation ({tier_config.name.value}): {analysis.content_type} "
            f"styled {analysis.style} with {analysis.library}"
        )

        v0_response, gateway_response = await asyncio.gather(
            self._call_provider(
                ProviderType.V0,
                task,
                system_prompt=None,
                model=v0_model or tier_config.v0_model,
                api_key=api_keys.v0_api_key,
            ),
            self._call_provider(
                ProviderType.GATEWAY,
                task,
                system_prompt=None,
                model=gateway_model or tier_config.gateway_model,
                api_key=api_keys.gateway_api_key,
            ),
        )

        return OrchestrationResult(
            result=merge_results(v0_response.content, gateway_response.content),
            analysis=analysis,
            tier=tier_config.name,
            estimated_cost=tier_config.estimated_cost,
            tier_description=tier_config.description,
        )

    async def generate_single(
        self,
        provider: ProviderType,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> ProviderResponse:
        """Call one provider directly with the prompt as given."""
        logger.info(f"Single generation with {ProviderType(provider).value} ({model or 'default model'})")
        return await self._call_provider(
            ProviderType(provider),
            prompt,
            system_prompt=system_prompt,
            model=model,
            api_key=api_key,
        )
