"""AI Gateway provider for Anthropic Claude models."""

import logging
from typing import Optional
from anthropic import AnthropicError, APIConnectionError, APIStatusError, AsyncAnthropic

from ..core.errors import ProviderError
from .base import AIProvider, ProviderResponse

logger = logging.getLogger(__name__)

GATEWAY_MODEL_PREFIX = "anthropic/"


def native_model_name(model: str) -> str:
    """Strip the gateway's provider prefix: anthropic/claude-x -> claude-x."""
    if model.startswith(GATEWAY_MODEL_PREFIX):
        return model[len(GATEWAY_MODEL_PREFIX):]
    return model


class GatewayProvider(AIProvider):
    """Anthropic Claude through an AI gateway, with automatic retry on overload."""

    name = "gateway"

    def __init__(
        self,
        api_key: str = "",
        base_url: Optional[str] = None,
        default_model: str = "anthropic/claude-3-5-sonnet-20241022",
        default_system_prompt: str = "",
        timeout: float = 60.0,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ):
        super().__init__(api_key, default_model, default_system_prompt)
        self.base_url = base_url
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._clients: dict[str, AsyncAnthropic] = {}

    def _client(self, api_key: str) -> AsyncAnthropic:
        client = self._clients.get(api_key)
        if client is None:
            client = AsyncAnthropic(
                api_key=api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            )
            self._clients[api_key] = client
        return client

    def _is_retryable_error(self, error: Exception) -> bool:
        """Check if an error is retryable (overload, rate limit, etc.)."""
        if isinstance(error, APIStatusError):
            # Retry on 429 (rate limit), 503 (service unavailable), 529 (overloaded)
            if error.status_code in (429, 503, 529):
                return True
            error_str = str(error).lower()
            if 'overloaded' in error_str or 'rate_limit' in error_str:
                return True
        return False

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> ProviderResponse:
        """Generate a response from Claude via the gateway."""
        client = self._client(self._resolve_api_key(api_key))
        model = native_model_name(model or self.default_model)

        async def _do_generate():
            return await client.messages.create(
                model=model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt or self.default_system_prompt,
                messages=[
                    {"role": "user", "content": prompt}
                ],
            )

        try:
            response = await self._retry_with_backoff(_do_generate, f"Gateway generate ({model})")
        except APIStatusError as e:
            logger.error(f"Gateway returned HTTP {e.status_code} for model {model}")
            raise ProviderError(self.name, f"HTTP {e.status_code}") from e
        except APIConnectionError as e:
            logger.error(f"Gateway connection failed for model {model}: {e}")
            raise ProviderError(self.name, "connection failed") from e
        except AnthropicError as e:
            logger.error(f"Gateway request failed for model {model}: {e}")
            raise ProviderError(self.name, str(e)) from e

        content = ""
        for block in response.content:
            if hasattr(block, "text"):
                content += block.text

        return ProviderResponse(
            content=content,
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )
