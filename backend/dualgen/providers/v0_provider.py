"""v0.dev provider implementation (OpenAI-compatible chat completions)."""

import logging
from typing import Optional
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from ..core.errors import ProviderError
from .base import AIProvider, ProviderResponse

logger = logging.getLogger(__name__)


class V0Provider(AIProvider):
    """v0.dev API provider with automatic retry on overload."""

    name = "v0"

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.v0.dev/v1",
        default_model: str = "v0-1.5-md",
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
        self._clients: dict[str, AsyncOpenAI] = {}

    def _client(self, api_key: str) -> AsyncOpenAI:
        """One client per credential; BYOK users get their own."""
        client = self._clients.get(api_key)
        if client is None:
            client = AsyncOpenAI(
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
            # Retry on 429 (rate limit), 503 (service unavailable), 500 (server error)
            if error.status_code in (429, 500, 503):
                return True
        error_str = str(error).lower()
        if 'rate_limit' in error_str or 'overloaded' in error_str or 'server_error' in error_str:
            return True
        return False

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> ProviderResponse:
        """Generate a UI from v0.dev."""
        client = self._client(self._resolve_api_key(api_key))
        model = model or self.default_model

        async def _do_generate():
            return await client.chat.completions.create(
                model=model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt or self.default_system_prompt},
                    {"role": "user", "content": prompt},
                ],
            )

        try:
            response = await self._retry_with_backoff(_do_generate, f"v0 generate ({model})")
        except APIStatusError as e:
            logger.error(f"v0 returned HTTP {e.status_code} for model {model}")
            raise ProviderError(self.name, f"HTTP {e.status_code}") from e
        except APIConnectionError as e:
            logger.error(f"v0 connection failed for model {model}: {e}")
            raise ProviderError(self.name, "connection failed") from e
        except OpenAIError as e:
            logger.error(f"v0 request failed for model {model}: {e}")
            raise ProviderError(self.name, str(e)) from e

        if not response.choices:
            raise ProviderError(self.name, "response contained no choices")

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return ProviderResponse(
            content=response.choices[0].message.content or "",
            model=response.model or model,
            usage=usage,
        )
