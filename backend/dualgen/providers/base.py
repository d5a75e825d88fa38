"""Base provider interface."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, TypeVar
from pydantic import BaseModel

from ..core.errors import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Retry configuration
MAX_RETRIES = 3
BASE_DELAY = 2  # seconds
MAX_DELAY = 10  # seconds


class ProviderResponse(BaseModel):
    """Standardized response from AI providers."""
    content: str
    model: str
    usage: Optional[dict] = None  # Token usage stats, format varies by provider


class AIProvider(ABC):
    """
    Abstract base class for AI backends.

    Implementations translate (prompt, system prompt, model, credential) into
    one SDK call and raise ProviderError for any failure.
    """

    name: str = "provider"

    def __init__(self, default_api_key: str = "", default_model: str = "", default_system_prompt: str = ""):
        self.default_api_key = default_api_key
        self.default_model = default_model
        self.default_system_prompt = default_system_prompt

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> ProviderResponse:
        """
        Generate a response from the backend.

        Args:
            prompt: User task prompt
            system_prompt: System instructions (provider default when None)
            model: Model identifier (provider default when None)
            api_key: Caller-supplied credential (service key when None)

        Returns:
            ProviderResponse with the generated content

        Raises:
            ProviderError: On non-2xx responses, transport failures or empty output
        """

    def _resolve_api_key(self, api_key: Optional[str]) -> str:
        key = api_key or self.default_api_key
        if not key:
            raise ProviderError(self.name, "API key not configured")
        return key

    def _is_retryable_error(self, error: Exception) -> bool:
        """Check if an error is retryable (overload, rate limit, etc.)."""
        return False

    async def _retry_with_backoff(self, operation: Callable[[], Awaitable[T]], operation_name: str) -> T:
        """Execute an operation with exponential backoff retry."""
        last_error = None

        for attempt in range(MAX_RETRIES):
            try:
                return await operation()
            except Exception as e:
                last_error = e

                if not self._is_retryable_error(e):
                    # Non-retryable error, raise immediately
                    raise

                if attempt < MAX_RETRIES - 1:
                    delay = min(BASE_DELAY * (2 ** attempt), MAX_DELAY)
                    logger.warning(
                        f"{operation_name}: Retryable error (attempt {attempt + 1}/{MAX_RETRIES}), "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"{operation_name}: All {MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )

        # All retries exhausted
        raise last_error
