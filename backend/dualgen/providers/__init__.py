"""AI provider integrations."""

from .base import AIProvider, ProviderResponse
from .gateway_provider import GatewayProvider
from .v0_provider import V0Provider

__all__ = [
    "AIProvider",
    "ProviderResponse",
    "GatewayProvider",
    "V0Provider",
]
