"""Shared fixtures: isolated stores, fake providers and a test client."""

import asyncio
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from dualgen.core.config import Settings
from dualgen.core.errors import ProviderError
from dualgen.core.orchestrator import Orchestrator
from dualgen.core.security import limiter
from dualgen.main import create_app
from dualgen.models.generation import ProviderType
from dualgen.providers.base import AIProvider, ProviderResponse
from dualgen.subscriptions import SubscriptionStore


class FakeProvider(AIProvider):
    """Records every call and returns canned content, fails, or stalls."""

    def __init__(self, name: str, content: str = "", error: Optional[Exception] = None, delay: float = 0):
        super().__init__(default_api_key="service-key", default_model=f"{name}-default")
        self.name = name
        self.content = content or f"<{name} output>"
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate(self, prompt, system_prompt=None, model=None, api_key=None) -> ProviderResponse:
        self.calls.append(
            {"prompt": prompt, "system_prompt": system_prompt, "model": model, "api_key": api_key}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ProviderResponse(content=self.content, model=model or self.default_model)


def make_headers(**overrides) -> dict:
    """Trust headers for a fresh free-tier user; keyword names use underscores for dashes."""
    headers = {
        "x-user-id": "user-1",
        "x-user-tier": "free",
        "x-user-credits": "5",
        "x-user-completions": "0",
        "x-user-completions-used": "0",
        "x-user-projects": "0",
        "x-has-dual-access": "false",
    }
    for key, value in overrides.items():
        headers[f"x-{key.replace('_', '-')}"] = value
    return headers


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Rate limit counters live in process memory; start every test clean."""
    limiter.reset()
    yield


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        v0_api_key="v0-service-key",
        ai_gateway_api_key="gateway-service-key",
        provider_timeout_seconds=0.5,
        admin_api_key="admin-secret",
    )


@pytest.fixture
def v0_provider():
    return FakeProvider("v0", content="<V0 UI />")


@pytest.fixture
def gateway_provider():
    return FakeProvider("gateway", content="// gateway logic")


@pytest.fixture
def orchestrator(settings, v0_provider, gateway_provider):
    return Orchestrator(
        providers={ProviderType.V0: v0_provider, ProviderType.GATEWAY: gateway_provider},
        settings=settings,
    )


@pytest.fixture
def store():
    return SubscriptionStore()


@pytest.fixture
def app(store, orchestrator):
    return create_app(store=store, orchestrator=orchestrator)


@pytest.fixture
def client(app):
    return TestClient(app)
