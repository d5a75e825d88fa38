"""Tests for the v0 and gateway provider adapters with mocked SDK clients."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import openai
import pytest

from dualgen.core.errors import ProviderError
from dualgen.providers import GatewayProvider, V0Provider
from dualgen.providers import base
from dualgen.providers.gateway_provider import native_model_name


def http_response(status_code: int, url: str) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", url))


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(base, "BASE_DELAY", 0)


def openai_completion(content: str = "<Button />", model: str = "v0-1.5-md"):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        model=model,
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=20, total_tokens=30),
    )


def anthropic_message(text: str = "const x = 1;", model: str = "claude-3-haiku-20240307"):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        model=model,
        usage=SimpleNamespace(input_tokens=5, output_tokens=7),
    )


@pytest.fixture
def v0_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=openai_completion())
    return client


@pytest.fixture
def v0(v0_client, monkeypatch):
    provider = V0Provider(api_key="service-key", default_system_prompt="system")
    monkeypatch.setattr(provider, "_client", MagicMock(return_value=v0_client))
    return provider


@pytest.fixture
def gateway_client():
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=anthropic_message())
    return client


@pytest.fixture
def gateway(gateway_client, monkeypatch):
    provider = GatewayProvider(api_key="service-key", default_system_prompt="system")
    monkeypatch.setattr(provider, "_client", MagicMock(return_value=gateway_client))
    return provider


class TestV0Provider:
    """OpenAI-compatible chat completions against v0.dev."""

    @pytest.mark.asyncio
    async def test_generate(self, v0, v0_client):
        response = await v0.generate("make a button", model="v0-1.5-lg")

        assert response.content == "<Button />"
        assert response.usage["total_tokens"] == 30
        kwargs = v0_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "v0-1.5-lg"
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "make a button"},
        ]

    @pytest.mark.asyncio
    async def test_caller_key_selects_client(self, v0):
        await v0.generate("make a button", api_key="user-key")

        v0._client.assert_called_once_with("user-key")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        provider = V0Provider(api_key="")

        with pytest.raises(ProviderError) as exc_info:
            await provider.generate("make a button")

        assert exc_info.value.provider == "v0"

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, v0, v0_client):
        v0_client.chat.completions.create.side_effect = openai.BadRequestError(
            "bad request",
            response=http_response(400, "https://api.v0.dev/v1/chat/completions"),
            body=None,
        )

        with pytest.raises(ProviderError) as exc_info:
            await v0.generate("make a button")

        assert "HTTP 400" in exc_info.value.message
        assert v0_client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, v0, v0_client):
        v0_client.chat.completions.create.side_effect = [
            openai.InternalServerError(
                "server error",
                response=http_response(500, "https://api.v0.dev/v1/chat/completions"),
                body=None,
            ),
            openai_completion(content="second try"),
        ]

        response = await v0.generate("make a button")

        assert response.content == "second try"
        assert v0_client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_connection_error(self, v0, v0_client):
        v0_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.v0.dev/v1/chat/completions")
        )

        with pytest.raises(ProviderError):
            await v0.generate("make a button")

    @pytest.mark.asyncio
    async def test_no_choices(self, v0, v0_client):
        v0_client.chat.completions.create.return_value = SimpleNamespace(choices=[], model="v0", usage=None)

        with pytest.raises(ProviderError):
            await v0.generate("make a button")


class TestGatewayProvider:
    """Anthropic messages through the AI gateway."""

    def test_native_model_name(self):
        assert native_model_name("anthropic/claude-3-opus-20240229") == "claude-3-opus-20240229"
        assert native_model_name("claude-3-opus-20240229") == "claude-3-opus-20240229"

    def test_gateway_url_keeps_the_provider_segment(self):
        base_url = "https://gateway.ai.cloudflare.com/v1/account/gateway/anthropic"
        provider = GatewayProvider(api_key="service-key", base_url=base_url)

        client = provider._client("service-key")

        assert str(client.base_url).rstrip("/") == base_url

    @pytest.mark.asyncio
    async def test_generate(self, gateway, gateway_client):
        response = await gateway.generate(
            "write the api", system_prompt="be terse", model="anthropic/claude-3-haiku-20240307"
        )

        assert response.content == "const x = 1;"
        assert response.usage == {"input_tokens": 5, "output_tokens": 7}
        kwargs = gateway_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-3-haiku-20240307"
        assert kwargs["system"] == "be terse"
        assert kwargs["messages"] == [{"role": "user", "content": "write the api"}]

    @pytest.mark.asyncio
    async def test_overload_retries_then_fails(self, gateway, gateway_client):
        gateway_client.messages.create.side_effect = anthropic.APIStatusError(
            "overloaded",
            response=http_response(529, "https://gateway.ai.cloudflare.com/v1/messages"),
            body=None,
        )

        with pytest.raises(ProviderError) as exc_info:
            await gateway.generate("write the api")

        assert exc_info.value.provider == "gateway"
        assert gateway_client.messages.create.await_count == base.MAX_RETRIES

    @pytest.mark.asyncio
    async def test_missing_key(self):
        provider = GatewayProvider(api_key="")

        with pytest.raises(ProviderError):
            await provider.generate("write the api")
