"""Tests for the MCP tool surface."""

import json
from decimal import Decimal

import pytest
from mcp.server import Server
from mcp.types import CallToolRequest, ListToolsRequest

from conftest import FakeProvider
from dualgen.core.errors import ProviderError
from dualgen.core.orchestrator import Orchestrator
from dualgen.mcp.handlers import ToolHandlers
from dualgen.mcp.server import create_server, dispatch_tool, handle_tool_error
from dualgen.mcp.tool_definitions import TOOLS
from dualgen.models.generation import ProviderType


@pytest.fixture
def tools(store, orchestrator):
    return ToolHandlers(store, orchestrator)


def parse(contents) -> dict:
    assert len(contents) == 1
    return json.loads(contents[0].text)


class TestToolRegistry:
    """Tool definitions and handlers stay in sync."""

    def test_every_tool_has_a_handler(self, tools):
        assert {tool.name for tool in TOOLS} == set(tools.handlers)

    def test_create_server(self, store, orchestrator):
        server = create_server(store, orchestrator)

        assert isinstance(server, Server)
        assert server.name == "dual-ai-orchestrator"
        assert ListToolsRequest in server.request_handlers
        assert CallToolRequest in server.request_handlers


class TestCatalogTools:
    """get-packages, purchase-package and get-config."""

    @pytest.mark.asyncio
    async def test_get_packages_recommends_medium_when_low(self, tools):
        result = await tools.get_packages({"userId": "alice"})

        recommended = [p["key"] for p in result["recommendations"] if p["recommended"]]
        assert recommended == []  # 5 credits is not below the threshold
        assert result["userInfo"]["creditsRemaining"] == 5.0

    @pytest.mark.asyncio
    async def test_get_packages_for_low_balance(self, tools, store):
        store.use_credits("alice", 3)

        result = await tools.get_packages({"userId": "alice"})

        recommended = [p["key"] for p in result["recommendations"] if p["recommended"]]
        assert recommended == ["medium"]

    @pytest.mark.asyncio
    async def test_purchase_package(self, tools, store):
        result = await tools.purchase_package({"userId": "alice", "packageKey": "large"})

        assert result["success"] is True
        assert result["userInfo"]["canUseDualAI"] is True
        assert store.get_user_subscription("alice").credits_remaining == Decimal(12)

    @pytest.mark.asyncio
    async def test_get_config(self, tools):
        result = await tools.get_config({})

        assert result["user"]["id"] == "anonymous"
        assert result["providers"]["v0"]["available"] is True
        assert set(result["subscriptionTiers"]) == {"free", "pro", "byok"}
        assert result["recommendations"]["nextTierBenefits"] is not None


class TestGenerationTools:
    """Metered generation charges only after success."""

    @pytest.mark.asyncio
    async def test_generate_v0_charges_a_credit(self, tools, store, v0_provider):
        result = await tools.generate_v0({"prompt": "a button", "userId": "alice", "systemPrompt": "short"})

        assert result["success"] is True
        assert result["content"] == "<V0 UI />"
        assert v0_provider.calls[0]["system_prompt"] == "short"
        assert store.get_user_subscription("alice").credits_remaining == Decimal(4)

    @pytest.mark.asyncio
    async def test_generate_gateway(self, tools, gateway_provider):
        result = await tools.generate_gateway({"prompt": "an api"})

        assert result["provider"] == "gateway"
        assert len(gateway_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_dual_requires_access(self, tools, store, v0_provider):
        contents = await dispatch_tool(tools.handlers, "generate-dual", {"prompt": "a card", "userId": "alice"})

        assert parse(contents)["success"] is False
        assert v0_provider.calls == []
        assert store.get_user_subscription("alice").credits_remaining == Decimal(5)

    @pytest.mark.asyncio
    async def test_dual_after_purchase(self, tools, store):
        store.purchase_credit_package("alice", "small")

        result = await tools.generate_dual({"prompt": "a modern card", "userId": "alice"})

        assert "// === AI SEPARATOR ===" in result["content"]
        assert result["analysis"]["style"] == "modern"
        assert store.get_user_subscription("alice").credits_remaining == Decimal(6)

    @pytest.mark.asyncio
    async def test_failed_generation_is_not_charged(self, settings, store):
        orchestrator = Orchestrator(
            providers={
                ProviderType.V0: FakeProvider("v0", error=ProviderError("v0", "HTTP 503")),
                ProviderType.GATEWAY: FakeProvider("gateway"),
            },
            settings=settings,
        )
        tools = ToolHandlers(store, orchestrator)

        contents = await dispatch_tool(tools.handlers, "generate-v0", {"prompt": "a button", "userId": "alice"})

        assert parse(contents) == {"success": False, "error": "v0: HTTP 503"}
        assert store.get_user_subscription("alice").credits_remaining == Decimal(5)


class TestManagementTools:
    """manage-subscription and manage-project."""

    @pytest.mark.asyncio
    async def test_get_status(self, tools):
        result = await tools.manage_subscription({"action": "get-status", "userId": "alice"})

        assert result["subscription"]["tier"] == "free"

    @pytest.mark.asyncio
    async def test_upgrade_tier(self, tools, store):
        await tools.manage_subscription({"action": "upgrade-tier", "userId": "alice", "tier": "pro"})

        assert store.get_user_subscription("alice").tier == "pro"

    @pytest.mark.asyncio
    async def test_setup_byok(self, tools, store):
        await tools.manage_subscription(
            {
                "action": "setup-byok",
                "userId": "alice",
                "apiKeys": {"v0ApiKey": "v0", "claudeApiKey": "claude"},
            }
        )

        assert store.get_user_subscription("alice").tier == "byok"
        assert store.get_user_api_keys("alice").gateway_api_key == "claude"

    @pytest.mark.asyncio
    async def test_setup_byok_without_keys(self, tools):
        contents = await dispatch_tool(tools.handlers, "manage-subscription", {"action": "setup-byok"})

        assert parse(contents)["success"] is False

    @pytest.mark.asyncio
    async def test_purchase_credits_needs_package(self, tools):
        contents = await dispatch_tool(tools.handlers, "manage-subscription", {"action": "purchase-credits"})

        assert "packageKey" in parse(contents)["error"]

    @pytest.mark.asyncio
    async def test_manage_project(self, tools):
        created = await tools.manage_project({"action": "create", "userId": "alice", "projectName": "site"})
        usage = await tools.manage_project({"action": "get-usage", "userId": "alice"})

        assert created["projects"]["used"] == 1
        assert usage["projects"] == {"used": 1, "limit": 200, "can_create": True}

    @pytest.mark.asyncio
    async def test_unknown_action_is_invalid_input(self, tools):
        contents = await dispatch_tool(tools.handlers, "manage-project", {"action": "list"})

        assert parse(contents)["error"].startswith("Invalid input")


def test_unexpected_errors_are_generic():
    contents = handle_tool_error(RuntimeError("stack trace"), "generate-v0", {"prompt": "x"})

    assert parse(contents) == {"success": False, "error": "Internal server error"}


@pytest.mark.asyncio
async def test_unknown_tool(tools):
    contents = await dispatch_tool(tools.handlers, "generate-everything", {})

    assert parse(contents)["success"] is False


@pytest.mark.asyncio
async def test_successful_dispatch_is_pretty_json(tools):
    contents = await dispatch_tool(tools.handlers, "get-config", {"userId": "alice"})

    assert contents[0].type == "text"
    assert contents[0].text.startswith("{\n  ")
