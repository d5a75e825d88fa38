"""HTTP tests against the FastAPI app with fake providers."""

import logging

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from conftest import FakeProvider, make_headers
from dualgen.core.config import get_settings
from dualgen.core.errors import ProviderError
from dualgen.core.orchestrator import Orchestrator
from dualgen.core.security import get_user_or_ip
from dualgen.main import create_app
from dualgen.models.generation import ProviderType
from dualgen.subscriptions import DEFAULT_CATALOG, UNLIMITED, SubscriptionStore, TierConfig

PRO_HEADERS = make_headers(
    user_tier="pro",
    user_credits="20",
    user_completions="300",
    user_completions_used="1",
    has_dual_access="true",
)


def failing_client(settings, error) -> TestClient:
    orchestrator = Orchestrator(
        providers={
            ProviderType.V0: FakeProvider("v0"),
            ProviderType.GATEWAY: FakeProvider("gateway", error=error),
        },
        settings=settings,
    )
    app = create_app(store=SubscriptionStore(), orchestrator=orchestrator)
    return TestClient(app, raise_server_exceptions=False)


class TestService:
    """Root, health and metadata endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "dualgen"

    def test_health(self, client):
        response = client.get("/health")

        assert response.json()["status"] == "healthy"
        assert set(response.json()["providers"]) == {"v0", "gateway"}

    def test_security_headers(self, client):
        response = client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"

    def test_oauth_protected_resource(self, client):
        response = client.get("/.well-known/oauth-protected-resource")

        body = response.json()
        assert response.status_code == 200
        assert body["resource"]
        assert body["authorization_servers"]


class TestSecurity:
    """Rate limit keys and the audit log."""

    def test_rate_limit_key_prefers_user_header(self):
        request = Request({"type": "http", "headers": [(b"x-user-id", b"alice")], "client": ("10.0.0.1", 1234)})
        anonymous = Request({"type": "http", "headers": [], "client": ("10.0.0.1", 1234)})

        assert get_user_or_ip(request) == "user:alice"
        assert get_user_or_ip(anonymous) == "10.0.0.1"

    def test_audit_log_names_user_and_tier_but_not_keys(self, client, caplog):
        headers = make_headers(user_id="alice", v0_api_key="secret-v0")

        with caplog.at_level(logging.INFO, logger="dualgen.core.security"):
            client.post("/api/ai-completion", headers=headers, json={"prompt": "a card", "provider": "v0"})

        audit = [r.getMessage() for r in caplog.records if r.name == "dualgen.core.security"]
        assert len(audit) == 1
        assert "POST /api/ai-completion -> 200" in audit[0]
        assert "user=alice tier=free" in audit[0]
        assert "secret-v0" not in audit[0]

    def test_health_is_not_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="dualgen.core.security"):
            client.get("/health")

        assert not [r for r in caplog.records if r.name == "dualgen.core.security"]


class TestAICompletion:
    """POST /api/ai-completion end to end."""

    def test_single_provider_charges_a_credit(self, client, v0_provider, gateway_provider):
        response = client.post(
            "/api/ai-completion",
            headers=make_headers(),
            json={"prompt": "make a button", "provider": "v0"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["result"] == "<V0 UI />"
        assert data["provider"] == "v0"
        assert data["tier"] == "basic"
        assert data["estimatedCost"] == pytest.approx(0.01)
        assert data["tierDescription"] == "V0 only - Fast, cost-effective generation"
        assert data["usage"] == {
            "creditsUsed": 1.0,
            "completionsUsed": 0,
            "creditsRemaining": 4.0,
            "completionsRemaining": 0,
        }
        # Prompt is passed through untouched, on the service key
        assert v0_provider.calls[0]["prompt"] == "make a button"
        assert v0_provider.calls[0]["model"] == "v0-1.5-md"
        assert v0_provider.calls[0]["api_key"] is None
        assert gateway_provider.calls == []

    def test_gateway_single_uses_request_model_and_system_prompt(self, client, gateway_provider):
        response = client.post(
            "/api/ai-completion",
            headers=make_headers(),
            json={
                "prompt": "write the api",
                "provider": "gateway",
                "systemPrompt": "be terse",
                "gatewayModel": "anthropic/claude-x",
            },
        )

        assert response.status_code == 200
        assert response.json()["data"]["tierDescription"].startswith("AI Gateway only - ")
        assert gateway_provider.calls[0]["system_prompt"] == "be terse"
        assert gateway_provider.calls[0]["model"] == "anthropic/claude-x"

    def test_dual_spends_a_completion(self, client):
        response = client.post(
            "/api/ai-completion",
            headers=PRO_HEADERS,
            json={"prompt": "Create a modern landing page", "tier": "premium"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["provider"] == "dual"
        assert "// === AI SEPARATOR ===" in data["result"]
        assert data["estimatedCost"] == pytest.approx(0.08)
        assert data["usage"] == {
            "creditsUsed": 0.0,
            "completionsUsed": 1,
            "creditsRemaining": 20.0,
            "completionsRemaining": 298,
        }

    def test_byok_keys_reach_the_providers(self, client, v0_provider, gateway_provider):
        headers = make_headers(
            user_tier="byok",
            user_completions="300",
            has_dual_access="true",
            v0_api_key="user-v0",
            claude_api_key="user-claude",
        )

        response = client.post("/api/ai-completion", headers=headers, json={"prompt": "a card"})

        assert response.status_code == 200
        assert v0_provider.calls[0]["api_key"] == "user-v0"
        assert gateway_provider.calls[0]["api_key"] == "user-claude"

    def test_unlimited_completions_report_null(self, settings, orchestrator):
        team = TierConfig(
            tier="team",
            name="Team",
            price=50,
            monthly_credits=100,
            monthly_completions=UNLIMITED,
            project_limit=UNLIMITED,
            has_dual_ai=True,
            requires_own_keys=False,
        )
        store = SubscriptionStore(catalog=DEFAULT_CATALOG.with_tier(team))
        client = TestClient(create_app(store=store, orchestrator=orchestrator))

        response = client.post(
            "/api/ai-completion",
            headers=make_headers(user_tier="team", user_completions="-1", has_dual_access="true"),
            json={"prompt": "a card"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["usage"]["completionsRemaining"] is None

    def test_missing_headers(self, client, v0_provider):
        response = client.post("/api/ai-completion", json={"prompt": "a card", "provider": "v0"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "x-user-id" in response.json()["error"]
        assert v0_provider.calls == []

    @pytest.mark.parametrize(
        "body",
        [
            {"prompt": ""},
            {"provider": "v0"},
            {"prompt": "a card", "provider": "gpt"},
            {"prompt": "a card", "tier": "ultra"},
        ],
    )
    def test_invalid_body(self, client, body):
        response = client.post("/api/ai-completion", headers=make_headers(), json=body)

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_malformed_json(self, client):
        response = client.post(
            "/api/ai-completion",
            headers={**make_headers(), "content-type": "application/json"},
            content=b"{not json",
        )

        assert response.status_code == 400

    def test_dual_without_access_is_forbidden(self, client, v0_provider, gateway_provider):
        response = client.post("/api/ai-completion", headers=make_headers(), json={"prompt": "a card"})

        assert response.status_code == 403
        assert "premium feature" in response.json()["error"]
        assert v0_provider.calls == [] and gateway_provider.calls == []

    def test_usage_limit(self, client, v0_provider):
        response = client.post(
            "/api/ai-completion",
            headers=make_headers(user_credits="0"),
            json={"prompt": "a card", "provider": "v0"},
        )

        assert response.status_code == 402
        assert v0_provider.calls == []

    def test_premium_tier_refused_for_free(self, client):
        response = client.post(
            "/api/ai-completion",
            headers=make_headers(),
            json={"prompt": "a card", "provider": "v0", "tier": "premium"},
        )

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Premium tier requires a paid subscription"}

    def test_wrong_method(self, client):
        response = client.get("/api/ai-completion")

        assert response.status_code == 405
        assert response.json() == {"success": False, "error": "Method not allowed"}

    def test_provider_failure_is_500(self, settings):
        client = failing_client(settings, ProviderError("gateway", "HTTP 500"))

        response = client.post("/api/ai-completion", headers=PRO_HEADERS, json={"prompt": "a card"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "gateway: HTTP 500"}

    def test_unexpected_error_is_generic(self, settings):
        client = failing_client(settings, RuntimeError("secret details"))

        response = client.post("/api/ai-completion", headers=PRO_HEADERS, json={"prompt": "a card"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}


class TestGenerate:
    """Unmetered POST /api/generate."""

    def test_returns_result_and_analysis(self, client):
        response = client.post("/api/generate", json={"prompt": "Create a modern landing page"})

        assert response.status_code == 200
        body = response.json()
        assert "// === AI SEPARATOR ===" in body["result"]
        assert body["analysis"]["content_type"] == "site"
        assert body["analysis"]["library"] == "shadcn"

    def test_prompt_required(self, client):
        response = client.post("/api/generate", json={})

        assert response.status_code == 400


class TestBilling:
    """Stateful billing routes."""

    def test_catalog_routes(self, client):
        assert set(client.get("/api/v1/billing/tiers").json()["tiers"]) == {"free", "pro", "byok"}
        assert "medium" in client.get("/api/v1/billing/packages").json()["packages"]
        assert "basic" in client.get("/api/v1/billing/models").json()["tiers"]

    def test_subscription_is_created_on_read(self, client, store):
        response = client.get("/api/v1/billing/subscriptions/alice")

        assert response.status_code == 200
        assert response.json()["tier"] == "free"
        assert store.get_all_users()[0].user_id == "alice"

    def test_purchase(self, client, store):
        response = client.post("/api/v1/billing/subscriptions/alice/purchase", json={"package": "medium"})

        assert response.status_code == 200
        assert response.json()["subscription"]["credits"]["remaining"] == 10.0
        assert store.can_use_dual_ai("alice")

    def test_purchase_unknown_package(self, client):
        response = client.post("/api/v1/billing/subscriptions/alice/purchase", json={"package": "mega"})

        assert response.status_code == 400
        assert "Valid packages" in response.json()["error"]

    def test_upgrade(self, client):
        response = client.post("/api/v1/billing/subscriptions/alice/upgrade", json={"tier": "pro"})

        assert response.status_code == 200
        assert response.json()["subscription"]["tier"] == "pro"

    def test_byok_upgrade_requires_keys(self, client):
        response = client.post(
            "/api/v1/billing/subscriptions/alice/upgrade",
            json={"tier": "byok", "v0ApiKey": "v0-only"},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_project_limit(self, client, store):
        store.get_user_subscription("alice").projects_created = 200

        response = client.post("/api/v1/billing/subscriptions/alice/projects", json={"name": "one more"})

        assert response.status_code == 403

    def test_create_project(self, client):
        response = client.post("/api/v1/billing/subscriptions/alice/projects", json={})

        assert response.status_code == 200
        assert response.json()["projects"]["used"] == 1


class TestAdmin:
    """Admin routes behind X-Admin-Key."""

    @pytest.fixture(autouse=True)
    def admin_key(self, monkeypatch):
        monkeypatch.setenv("ADMIN_API_KEY", "admin-secret")
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_requires_key(self, client):
        assert client.get("/api/v1/admin/users").status_code == 403
        assert client.get("/api/v1/admin/users", headers={"X-Admin-Key": "wrong"}).status_code == 403

    def test_list_and_reset(self, client, store):
        store.upgrade_subscription("alice", "pro")
        store.use_completion("alice")
        headers = {"X-Admin-Key": "admin-secret"}

        listing = client.get("/api/v1/admin/users", headers=headers)
        reset = client.post("/api/v1/admin/users/alice/reset", headers=headers)

        assert listing.json()["total"] == 1
        assert reset.json()["subscription"]["completions"]["used"] == 0

    def test_reset_monthly(self, client, store):
        store.get_user_subscription("alice")
        store.get_user_subscription("bob")

        response = client.post("/api/v1/admin/reset-monthly", headers={"X-Admin-Key": "admin-secret"})

        assert response.json() == {"success": True, "users_reset": 2}

    def test_delete_user(self, client, store):
        store.get_user_subscription("alice")
        headers = {"X-Admin-Key": "admin-secret"}

        assert client.delete("/api/v1/admin/users/alice", headers=headers).status_code == 200
        assert client.delete("/api/v1/admin/users/alice", headers=headers).status_code == 404
