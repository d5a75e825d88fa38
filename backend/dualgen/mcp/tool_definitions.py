"""MCP tool schema definitions for the dual-AI broker.

Each Tool() defines the name, description, and JSON Schema for one MCP tool.
Argument parsing and handlers live in dualgen.mcp.handlers.
"""

from mcp.types import Tool

from ..subscriptions import CREDIT_PACKAGES, SubscriptionTier

PACKAGE_KEYS = list(CREDIT_PACKAGES)
TIER_VALUES = [tier.value for tier in SubscriptionTier]
GENERATION_TIERS = ["basic", "premium", "enterprise"]

USER_ID_PROPERTY = {
    "type": "string",
    "description": "User ID the request is metered against (default: anonymous)",
    "default": "anonymous",
}

API_KEYS_PROPERTY = {
    "type": "object",
    "description": "Provider keys for the bring-your-own-key tier",
    "properties": {
        "v0ApiKey": {"type": "string", "description": "v0.dev API key"},
        "claudeApiKey": {"type": "string", "description": "Claude / AI Gateway API key"},
    },
}


def _single_generation_schema() -> dict:
    return {
        "type": "object",
        "properties": {
            "prompt": {
                "type": "string",
                "description": "The user prompt for content generation",
                "minLength": 1,
            },
            "systemPrompt": {
                "type": "string",
                "description": "Optional system prompt to guide the AI",
            },
            "model": {
                "type": "string",
                "description": "Optional model override (defaults to config)",
            },
            "userId": USER_ID_PROPERTY,
        },
        "required": ["prompt"],
    }


TOOLS = [
    Tool(
        name="get-packages",
        description="Get available credit packages for purchase, with a recommendation for the user's balance.",
        inputSchema={
            "type": "object",
            "properties": {"userId": USER_ID_PROPERTY},
        },
    ),
    Tool(
        name="purchase-package",
        description="Purchase a credit package to add credits. Any purchase unlocks the Dual AI Builder.",
        inputSchema={
            "type": "object",
            "properties": {
                "packageKey": {
                    "type": "string",
                    "enum": PACKAGE_KEYS,
                    "description": "Package to purchase",
                },
                "userId": USER_ID_PROPERTY,
            },
            "required": ["packageKey"],
        },
    ),
    Tool(
        name="generate-v0",
        description="Generate UI code using the v0.dev provider with a React/Next.js focus. Costs one completion or 1 credit.",
        inputSchema=_single_generation_schema(),
    ),
    Tool(
        name="generate-gateway",
        description="Generate code using Anthropic Claude through the AI Gateway. Costs one completion or 1 credit.",
        inputSchema=_single_generation_schema(),
    ),
    Tool(
        name="generate-dual",
        description="Generate with v0.dev and Claude in parallel and return the merged result. Requires Dual AI access; costs one completion or 2 credits.",
        inputSchema={
            "type": "object",
            "properties": {
                "prompt": {
                    "type": "string",
                    "description": "The user prompt for content generation",
                    "minLength": 1,
                },
                "tier": {
                    "type": "string",
                    "enum": GENERATION_TIERS,
                    "description": "Generation tier selecting models and cost (default: basic)",
                    "default": "basic",
                },
                "v0Model": {"type": "string", "description": "Override the tier's v0 model"},
                "gatewayModel": {"type": "string", "description": "Override the tier's Claude model"},
                "userId": USER_ID_PROPERTY,
            },
            "required": ["prompt"],
        },
    ),
    Tool(
        name="get-config",
        description="Get available models, provider configuration, subscription tiers and the user's status.",
        inputSchema={
            "type": "object",
            "properties": {"userId": USER_ID_PROPERTY},
        },
    ),
    Tool(
        name="manage-subscription",
        description="Inspect or change a subscription: get-status, purchase-credits, upgrade-tier or setup-byok.",
        inputSchema={
            "type": "object",
            "properties": {
                "action": {
                    "type": "string",
                    "enum": ["get-status", "purchase-credits", "upgrade-tier", "setup-byok"],
                },
                "userId": USER_ID_PROPERTY,
                "tier": {
                    "type": "string",
                    "enum": TIER_VALUES,
                    "description": "Target tier for upgrade-tier",
                },
                "packageKey": {
                    "type": "string",
                    "enum": PACKAGE_KEYS,
                    "description": "Package for purchase-credits",
                },
                "apiKeys": API_KEYS_PROPERTY,
            },
            "required": ["action"],
        },
    ),
    Tool(
        name="manage-project",
        description="Create a project against the tier's project limit, or report project usage.",
        inputSchema={
            "type": "object",
            "properties": {
                "action": {"type": "string", "enum": ["create", "get-usage"]},
                "userId": USER_ID_PROPERTY,
                "projectName": {"type": "string"},
                "projectType": {
                    "type": "string",
                    "enum": ["component", "page", "app", "api"],
                },
            },
            "required": ["action"],
        },
    ),
]
