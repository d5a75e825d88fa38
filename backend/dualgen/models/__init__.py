"""Data models for the dual-AI generation broker."""

from .generation import (
    AICompletionData,
    AICompletionRequest,
    AICompletionResponse,
    ContentType,
    GenerateRequest,
    GenerationTierName,
    OrchestrationResult,
    PromptAnalysis,
    ProviderChoice,
    ProviderType,
    Style,
    UsageReport,
)
from .subscription import (
    ApiKeys,
    DenialReason,
    UserContext,
    UserSubscription,
    ValidationResult,
)

__all__ = [
    "AICompletionData",
    "AICompletionRequest",
    "AICompletionResponse",
    "ContentType",
    "GenerateRequest",
    "GenerationTierName",
    "OrchestrationResult",
    "PromptAnalysis",
    "ProviderChoice",
    "ProviderType",
    "Style",
    "UsageReport",
    "ApiKeys",
    "DenialReason",
    "UserContext",
    "UserSubscription",
    "ValidationResult",
]
