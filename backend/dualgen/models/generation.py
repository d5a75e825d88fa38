"""Request, response and analysis models for UI generation."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ProviderType(str, Enum):
    """Supported AI backends."""
    V0 = "v0"
    GATEWAY = "gateway"


class ProviderChoice(str, Enum):
    """Which backend(s) a completion request targets."""
    V0 = "v0"
    GATEWAY = "gateway"
    DUAL = "dual"


class GenerationTierName(str, Enum):
    """Model/cost tiers a request may ask for."""
    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class ContentType(str, Enum):
    COMPONENT = "component"
    SITE = "site"


class Style(str, Enum):
    MODERN = "modern"
    PROFESSIONAL = "professional"
    BUSINESS = "business"
    MINIMAL = "minimal"


class PromptAnalysis(BaseModel):
    """Classifier output for a generation prompt."""
    content_type: ContentType = Field(..., description="Single component or whole site")
    style: Style = Field(..., description="Visual style inferred from the prompt")
    library: str = Field(..., description="UI library matching the style")
    confidence: float = Field(..., ge=0, le=1)

    model_config = ConfigDict(frozen=True, use_enum_values=True)


class AICompletionRequest(BaseModel):
    """Body of POST /api/ai-completion."""
    prompt: str = Field(..., min_length=1, description="What to generate")
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    model: Optional[str] = Field(default=None, description="Model override for single-provider calls")
    provider: ProviderChoice = Field(default=ProviderChoice.DUAL)
    tier: GenerationTierName = Field(default=GenerationTierName.BASIC)
    v0_model: Optional[str] = Field(default=None, alias="v0Model")
    gateway_model: Optional[str] = Field(default=None, alias="gatewayModel")

    model_config = ConfigDict(populate_by_name=True)


class GenerateRequest(BaseModel):
    """Body of POST /api/generate."""
    prompt: str = Field(..., min_length=1)


class OrchestrationResult(BaseModel):
    """Merged dual-provider output."""
    result: str
    analysis: PromptAnalysis
    tier: GenerationTierName
    estimated_cost: float
    tier_description: str

    model_config = ConfigDict(use_enum_values=True)


class UsageReport(BaseModel):
    """Usage block returned with every metered completion."""
    credits_used: float = Field(..., serialization_alias="creditsUsed")
    completions_used: int = Field(..., serialization_alias="completionsUsed")
    credits_remaining: float = Field(..., serialization_alias="creditsRemaining")
    completions_remaining: Optional[int] = Field(
        default=None,
        serialization_alias="completionsRemaining",
        description="None when the tier has unlimited completions",
    )


class AICompletionData(BaseModel):
    result: str
    provider: ProviderChoice
    tier: GenerationTierName
    estimated_cost: float = Field(..., serialization_alias="estimatedCost")
    tier_description: str = Field(..., serialization_alias="tierDescription")
    usage: UsageReport

    model_config = ConfigDict(use_enum_values=True)


class AICompletionResponse(BaseModel):
    """Success envelope for /api/ai-completion."""
    success: bool = True
    data: AICompletionData
