"""Keyword classification of UI-generation prompts."""

from ..models.generation import ContentType, PromptAnalysis, Style

BASE_CONFIDENCE = 0.7
SITE_BONUS = 0.15
COMPONENT_BONUS = 0.10
STYLE_BONUS = 0.05

SITE_KEYWORDS = ("landing page", "website", "home page", "dashboard", "multi-page")
COMPONENT_KEYWORDS = ("button", "form", "card", "modal", "input", "table")

# Scanned in this order; the first group with a hit wins
STYLE_INDICATORS: tuple[tuple[Style, tuple[str, ...]], ...] = (
    (Style.MODERN, ("modern", "sleek", "clean")),
    (Style.PROFESSIONAL, ("professional", "corporate")),
    (Style.BUSINESS, ("business", "enterprise")),
    (Style.MINIMAL, ("minimal", "simple", "plain")),
)

LIBRARY_MAPPING = {
    Style.MODERN: "shadcn",
    Style.PROFESSIONAL: "nextui",
    Style.BUSINESS: "antd",
    Style.MINIMAL: "chakra",
}


def analyze_prompt(prompt: str) -> PromptAnalysis:
    """
    Classify a prompt by substring matching.

    The component check runs after the site check and overrides it, so a
    prompt mentioning both (e.g. "a dashboard with a form") is a component.
    """
    lower = prompt.lower()
    content_type = ContentType.COMPONENT
    style = Style.MODERN
    confidence = BASE_CONFIDENCE

    if any(keyword in lower for keyword in SITE_KEYWORDS):
        content_type = ContentType.SITE
        confidence += SITE_BONUS

    if any(keyword in lower for keyword in COMPONENT_KEYWORDS):
        content_type = ContentType.COMPONENT
        confidence += COMPONENT_BONUS

    for style_key, indicators in STYLE_INDICATORS:
        if any(indicator in lower for indicator in indicators):
            style = style_key
            confidence += STYLE_BONUS
            break

    return PromptAnalysis(
        content_type=content_type,
        style=style,
        library=LIBRARY_MAPPING[style],
        confidence=min(confidence, 1.0),
    )
