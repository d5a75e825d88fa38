"""System prompts and task templates sent to the providers."""

import logging
from pathlib import Path
from typing import Optional

from ..models.generation import ContentType, ProviderType

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_FILES = {
    ProviderType.V0: "v0-system.txt",
    ProviderType.GATEWAY: "gateway-system.txt",
}

DEFAULT_SYSTEM_PROMPTS = {
    ProviderType.V0: (
        "You are v0, an expert frontend engineer. Generate production-ready React "
        "and Next.js code styled with Tailwind CSS. Return complete, self-contained "
        "files with accessible markup and no placeholder logic."
    ),
    ProviderType.GATEWAY: (
        "You are a senior full-stack engineer. Generate the application logic, data "
        "handling and API integration that complements a React UI. Return complete, "
        "typed code with brief notes on how the pieces fit together."
    ),
}


def get_system_prompt(provider: ProviderType, prompts_dir: Optional[str] = None) -> str:
    """
    Get the system prompt for a provider.

    A file named v0-system.txt / gateway-system.txt in prompts_dir overrides
    the built-in prompt.
    """
    provider = ProviderType(provider)
    if prompts_dir:
        path = Path(prompts_dir) / SYSTEM_PROMPT_FILES[provider]
        if path.is_file():
            return path.read_text(encoding="utf-8")
        logger.warning(f"System prompt file {path} not found, using built-in prompt")
    return DEFAULT_SYSTEM_PROMPTS[provider]


def get_multi_page_site_prompt(library: str) -> str:
    return f"You are to generate a multi-page site using the {library} UI library."


def get_generation_prompt(library: str) -> str:
    return f"You are to generate a UI component using the {library} UI library."


def build_task(prompt: str, content_type: ContentType, library: str) -> str:
    """Prefix the raw prompt with the instruction template for its content type."""
    if ContentType(content_type) == ContentType.SITE:
        template = get_multi_page_site_prompt(library)
    else:
        template = get_generation_prompt(library)
    return f"{template}\n{prompt}"
