"""Application configuration."""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # v0.dev (OpenAI-compatible chat completions)
    v0_api_key: str = ""
    v0_base_url: str = "https://api.v0.dev/v1"
    v0_model: str = "v0-1.5-md"

    # AI Gateway fronting Anthropic Claude. The SDK appends /v1/messages, so a
    # Cloudflare gateway URL ends at the provider segment:
    # https://gateway.ai.cloudflare.com/v1/<account_id>/<gateway_id>/anthropic
    # None calls api.anthropic.com directly.
    ai_gateway_api_key: str = ""
    ai_gateway_base_url: Optional[str] = None
    ai_gateway_model: str = "anthropic/claude-3-5-sonnet-20241022"

    # Provider call behaviour
    provider_timeout_seconds: float = 60.0
    provider_max_tokens: int = 4000
    provider_temperature: float = 0.7

    # Directory holding v0-system.txt / gateway-system.txt overrides
    system_prompts_dir: Optional[str] = None

    # Application settings
    environment: str = "development"
    log_level: str = "INFO"

    # Rate limit applied to generation endpoints (slowapi syntax)
    rate_limit: str = "30/minute"

    # Shared secret for /admin routes. Admin routes are disabled when empty.
    admin_api_key: str = ""

    # OAuth protected-resource metadata
    public_base_url: str = "http://localhost:8000"
    auth_server_urls: str = ""

    # CORS Configuration
    # Comma-separated list of allowed origins. In production, set to your domain.
    cors_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def auth_server_urls_list(self) -> list[str]:
        """Parse authorization server URLs from comma-separated string."""
        return [url.strip() for url in self.auth_server_urls.split(",") if url.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
