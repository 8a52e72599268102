"""Application configuration via environment variables."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = "development"
    debug: bool = False
    service_name: str = "tasktalk-service"

    # CORS
    cors_origins: list[str] = ["*"]

    # Language model provider (OpenAI-compatible chat completions)
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_api_key: SecretStr = SecretStr("")
    llm_model: str = "anthropic/claude-3.5-sonnet:beta"
    llm_referer: str | None = "http://localhost:3000"

    # Task provider REST API and OAuth
    task_api_base_url: str = "https://api.ticktick.com/open/v1"
    oauth_authorize_url: str = "https://ticktick.com/oauth/authorize"
    oauth_token_url: str = "https://api.ticktick.com/oauth/token"
    oauth_client_id: str = ""
    oauth_client_secret: SecretStr = SecretStr("")
    oauth_redirect_uri: str = "http://localhost:8000/auth/callback"
    oauth_scope: str = "tasks:write tasks:read"
    oauth_state_ttl_seconds: float = 600.0

    # Caching, rate limiting and retries
    nlp_cache_ttl_seconds: float = 300.0
    task_cache_ttl_seconds: float = 30.0
    rate_limit_requests: int = 10
    rate_limit_window_seconds: float = 60.0
    retry_max_attempts: int = 3
    request_timeout_seconds: float = 30.0

    class Config:
        env_prefix = "TASKTALK_"
        env_file = ".env"
        case_sensitive = False


settings = Settings()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings
