from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Environment: "development" | "production"
    environment: str = "development"
    log_level: str = "INFO"

    # Database: sqlite for local dev, postgresql://... in production
    database_url: str = "sqlite:///./app.db"

    # Frontend URL for CORS and Stripe redirects
    frontend_url: str = "http://localhost:3000"
    allowed_origins: str = "http://localhost:3000,http://localhost:3002"

    # Identity provider session tokens (verified, never issued here)
    auth_jwt_secret: str = ""
    auth_jwt_algorithm: str = "HS256"
    auth_jwt_issuer: str = ""
    auth_jwt_audience: str = ""

    # Test mode: accept X-User-Id header and fall back to dev_user_id.
    # Never enable in production.
    allow_unauthenticated: bool = False
    dev_user_id: str = "dev-user"

    # AI providers (empty = provider disabled, its models are hidden)
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    provider_timeout_seconds: float = 60.0

    # Chat
    chat_default_model: str = "claude-3-5-sonnet"
    chat_system_prompt: str = "You are a helpful AI assistant."
    chat_history_max_messages: int = 20
    chat_conversation_list_limit: int = 50
    chat_title_max_length: int = 50

    # Stripe (empty secret = billing disabled)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_price_starter: str = ""
    stripe_price_pro: str = ""
    stripe_price_enterprise: str = ""

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
