"""Configuration settings for the OmniDev backend."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Supabase
    supabase_url: str
    supabase_secret_key: str | None = None  # Backend/admin access
    # Legacy key, still honoured if the secret key is unset
    supabase_service_role_key: str | None = None

    # JWT
    jwt_secret_key: str  # Required - no default for security
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 1 week

    # AI bridge
    ai_latency_scale: float = 1.0  # 0 disables simulated model latency
    knowledge_max_entries: int | None = None
    enforce_explicit_model_entitlement: bool = True
    persist_learning_events: bool = False
    rate_limit_enabled: bool = True
    # Peers allowed to set X-Forwarded-For (comma-separated CIDRs)
    trusted_proxy_cidrs: str = "10.0.0.0/8,172.16.0.0/12,192.168.0.0/16,127.0.0.0/8,::1/128"

    # App
    debug: bool = False
    # CORS: Allowed origins for cross-origin requests
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
