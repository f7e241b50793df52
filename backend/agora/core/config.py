"""
Agora Forum Configuration.

Environment-based configuration using Pydantic Settings.
All sensitive values should be set via environment variables.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Agora Forum"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Database
    database_url: str = "sqlite+aiosqlite:///./forum.db"
    database_echo: bool = False
    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Sessions
    session_lifetime_hours: int = 24
    session_cookie_name: str = "session_token"
    session_cookie_secure: bool = False  # Set to true behind HTTPS
    session_cleanup_interval_minutes: int = 60

    # Accounts
    password_min_length: int = 6

    # Forum
    forum_posts_per_page: int = 20
    forum_max_page_size: int = 100
    forum_comments_limit: int = 100
    default_categories: list[str] = [
        "General",
        "Technology",
        "Gaming",
        "Sports",
        "Entertainment",
    ]

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    @field_validator("database_url", mode="before")
    @classmethod
    def validate_database_url(cls, v: Any) -> Any:
        """Ensure database URL uses an async driver."""
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+asyncpg://", 1)
            if v.startswith("sqlite://"):
                return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @property
    def session_max_age(self) -> int:
        """Session lifetime in seconds, used for the cookie max-age."""
        return self.session_lifetime_hours * 60 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
