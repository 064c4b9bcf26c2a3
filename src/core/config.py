"""
CountyFix - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

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
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./countyfix.db"
    db_echo: bool = False

    # Blob storage (report photos)
    image_store_dir: str = "data/images"
    image_base_url: str = "/images"

    # OpenAI (image relevance classifier)
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    classifier_max_tokens: int = 10

    # Verification endpoint as seen by the submission workflow
    verification_base_url: str = "http://localhost:8000"
    verification_timeout_seconds: float = 30.0
    verification_delay_seconds: float = 1.0
    verification_retry_delay_seconds: float = 5.0

    # Submission rules
    duplicate_radius_meters: float = 50.0
    max_location_accuracy_meters: float = 100.0

    # Moderation
    message_ttl_hours: int = 2
    retain_declined_reports: bool = False

    # Leaderboard
    leaderboard_points_per_report: int = 10

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
