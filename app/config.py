"""
Application configuration using environment variables.
"""
import os
import secrets
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List, Optional


_GENERATED_SECRET = secrets.token_urlsafe(32)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "ReviewDesk API"
    debug: bool = False
    environment: str = "development"

    # Security (session tokens are issued by the identity provider)
    secret_key: str = os.getenv("SECRET_KEY", _GENERATED_SECRET)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./reviewdesk.db")

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Rate limiting
    schedule_rate_limit: str = "30/minute"
    ai_rate_limit: str = "10/minute"

    # Scheduled content validation
    min_question_length: int = 15
    min_answer_length: int = 5
    max_post_summary_length: int = 1500

    # Google Business Profile
    google_qanda_base_url: str = "https://mybusinessqanda.googleapis.com/v1"
    google_posts_base_url: str = "https://mybusiness.googleapis.com/v4"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None

    # AI text generation (OpenAI-compatible chat completions)
    ai_api_url: str = "https://api.openai.com/v1/chat/completions"
    ai_api_key: Optional[str] = None
    ai_model: str = "gpt-4o-mini"

    # Outbound HTTP
    http_timeout_seconds: int = 15

    # Publishing worker
    publish_batch_size: int = 50
    publish_poll_interval_seconds: int = 60
    publish_lease_seconds: int = 600

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Validate secret key on startup
settings = get_settings()
if settings.environment == "production" and settings.secret_key == _GENERATED_SECRET:
    raise ValueError(
        "SECRET_KEY must be set in production! "
        "Use the signing secret shared with the identity provider."
    )
