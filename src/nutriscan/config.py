"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from nutriscan.domain.analysis import Language

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_key: str
    storage_bucket: str = "food-images"
    oauth_provider: str = "google"
    analysis_provider: str = "openai"
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    analysis_max_retries: int = 3
    analysis_retry_delay_seconds: float = 2.0
    image_fetch_timeout_seconds: float = 20.0
    default_language: Language = Language.EN
    translate_history_on_language_change: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
