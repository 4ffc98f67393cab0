from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    assemblyai_api_key: str = ""
    huggingface_api_key: str = ""
    clerk_secret_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # External services
    assemblyai_speech_model: str = "universal-3-pro"
    summarization_model: str = "facebook/bart-large-cnn"
    summarization_base_url: str = "https://router.huggingface.co/hf-inference/models"
    clerk_api_url: str = "https://api.clerk.com/v1"

    # Attribution fallbacks for persisted summaries
    default_org_id: str = "org_default"
    system_user_id: str = "system"

    # Polling / retry policy
    poll_interval_seconds: float = 3.0
    transcription_timeout_seconds: float = 600.0
    summary_retry_backoff_seconds: float = 15.0
    summary_max_attempts: int = 5
    summary_max_elapsed_seconds: float = 120.0
    summary_max_input_chars: int = 4000

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
