"""Application settings with environment variable support."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field
from typing import Optional
from pathlib import Path


# Compute base_dir at module level
_BASE_DIR = Path(__file__).parent.parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LNI_",  # LNI_DATABASE_URL, LNI_FETCH_TIMEOUT_SECONDS, etc.
        extra="ignore",
        populate_by_name=True,
    )

    # Paths - computed from base_dir
    base_dir: Path = _BASE_DIR
    data_dir: Path = _BASE_DIR / "data"

    # Database
    database_url: str = f"sqlite:///{_BASE_DIR / 'data' / 'news.db'}"

    # Fetching
    fetch_timeout_seconds: float = 15.0
    fetch_max_retries: int = 2
    fetch_user_agent: str = "Mozilla/5.0 (compatible; LocalNewsIngest/1.0; +https://example.org/bot)"
    fetch_accept: str = "application/rss+xml, application/xml, text/xml, application/atom+xml, */*"

    # Processing
    max_items_per_source: int = 40
    failure_threshold: int = 10
    max_concurrent_sources: int = 1  # sequential

    # Translation
    google_translate_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LNI_GOOGLE_TRANSLATE_API_KEY", "GOOGLE_TRANSLATE_API_KEY"),
    )
    translate_url: str = "https://translation.googleapis.com/language/translate/v2"
    translate_target_language: str = "en"
    translate_timeout_seconds: float = 20.0

    # Health / error log truncation
    error_message_max_chars: int = 1000
    stack_trace_max_chars: int = 5000

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"


settings = Settings()
