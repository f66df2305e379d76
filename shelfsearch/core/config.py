"""Application settings parsed from environment variables and defaults."""

import json
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FALLBACK_CATEGORIES = ["games"]


class Settings(BaseSettings):
    """Search engine configuration loaded from environment variables."""

    app_name: str = "Shelfsearch API"
    environment: str = "development"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    rawg_api_key: Optional[str] = None
    tmdb_api_key: Optional[str] = None
    tmdb_api_auth_header: Optional[str] = None
    google_books_api_key: Optional[str] = None
    itunes_country: str = "US"

    http_timeout_seconds: float = 15.0
    http_max_attempts: int = 3

    search_debounce_seconds: float = 1.0
    search_min_query_length: int = 2
    search_results_per_source: int = 8
    search_enrich_top_n: int = 3
    search_adapter_timeout_seconds: float = 10.0
    search_fallback_categories: list[str] | str = Field(
        default_factory=lambda: DEFAULT_FALLBACK_CATEGORIES.copy()
    )

    circuit_threshold: int = 3
    circuit_base_backoff_seconds: float = 15.0
    circuit_max_backoff_seconds: float = 300.0

    @field_validator("search_fallback_categories", mode="before")
    @classmethod
    def _split_fallback_categories(cls, value: str | list[str] | None) -> list[str]:
        """Normalize fallback categories from JSON, CSV, or list inputs."""
        if isinstance(value, list):
            return [item.strip().lower() for item in value if isinstance(item, str) and item.strip()]
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return []
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return [str(item).strip().lower() for item in parsed if str(item).strip()]
            return [item.strip().lower() for item in stripped.split(",") if item.strip()]
        return DEFAULT_FALLBACK_CATEGORIES.copy()

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings to avoid re-parsing environment variables."""
    return Settings()


settings = get_settings()
