"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="StreamScout", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    openrouter_api_key: str | None = Field(
        default=None, alias="OPENROUTER_API_KEY"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash-lite", alias="OPENROUTER_MODEL"
    )
    openrouter_api_url: HttpUrl = Field(
        default="https://openrouter.ai/api/v1", alias="OPENROUTER_API_URL"
    )

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./streamscout.db", alias="DATABASE_URL"
    )

    cache_ttl_seconds: int = Field(default=3_600, alias="CACHE_TTL", ge=0)
    cache_max_entries: int = Field(
        default=2_048, alias="CACHE_MAX_ENTRIES", ge=0
    )

    search_ip_limit: int = Field(default=10, alias="SEARCH_IP_LIMIT", ge=1)
    search_user_limit: int = Field(default=5, alias="SEARCH_USER_LIMIT", ge=1)
    rate_limit_window_seconds: int = Field(
        default=60, alias="RATE_LIMIT_WINDOW", ge=1
    )
    rate_limit_sweep_interval_seconds: int = Field(
        default=300, alias="RATE_LIMIT_SWEEP_INTERVAL", ge=1
    )

    default_result_cap: int = Field(
        default=25, alias="DEFAULT_RESULT_CAP", ge=1, le=100
    )
    filtered_result_cap: int = Field(
        default=40, alias="FILTERED_RESULT_CAP", ge=1, le=100
    )
    search_timeout_seconds: float = Field(
        default=90.0, alias="SEARCH_TIMEOUT", gt=0
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @model_validator(mode="after")
    def _check_result_caps(self) -> "Settings":
        """Filtered searches must never ask for fewer titles than plain ones."""

        if self.filtered_result_cap < self.default_result_cap:
            raise ValueError(
                "FILTERED_RESULT_CAP must be greater than or equal to DEFAULT_RESULT_CAP"
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
