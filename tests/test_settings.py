"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import Settings


def test_defaults_match_documented_limits() -> None:
    """Out of the box the service uses the documented caps and rate limits."""

    settings = Settings(_env_file=None)

    assert settings.default_result_cap == 25
    assert settings.filtered_result_cap == 40
    assert settings.search_ip_limit == 10
    assert settings.search_user_limit == 5
    assert settings.rate_limit_window_seconds == 60
    assert settings.cache_ttl_seconds == 3_600
    assert settings.cache_max_entries == 2_048
    assert settings.search_timeout_seconds == 90.0
    assert settings.is_production is False


def test_environment_aliases_are_respected() -> None:
    """Settings should be populated from their environment variable names."""

    settings = Settings(
        _env_file=None,
        TMDB_API_KEY="tmdb-key",
        SEARCH_IP_LIMIT=3,
        ENVIRONMENT="production",
        CACHE_TTL=0,
    )

    assert settings.tmdb_api_key == "tmdb-key"
    assert settings.search_ip_limit == 3
    assert settings.cache_ttl_seconds == 0
    assert settings.is_production is True


def test_filtered_cap_cannot_be_smaller_than_default() -> None:
    """Filtered searches must request at least as many titles as plain ones."""

    with pytest.raises(ValueError, match="FILTERED_RESULT_CAP"):
        Settings(_env_file=None, DEFAULT_RESULT_CAP=30, FILTERED_RESULT_CAP=20)


def test_unknown_environment_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, ENVIRONMENT="staging")
