"""Tests for shared helper functions and the error payloads."""

from __future__ import annotations

from app.errors import (
    AccessDeniedError,
    InternalError,
    RateLimitedError,
    UpstreamGenerationError,
)
from app.utils import (
    client_ip_from_headers,
    extract_bearer_token,
    hash_token,
    mask_identifier,
    names_overlap,
    normalize_name,
    parse_year,
)


def test_normalize_name_drops_whitespace_and_case() -> None:
    assert normalize_name("  Amazon Prime  Video ") == "amazonprimevideo"


def test_names_overlap_matches_substrings_in_both_directions() -> None:
    assert names_overlap("Netflix", "Netflix basic with Ads")
    assert names_overlap("Amazon Prime Video", "prime")
    assert not names_overlap("Hulu", "Disney Plus")
    assert not names_overlap("", "Netflix")


def test_parse_year_handles_dates_and_missing_values() -> None:
    assert parse_year("1999-03-31") == 1999
    assert parse_year(2010) == 2010
    assert parse_year("") is None
    assert parse_year(None) is None
    assert parse_year("unknown") is None


def test_extract_bearer_token_requires_bearer_scheme() -> None:
    assert extract_bearer_token("Bearer abc123") == "abc123"
    assert extract_bearer_token("bearer   abc123 ") == "abc123"
    assert extract_bearer_token("Basic abc123") is None
    assert extract_bearer_token("Bearer ") is None
    assert extract_bearer_token(None) is None


def test_hash_token_is_stable_sha256() -> None:
    digest = hash_token("secret")
    assert digest == hash_token("secret")
    assert len(digest) == 64
    assert digest != hash_token("Secret")


def test_client_ip_prefers_proxy_headers() -> None:
    assert client_ip_from_headers({"cf-connecting-ip": "1.1.1.1"}, "9.9.9.9") == "1.1.1.1"
    assert client_ip_from_headers({"x-real-ip": "2.2.2.2"}) == "2.2.2.2"
    assert (
        client_ip_from_headers({"x-forwarded-for": "3.3.3.3, 10.0.0.1"}, "9.9.9.9")
        == "3.3.3.3"
    )
    assert client_ip_from_headers({}, "9.9.9.9") == "9.9.9.9"
    assert client_ip_from_headers({}) == "unknown"


def test_mask_identifier_hides_middle() -> None:
    assert mask_identifier("account-123456789") == "acco...6789"
    assert mask_identifier("short") == "***"


def test_server_errors_hide_internal_text_unless_exposed() -> None:
    error = UpstreamGenerationError("provider said: quota exceeded for key sk-123")

    hidden = error.to_payload(expose_detail=False)
    exposed = error.to_payload(expose_detail=True)

    assert hidden == {"error": "An unexpected error occurred", "code": "generation_failed"}
    assert exposed["detail"] == "provider said: quota exceeded for key sk-123"
    assert InternalError().to_payload(expose_detail=True) == {
        "error": "An unexpected error occurred",
        "code": "internal_error",
    }


def test_access_denied_payload_carries_stable_code() -> None:
    payload = AccessDeniedError(
        "No active subscription or trial", reason="no_active_subscription"
    ).to_payload(expose_detail=False)

    assert payload == {
        "error": "Subscription required",
        "code": "subscription_required",
        "reason": "no_active_subscription",
    }


def test_rate_limited_error_exposes_retry_headers() -> None:
    error = RateLimitedError(limit=5, retry_after=42, scope="user")

    assert error.status_code == 429
    assert error.to_payload(expose_detail=False)["retryAfter"] == 42
    assert error.headers() == {
        "Retry-After": "42",
        "X-RateLimit-Limit": "5",
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": "42",
    }
