"""Utility helpers for the StreamScout service."""

from __future__ import annotations

import hashlib
import re
from typing import Any, Mapping


WHITESPACE_RE = re.compile(r"\s+")
YEAR_RE = re.compile(r"(18|19|20|21)\d{2}")


def normalize_name(value: str) -> str:
    """Lower-case a provider or platform name and drop all whitespace."""

    return WHITESPACE_RE.sub("", value or "").lower()


def names_overlap(left: str, right: str) -> bool:
    """Return True when either normalized name contains the other."""

    a = normalize_name(left)
    b = normalize_name(right)
    if not a or not b:
        return False
    return a in b or b in a


def parse_year(value: Any) -> int | None:
    """Extract a four digit year from a date-like value."""

    if isinstance(value, int):
        return value
    if not value:
        return None
    match = YEAR_RE.search(str(value))
    if not match:
        return None
    return int(match.group(0))


def hash_token(token: str) -> str:
    """Return the stored fingerprint of an opaque bearer token."""

    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def extract_bearer_token(header_value: str | None) -> str | None:
    if not header_value:
        return None
    scheme, _, credentials = header_value.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    credentials = credentials.strip()
    return credentials or None


def client_ip_from_headers(headers: Mapping[str, str], fallback: str | None = None) -> str:
    """Resolve the caller IP, preferring proxy headers."""

    for header in ("cf-connecting-ip", "x-real-ip"):
        value = headers.get(header)
        if value and value.strip():
            return value.strip()
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",", 1)[0].strip()
        if first:
            return first
    return fallback or "unknown"


def mask_identifier(value: str) -> str:
    """Mask an account identifier for log output."""

    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-4:]}"
