"""Decoder for the sectioned plain-text format returned by the text generator.

Grammar (sections appear in this order; trailing sections may be missing)::

    RECOMMENDATIONS: <comma separated titles>
    DETECTED_PLATFORMS: <comma separated platform names, single line>
    MESSAGE: <free text until the end of the response>

Labels are matched case-insensitively and may be wrapped in markdown bold.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..models import RawRecommendation
from ..utils import normalize_name

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Here are my recommendations for you!"
MAX_TITLE_LENGTH = 200
MAX_PLATFORM_LENGTH = 30

KNOWN_PLATFORMS: tuple[str, ...] = (
    "netflix",
    "disney",
    "disneyplus",
    "disney+",
    "amazon",
    "prime",
    "primevideo",
    "hbo",
    "hbomax",
    "apple",
    "appletv",
    "hulu",
    "paramount",
    "peacock",
    "showtime",
    "starz",
    "crave",
    "crunchyroll",
    "funimation",
    "canal+",
    "mubi",
)

_LABEL = r"[*_#\s]*{name}[*_\s]*:[*_]*"
_TITLES_RE = re.compile(
    _LABEL.format(name="RECOMMENDATIONS")
    + r"[ \t]*(.*?)(?=\n"
    + _LABEL.format(name="(?:DETECTED_PLATFORMS|(?-i:MESSAGE))")
    + r"|\Z)",
    re.IGNORECASE | re.DOTALL,
)
_PLATFORMS_RE = re.compile(
    _LABEL.format(name="DETECTED_PLATFORMS") + r"[ \t]*([^\n]*)",
    re.IGNORECASE,
)
# The message label must open its own line and is matched case-sensitively.
_MESSAGE_RE = re.compile(
    r"^[ \t*_#]*MESSAGE[*_ \t]*:[*_]*\s*(.+)\Z",
    re.MULTILINE | re.DOTALL,
)
_SPLIT_RE = re.compile(r"[,\n]")
_WRAPPING = " \t*\"'[]"


@dataclass(slots=True)
class ResponseSections:
    titles: str | None
    platforms: str | None
    message: str | None


def extract_sections(text: str) -> ResponseSections:
    text = (text or "").strip()
    titles = _TITLES_RE.search(text)
    platforms = _PLATFORMS_RE.search(text)
    message = _MESSAGE_RE.search(text)
    return ResponseSections(
        titles=titles.group(1) if titles else None,
        platforms=platforms.group(1) if platforms else None,
        message=message.group(1) if message else None,
    )


def clean_titles(raw: str | None) -> list[str]:
    """Split the title section, dropping blanks and prose-length entries."""

    if not raw:
        return []
    titles: list[str] = []
    for part in _SPLIT_RE.split(raw):
        title = part.strip().strip(_WRAPPING).strip()
        if not title or len(title) >= MAX_TITLE_LENGTH:
            continue
        titles.append(title)
    return titles


def is_known_platform(name: str) -> bool:
    normalized = normalize_name(name)
    if not normalized:
        return False
    return any(
        known in normalized or normalized in known for known in KNOWN_PLATFORMS
    )


def clean_platforms(raw: str | None) -> list[str]:
    """Keep short, known streaming service names from the platform section."""

    if not raw:
        return []
    platforms: list[str] = []
    for part in raw.split(","):
        platform = part.strip().strip(_WRAPPING).strip()
        if not platform or platform.lower() == "none":
            continue
        if (
            len(platform) > MAX_PLATFORM_LENGTH
            or ":" in platform
            or "." in platform
        ):
            logger.info("Ignoring invalid platform: %r", platform)
            continue
        if not is_known_platform(platform):
            logger.info("Unknown platform detected: %r - ignoring", platform)
            continue
        platforms.append(platform)
    return platforms


def decode_response(text: str) -> RawRecommendation:
    sections = extract_sections(text)
    message = (sections.message or "").strip()
    return RawRecommendation(
        titles=clean_titles(sections.titles),
        detected_platforms=clean_platforms(sections.platforms),
        message=message or DEFAULT_MESSAGE,
    )
