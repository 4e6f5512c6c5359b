"""Prompt construction and generation of raw title recommendations."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Sequence

from ..errors import UpstreamGenerationError
from ..models import RawRecommendation, YearFilter
from .openrouter import OpenRouterClient, OpenRouterError
from .response_decoder import decode_response

logger = logging.getLogger(__name__)

LANGUAGE_NAMES: dict[str, str] = {
    "fr": "French",
    "en": "English",
    "it": "Italian",
    "ja": "Japanese",
    "es": "Spanish",
    "de": "German",
    "pt": "Portuguese",
}

RECOMMENDATION_PROMPT_TEMPLATE = """
You are an expert assistant specializing in cinema and television with encyclopedic knowledge of films and series from around the world. A user asks you: "{query}".

TEMPORAL AWARENESS:
Today's date is {today}. Your training data may be out of date, so interpret time words relative to this date:
- "recent", "latest", "new" = released {recent_from}-{current_year}
- "modern", "contemporary" = released {modern_from}-{current_year}
- "2010s" = 2010-2019, "2000s" = 2000-2009, "90s" = 1990-1999, "80s" = 1980-1989
- "classic", "old", "vintage" = released before 1980
{year_constraint}
SEARCH STRATEGY:
- Think of iconic franchises, sequels, remakes, original-language titles and regional variants.
- Consider productions from every relevant country and decade unless the request narrows them.
- Prefer breadth: include cult classics and thematic neighbours that fit the request.

Provide three distinct outputs:

1. RECOMMENDATIONS: Up to {result_cap} {content_types} matching the request. List only exact titles separated by commas.

2. DETECTED_PLATFORMS: Streaming platforms explicitly mentioned in the user's request (e.g. "Netflix", "Disney+", "Amazon Prime", "HBO", "Hulu", "Apple TV"). Leave empty if none is mentioned. List only platform names separated by commas.

3. MESSAGE: A short conversational message (3-4 sentences maximum) matching the user's tone, giving context about the selection without naming specific titles.
You MUST write the MESSAGE in {language_name} only, whatever language the request is written in.

Format your response exactly like this:
RECOMMENDATIONS: [comma-separated list of titles]
DETECTED_PLATFORMS: [comma-separated list of platforms]
MESSAGE: [your conversational message]
"""


def language_name(language: str) -> str:
    """Map a language tag such as ``fr-FR`` onto its English name."""

    primary = (language or "").split("-", 1)[0].strip().lower()
    return LANGUAGE_NAMES.get(primary, "English")


def describe_year_filter(year_filter: YearFilter | None) -> str:
    if year_filter is None or year_filter.is_empty():
        return ""
    start, end = year_filter.year_from, year_filter.year_to
    if start is not None and end is not None:
        window = f"between {start} and {end}"
    elif start is not None:
        window = f"from {start} onwards"
    else:
        window = f"up to {end}"
    return (
        f"\nYEAR CONSTRAINT: Only recommend titles released {window}. "
        "This is a hard requirement that overrides any time words in the request.\n"
    )


def build_prompt(
    query: str,
    content_types: Sequence[str],
    language: str,
    *,
    result_cap: int,
    today: date,
    year_filter: YearFilter | None = None,
) -> str:
    return RECOMMENDATION_PROMPT_TEMPLATE.format(
        query=query,
        today=today.isoformat(),
        current_year=today.year,
        recent_from=today.year - 2,
        modern_from=today.year - 10,
        year_constraint=describe_year_filter(year_filter),
        result_cap=result_cap,
        content_types=" and ".join(content_types) or "titles",
        language_name=language_name(language),
    ).strip()


class RecommendationGenerator:
    """Wraps the text generator: builds the prompt and decodes the reply."""

    def __init__(
        self,
        client: OpenRouterClient,
        *,
        today: Callable[[], date] = date.today,
    ):
        self._client = client
        self._today = today

    async def generate(
        self,
        query: str,
        content_types: Sequence[str],
        language: str,
        *,
        result_cap: int,
        year_filter: YearFilter | None = None,
    ) -> RawRecommendation:
        prompt = build_prompt(
            query,
            content_types,
            language,
            result_cap=result_cap,
            today=self._today(),
            year_filter=year_filter,
        )
        try:
            text = await self._client.generate_content(
                prompt, max_tokens=self._token_budget(result_cap)
            )
        except OpenRouterError as exc:
            logger.error("Recommendation generation failed: %s", exc)
            raise UpstreamGenerationError("Failed to generate AI recommendations") from exc

        result = decode_response(text)
        # The cap is requested, not guaranteed.
        result.titles = result.titles[:result_cap]
        logger.info(
            "Generated %s recommendations and %s valid platform hints",
            len(result.titles),
            len(result.detected_platforms),
        )
        if result.detected_platforms:
            logger.info("Detected platforms: %s", ", ".join(result.detected_platforms))
        return result

    @staticmethod
    def _token_budget(result_cap: int) -> int:
        return max(1_000, min(4_000, 400 + result_cap * 30))
