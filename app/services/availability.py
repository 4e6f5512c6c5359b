"""Availability filtering with minimum-result fallbacks.

Two fallback policies live here and must stay separate:

* :func:`apply_availability_filters` handles explicit structured filters
  (availability kinds and provider ids). When too few entries survive, it
  blends unfiltered entries back in until ``MIN_FILTERED_RESULTS`` is met.
* :func:`apply_platform_hints` handles platform names the text generator
  detected in the query. It is all or nothing: the hint filter is applied
  only if it keeps at least ``MIN_FILTERED_RESULTS`` entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..models import CatalogEntry, FilterCriteria, StreamingProvider
from ..utils import names_overlap

logger = logging.getLogger(__name__)

MIN_FILTERED_RESULTS = 5

OffersById = dict[int, list[StreamingProvider]]


@dataclass(slots=True)
class FilterOutcome:
    entries: list[CatalogEntry]
    offers_by_id: OffersById
    strict_count: int
    backfilled: int = 0


def filter_offers_by_kind(
    offers_by_id: Mapping[int, Sequence[StreamingProvider]], criteria: FilterCriteria
) -> OffersById:
    filtered: OffersById = {}
    for tmdb_id, offers in offers_by_id.items():
        kept = [offer for offer in offers if criteria.allows(offer.availability_type)]
        if kept:
            filtered[tmdb_id] = kept
    return filtered


def filter_offers_by_platform(
    offers_by_id: Mapping[int, Sequence[StreamingProvider]], platform_ids: frozenset[int]
) -> OffersById:
    filtered: OffersById = {}
    for tmdb_id, offers in offers_by_id.items():
        kept = [offer for offer in offers if offer.provider_id in platform_ids]
        if kept:
            filtered[tmdb_id] = kept
    return filtered


def apply_availability_filters(
    entries: Sequence[CatalogEntry],
    offers_by_id: Mapping[int, Sequence[StreamingProvider]],
    criteria: FilterCriteria,
    *,
    min_results: int = MIN_FILTERED_RESULTS,
) -> FilterOutcome:
    """Apply kind and platform filters, blending in unfiltered entries if needed."""

    if not criteria.is_active:
        return FilterOutcome(
            entries=list(entries),
            offers_by_id={key: list(value) for key, value in offers_by_id.items()},
            strict_count=len(entries),
        )

    filtered = filter_offers_by_kind(offers_by_id, criteria)
    if criteria.platforms:
        filtered = filter_offers_by_platform(filtered, criteria.platforms)

    strict = [entry for entry in entries if entry.tmdb_id in filtered]
    logger.info(
        "Filtered %s -> %s results by platform/availability preferences",
        len(entries),
        len(strict),
    )
    if len(strict) >= min_results:
        return FilterOutcome(entries=strict, offers_by_id=filtered, strict_count=len(strict))

    result = list(strict)
    included = {entry.tmdb_id for entry in strict}
    for entry in entries:
        if len(result) >= min_results:
            break
        if entry.tmdb_id in included:
            continue
        result.append(entry)
        included.add(entry.tmdb_id)
        original = offers_by_id.get(entry.tmdb_id)
        if original:
            # Backfilled entries keep their real, unfiltered availability.
            filtered[entry.tmdb_id] = list(original)

    backfilled = len(result) - len(strict)
    if backfilled:
        logger.info(
            "Backfilled %s unfiltered results to reach the minimum of %s",
            backfilled,
            min_results,
        )
    return FilterOutcome(
        entries=result,
        offers_by_id=filtered,
        strict_count=len(strict),
        backfilled=backfilled,
    )


def matches_platform_hint(
    offers: Sequence[StreamingProvider], hints: Sequence[str]
) -> bool:
    return any(
        names_overlap(hint, offer.provider_name) for hint in hints for offer in offers
    )


def apply_platform_hints(
    entries: Sequence[CatalogEntry],
    offers_by_id: Mapping[int, Sequence[StreamingProvider]],
    hints: Sequence[str],
    *,
    min_results: int = MIN_FILTERED_RESULTS,
) -> list[CatalogEntry]:
    """Restrict to platforms named in the query, or return the input unchanged."""

    if not hints:
        return list(entries)
    matched = [
        entry
        for entry in entries
        if matches_platform_hint(offers_by_id.get(entry.tmdb_id, ()), hints)
    ]
    if len(matched) < min_results:
        logger.info(
            "Platform hints %s would reduce %s -> %s results; keeping original results",
            list(hints),
            len(entries),
            len(matched),
        )
        return list(entries)
    logger.info(
        "Platform hints %s filtered %s -> %s results",
        list(hints),
        len(entries),
        len(matched),
    )
    return matched
