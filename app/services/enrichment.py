"""Resolve generated titles into catalog entries and fetch their metadata."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ..errors import UpstreamCatalogError
from ..models import (
    AvailableProvider,
    CastMember,
    CatalogEntry,
    DetailedInfo,
    MediaType,
    StreamingProvider,
)
from .tmdb import SearchMode, TMDBClient, TMDBError

logger = logging.getLogger(__name__)

ACTOR_MATCH_THRESHOLD = 5
ACTOR_FILL_LIMIT = 20


def search_mode_for(include_movies: bool, include_series: bool) -> SearchMode:
    if include_movies and include_series:
        return "multi"
    if include_movies:
        return "movie"
    return "tv"


def deduplicate_entries(
    candidates: Sequence[CatalogEntry | None],
) -> list[CatalogEntry]:
    """Keep the first entry for each TMDB id, preserving order."""

    seen: set[int] = set()
    unique: list[CatalogEntry] = []
    for candidate in candidates:
        if candidate is None or candidate.tmdb_id in seen:
            continue
        seen.add(candidate.tmdb_id)
        unique.append(candidate)
    return unique


class CatalogEnricher:
    """Turns raw titles into deduplicated TMDB entries and bulk metadata."""

    def __init__(self, tmdb_client: TMDBClient):
        self._tmdb = tmdb_client

    async def enrich(
        self,
        titles: Sequence[str],
        *,
        include_movies: bool,
        include_series: bool,
        language: str,
    ) -> list[CatalogEntry]:
        if not titles:
            return []
        mode = search_mode_for(include_movies, include_series)
        logger.info("Enriching %s titles with TMDB metadata", len(titles))

        results = await asyncio.gather(
            *(self._resolve_title(title, mode=mode, language=language) for title in titles)
        )
        entries = deduplicate_entries(results)

        resolved = sum(1 for result in results if result is not None)
        missing = [title for title, result in zip(titles, results) if result is None]
        logger.info(
            "Enriched %s/%s titles (%s duplicates removed)",
            len(entries),
            len(titles),
            resolved - len(entries),
        )
        if missing:
            logger.info("Could not resolve %s titles: %s", len(missing), missing[:5])
        return entries

    async def _resolve_title(
        self, title: str, *, mode: SearchMode, language: str
    ) -> CatalogEntry | None:
        try:
            return await self._tmdb.search(title, mode=mode, language=language)
        except Exception as exc:
            logger.warning("TMDB search failed for %r: %s", title, exc)
            return None

    async def get_availability(
        self, entries: Sequence[CatalogEntry], region: str
    ) -> dict[int, list[StreamingProvider]]:
        """Fetch offers per entry; entries without offers are left out."""

        try:
            offer_lists = await asyncio.gather(
                *(
                    self._tmdb.get_watch_providers(entry.tmdb_id, entry.media_type, region)
                    for entry in entries
                )
            )
        except TMDBError as exc:
            logger.warning("Availability lookup failed: %s", exc)
            raise UpstreamCatalogError(str(exc)) from exc

        return {
            entry.tmdb_id: offers
            for entry, offers in zip(entries, offer_lists)
            if offers
        }

    async def get_details_and_credits(
        self, entries: Sequence[CatalogEntry], language: str
    ) -> tuple[dict[int, DetailedInfo], dict[int, list[CastMember]]]:
        async def _fetch(entry: CatalogEntry) -> tuple[DetailedInfo, list[CastMember]]:
            return await asyncio.gather(
                self._tmdb.get_details(entry.tmdb_id, entry.media_type, language),
                self._tmdb.get_credits(entry.tmdb_id, entry.media_type, language),
            )

        try:
            results = await asyncio.gather(*(_fetch(entry) for entry in entries))
        except TMDBError as exc:
            logger.warning("Detail/credit lookup failed: %s", exc)
            raise UpstreamCatalogError(str(exc)) from exc

        details: dict[int, DetailedInfo] = {}
        credits: dict[int, list[CastMember]] = {}
        for entry, (info, cast) in zip(entries, results):
            details[entry.tmdb_id] = info
            if cast:
                credits[entry.tmdb_id] = cast
        logger.info(
            "Fetched details for %s items, credits for %s items",
            len(details),
            len(credits),
        )
        return details, credits

    async def list_region_providers(self, country: str) -> list[AvailableProvider]:
        try:
            return await self._tmdb.get_available_providers(country)
        except TMDBError as exc:
            logger.warning("Provider list lookup failed for %s: %s", country, exc)
            raise UpstreamCatalogError(str(exc)) from exc

    async def filter_by_actors(
        self,
        entries: Sequence[CatalogEntry],
        actor_ids: Sequence[int],
        *,
        include_movies: bool,
        include_series: bool,
        language: str,
    ) -> list[CatalogEntry]:
        """Keep entries featuring every actor, topping up from the first actor."""

        if not actor_ids:
            return list(entries)
        media_type: MediaType | None = None
        if include_movies and not include_series:
            media_type = "movie"
        elif include_series and not include_movies:
            media_type = "tv"

        try:
            filmographies = await asyncio.gather(
                *(
                    self._tmdb.get_person_credits(
                        actor_id, media_type=media_type, language=language
                    )
                    for actor_id in actor_ids
                )
            )
        except TMDBError as exc:
            logger.warning("Actor credit lookup failed: %s", exc)
            raise UpstreamCatalogError(str(exc)) from exc

        shared_ids = set.intersection(
            *({credit.tmdb_id for credit in films} for films in filmographies)
        )
        matched = [entry for entry in entries if entry.tmdb_id in shared_ids]
        logger.info(
            "Filtered %s -> %s results by actor", len(entries), len(matched)
        )
        if len(matched) >= ACTOR_MATCH_THRESHOLD:
            return matched

        matched_ids = {entry.tmdb_id for entry in matched}
        extras = [
            film for film in filmographies[0] if film.tmdb_id not in matched_ids
        ][: max(0, ACTOR_FILL_LIMIT - len(matched))]
        logger.info("Augmented with %s additional actor credits", len(extras))
        return matched + extras
