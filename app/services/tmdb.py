"""Client for The Movie Database (TMDB) v3 API."""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx
from cachetools import TTLCache

from ..config import Settings
from ..models import (
    AVAILABILITY_PRIORITY,
    AvailableProvider,
    CastMember,
    CatalogEntry,
    DetailedInfo,
    Genre,
    MediaType,
    StreamingProvider,
)
from ..utils import parse_year
from .cache import build_cache_key

logger = logging.getLogger(__name__)

MAX_CAST_MEMBERS = 10

SearchMode = Literal["movie", "tv", "multi"]


class TMDBError(RuntimeError):
    """Raised when TMDB cannot be reached or rejects a request."""

    def __init__(self, endpoint: str, message: str, status_code: int | None = None):
        super().__init__(f"TMDB request to {endpoint} failed: {message}")
        self.endpoint = endpoint
        self.status_code = status_code


class TMDBClient:
    """Read-only TMDB access with response caching keyed by endpoint and params."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        cache: TTLCache[str, dict[str, Any]] | None = None,
    ):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client
        self._cache = cache

    async def search(
        self, title: str, *, mode: SearchMode, language: str
    ) -> CatalogEntry | None:
        """Return the first movie/series result for ``title`` or ``None``."""

        data = await self._request(
            f"/search/{mode}",
            {"query": title, "language": language, "include_adult": "false"},
        )
        for result in data.get("results") or []:
            if not isinstance(result, dict) or not isinstance(result.get("id"), int):
                continue
            if mode == "multi":
                media_type = result.get("media_type")
                if media_type not in {"movie", "tv"}:
                    # /search/multi also returns people.
                    continue
                return CatalogEntry.from_tmdb(result, media_type=media_type)
            return CatalogEntry.from_tmdb(result, media_type=mode)
        return None

    async def get_watch_providers(
        self, tmdb_id: int, media_type: MediaType, country: str
    ) -> list[StreamingProvider]:
        """Return merged offers for a region, one kind per provider."""

        data = await self._request(f"/{media_type}/{tmdb_id}/watch/providers")
        region = (data.get("results") or {}).get(country)
        if not isinstance(region, dict):
            return []

        providers: list[StreamingProvider] = []
        seen: set[int] = set()
        for availability_type in AVAILABILITY_PRIORITY:
            for raw in region.get(availability_type) or []:
                provider_id = raw.get("provider_id")
                if provider_id is None or provider_id in seen:
                    continue
                seen.add(provider_id)
                providers.append(
                    StreamingProvider(
                        provider_id=provider_id,
                        provider_name=raw.get("provider_name") or "",
                        logo_path=raw.get("logo_path"),
                        display_priority=raw.get("display_priority"),
                        availability_type=availability_type,
                    )
                )
        return providers

    async def get_details(
        self, tmdb_id: int, media_type: MediaType, language: str
    ) -> DetailedInfo:
        data = await self._request(f"/{media_type}/{tmdb_id}", {"language": language})
        genres = [
            Genre(id=genre["id"], name=genre.get("name") or "")
            for genre in data.get("genres") or []
            if isinstance(genre, dict) and "id" in genre
        ]
        tagline = data.get("tagline") or None
        if media_type == "movie":
            return DetailedInfo(
                genres=genres,
                tagline=tagline,
                runtime=data.get("runtime") or None,
                release_year=parse_year(data.get("release_date")),
            )

        run_times = [value for value in data.get("episode_run_time") or [] if value]
        average_run_time = round(sum(run_times) / len(run_times)) if run_times else None
        return DetailedInfo(
            genres=genres,
            tagline=tagline,
            number_of_seasons=data.get("number_of_seasons"),
            number_of_episodes=data.get("number_of_episodes"),
            episode_run_time=average_run_time,
            status=data.get("status"),
            first_air_year=parse_year(data.get("first_air_date")),
        )

    async def get_credits(
        self, tmdb_id: int, media_type: MediaType, language: str
    ) -> list[CastMember]:
        """Return the top-billed cast ordered by billing position."""

        data = await self._request(
            f"/{media_type}/{tmdb_id}/credits", {"language": language}
        )
        cast = [
            member
            for member in data.get("cast") or []
            if isinstance(member, dict) and "id" in member
        ]
        cast.sort(key=lambda member: member.get("order", 1_000))
        return [
            CastMember(
                id=member["id"],
                name=member.get("name") or "",
                character=member.get("character"),
                profile_path=member.get("profile_path"),
            )
            for member in cast[:MAX_CAST_MEMBERS]
        ]

    async def get_person_credits(
        self, person_id: int, *, media_type: MediaType | None, language: str
    ) -> list[CatalogEntry]:
        """Return a person's acting credits, most popular first."""

        data = await self._request(
            f"/person/{person_id}/combined_credits", {"language": language}
        )
        entries: list[CatalogEntry] = []
        seen: set[int] = set()
        for credit in data.get("cast") or []:
            if not isinstance(credit, dict) or "id" not in credit:
                continue
            credit_type = credit.get("media_type")
            if credit_type not in {"movie", "tv"}:
                continue
            if media_type is not None and credit_type != media_type:
                continue
            if credit["id"] in seen:
                continue
            seen.add(credit["id"])
            entries.append(CatalogEntry.from_tmdb(credit, media_type=credit_type))
        entries.sort(key=lambda entry: entry.popularity, reverse=True)
        return entries

    async def get_available_providers(self, country: str) -> list[AvailableProvider]:
        """List the streaming providers TMDB knows for a region."""

        data = await self._request("/watch/providers/movie", {"watch_region": country})
        providers: list[AvailableProvider] = []
        for raw in data.get("results") or []:
            priorities = raw.get("display_priorities") or {}
            if country not in priorities:
                continue
            providers.append(
                AvailableProvider(
                    provider_id=raw["provider_id"],
                    provider_name=raw.get("provider_name") or "",
                    logo_path=raw.get("logo_path"),
                    display_priority=priorities[country],
                )
            )
        providers.sort(key=lambda provider: provider.display_priority or 999)
        return providers

    async def _request(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """GET an endpoint, serving repeated lookups from the cache."""

        params = dict(params or {})
        cache_key = build_cache_key(endpoint, params)
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("TMDB cache hit: %s", endpoint)
                return cached

        try:
            response = await self._client.get(
                endpoint,
                params={**params, "api_key": self._settings.tmdb_api_key},
            )
        except httpx.HTTPError as exc:
            raise TMDBError(endpoint, exc.__class__.__name__) from exc

        if response.status_code == 404:
            # Unknown ids are reported as empty payloads rather than errors.
            logger.debug("TMDB returned 404 for %s", endpoint)
            return {}
        if response.status_code >= 400:
            raise TMDBError(
                endpoint,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise TMDBError(endpoint, "invalid JSON payload") from exc
        if not isinstance(data, dict):
            raise TMDBError(endpoint, "unexpected payload shape")

        if self._cache is not None:
            self._cache[cache_key] = data
        return data
