"""Pydantic models describing search requests and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


MediaType = Literal["movie", "tv"]
AvailabilityType = Literal["flatrate", "rent", "buy", "ads"]

# Order in which TMDB offer lists are merged; the first kind seen for a provider wins.
AVAILABILITY_PRIORITY: tuple[AvailabilityType, ...] = ("flatrate", "rent", "buy", "ads")

MIN_YEAR = 1870
MAX_YEAR = 2100


@dataclass(frozen=True, slots=True)
class YearFilter:
    """Optional inclusive release-year bounds."""

    year_from: int | None = None
    year_to: int | None = None

    def is_empty(self) -> bool:
        return self.year_from is None and self.year_to is None


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    """Explicit availability filters chosen by the caller."""

    platforms: frozenset[int] | None = None
    include_flatrate: bool | None = None
    include_rent: bool | None = None
    include_buy: bool | None = None

    @property
    def has_kind_toggles(self) -> bool:
        return any(
            value is not None
            for value in (self.include_flatrate, self.include_rent, self.include_buy)
        )

    @property
    def has_platforms(self) -> bool:
        return bool(self.platforms)

    @property
    def is_active(self) -> bool:
        return self.has_kind_toggles or self.has_platforms

    def allows(self, availability_type: str) -> bool:
        """Return True when an offer kind passes the subscription-first policy."""

        if availability_type in {"flatrate", "ads"}:
            return self.include_flatrate is not False
        if availability_type == "rent":
            return self.include_rent is True
        if availability_type == "buy":
            return self.include_buy is True
        return False


@dataclass(slots=True)
class RawRecommendation:
    """Decoded output of a single generation call."""

    titles: list[str] = field(default_factory=list)
    detected_platforms: list[str] = field(default_factory=list)
    message: str = ""


class SearchRequest(BaseModel):
    """Validated body of ``POST /search``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    query: str = Field(min_length=1, max_length=500)
    include_movies: bool = Field(
        default=True, validation_alias=AliasChoices("includeMovies", "include_movies")
    )
    include_tv_shows: bool = Field(
        default=True,
        validation_alias=AliasChoices("includeTvShows", "include_tv_shows"),
    )
    language: str = Field(default="fr-FR", min_length=2, max_length=16)
    country: str = Field(default="FR", min_length=2, max_length=8)
    year_from: int | None = Field(
        default=None,
        ge=MIN_YEAR,
        le=MAX_YEAR,
        validation_alias=AliasChoices("yearFrom", "year_from"),
    )
    year_to: int | None = Field(
        default=None,
        ge=MIN_YEAR,
        le=MAX_YEAR,
        validation_alias=AliasChoices("yearTo", "year_to"),
    )
    actor_ids: tuple[int, ...] | None = Field(
        default=None, validation_alias=AliasChoices("actorIds", "actor_ids")
    )
    platforms: tuple[int, ...] | None = None
    include_flatrate: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("includeFlatrate", "include_flatrate"),
    )
    include_rent: bool | None = Field(
        default=None, validation_alias=AliasChoices("includeRent", "include_rent")
    )
    include_buy: bool | None = Field(
        default=None, validation_alias=AliasChoices("includeBuy", "include_buy")
    )

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("country", mode="before")
    @classmethod
    def _upper_country(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _check_selection(self) -> "SearchRequest":
        if not (self.include_movies or self.include_tv_shows):
            raise ValueError(
                "At least one content type (movies or TV shows) must be selected"
            )
        if (
            self.year_from is not None
            and self.year_to is not None
            and self.year_from > self.year_to
        ):
            raise ValueError("yearFrom must not be greater than yearTo")
        return self

    @property
    def content_types(self) -> list[str]:
        labels: list[str] = []
        if self.include_movies:
            labels.append("movies")
        if self.include_tv_shows:
            labels.append("TV shows")
        return labels

    @property
    def year_filter(self) -> YearFilter:
        return YearFilter(year_from=self.year_from, year_to=self.year_to)

    @property
    def filter_criteria(self) -> FilterCriteria:
        return FilterCriteria(
            platforms=frozenset(self.platforms) if self.platforms else None,
            include_flatrate=self.include_flatrate,
            include_rent=self.include_rent,
            include_buy=self.include_buy,
        )


class CatalogEntry(BaseModel):
    """Canonical catalog record resolved from a generated title."""

    tmdb_id: int
    title: str
    original_title: str | None = None
    media_type: MediaType
    overview: str = ""
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float = 0.0
    vote_count: int = 0
    release_date: str | None = None
    first_air_date: str | None = None
    genre_ids: list[int] = Field(default_factory=list)
    popularity: float = 0.0
    adult: bool | None = None

    @classmethod
    def from_tmdb(
        cls, payload: dict[str, Any], *, media_type: MediaType | None = None
    ) -> "CatalogEntry":
        """Build an entry from a TMDB search or credit result."""

        resolved_type = media_type or payload.get("media_type")
        if resolved_type not in {"movie", "tv"}:
            resolved_type = "movie" if "title" in payload else "tv"
        is_movie = resolved_type == "movie"
        title = payload.get("title") if is_movie else payload.get("name")
        original = (
            payload.get("original_title") if is_movie else payload.get("original_name")
        )
        return cls(
            tmdb_id=int(payload["id"]),
            title=str(title or payload.get("title") or payload.get("name") or ""),
            original_title=original,
            media_type=resolved_type,
            overview=payload.get("overview") or "",
            poster_path=payload.get("poster_path"),
            backdrop_path=payload.get("backdrop_path"),
            vote_average=payload.get("vote_average") or 0.0,
            vote_count=payload.get("vote_count") or 0,
            release_date=payload.get("release_date") if is_movie else None,
            first_air_date=payload.get("first_air_date") if not is_movie else None,
            genre_ids=list(payload.get("genre_ids") or []),
            popularity=payload.get("popularity") or 0.0,
            adult=payload.get("adult") if is_movie else None,
        )

class StreamingProvider(BaseModel):
    """A single (provider, kind) availability offer for a region."""

    provider_id: int
    provider_name: str
    logo_path: str | None = None
    display_priority: int | None = None
    availability_type: AvailabilityType


class Genre(BaseModel):
    id: int
    name: str


class CastMember(BaseModel):
    id: int
    name: str
    character: str | None = None
    profile_path: str | None = None


class DetailedInfo(BaseModel):
    """Content-type specific details; unset fields are omitted on output."""

    genres: list[Genre] = Field(default_factory=list)
    tagline: str | None = None
    runtime: int | None = None
    release_year: int | None = None
    number_of_seasons: int | None = None
    number_of_episodes: int | None = None
    episode_run_time: int | None = None
    status: str | None = None
    first_air_year: int | None = None


class AvailableProvider(BaseModel):
    provider_id: int
    provider_name: str
    logo_path: str | None = None
    display_priority: int | None = None


class SearchResponse(BaseModel):
    """Response body of ``POST /search``."""

    model_config = ConfigDict(populate_by_name=True)

    recommendations: list[CatalogEntry] = Field(default_factory=list)
    streaming_providers: dict[int, list[StreamingProvider]] = Field(
        default_factory=dict, serialization_alias="streamingProviders"
    )
    credits: dict[int, list[CastMember]] = Field(default_factory=dict)
    detailed_info: dict[int, DetailedInfo] = Field(
        default_factory=dict, serialization_alias="detailedInfo"
    )
    conversational_response: str = Field(
        default="", serialization_alias="conversationalResponse"
    )
    total_results: int = Field(default=0, serialization_alias="totalResults")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
