"""Request pipeline behind ``POST /search``."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

from pydantic import ValidationError

from ..config import Settings
from ..errors import (
    AccessDeniedError,
    InternalError,
    PipelineError,
    RequestValidationError,
)
from ..models import AvailableProvider, SearchRequest, SearchResponse
from ..utils import extract_bearer_token, mask_identifier
from .accounts import AccessGate, AccountIdentity, AccountStore
from .availability import apply_availability_filters, apply_platform_hints
from .enrichment import CatalogEnricher
from .rate_limiter import RateLimitPolicy
from .recommendations import RecommendationGenerator
from .telemetry import SearchTelemetry

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Runs one search from authentication to the assembled response.

    Authentication, validation, rate limiting and the access gate all run
    before any upstream call, so rejected requests never reach the text
    generator or TMDB. Anything unexpected past that point is reported as an
    :class:`InternalError`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        accounts: AccountStore,
        access_gate: AccessGate,
        rate_limits: RateLimitPolicy,
        generator: RecommendationGenerator,
        enricher: CatalogEnricher,
        telemetry: SearchTelemetry | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self._settings = settings
        self._accounts = accounts
        self._access_gate = access_gate
        self._rate_limits = rate_limits
        self._generator = generator
        self._enricher = enricher
        self._telemetry = telemetry
        self._clock = clock

    async def search(
        self,
        payload: Any,
        *,
        authorization: str | None,
        client_ip: str,
    ) -> SearchResponse:
        try:
            return await asyncio.wait_for(
                self._run(payload, authorization=authorization, client_ip=client_ip),
                timeout=self._settings.search_timeout_seconds,
            )
        except PipelineError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error(
                "Search exceeded the %ss deadline",
                self._settings.search_timeout_seconds,
            )
            raise InternalError("Search timed out") from exc
        except Exception as exc:
            logger.exception("Unexpected search failure")
            raise InternalError(str(exc) or exc.__class__.__name__) from exc

    async def list_providers(self, country: str) -> list[AvailableProvider]:
        return await self._enricher.list_region_providers(country.strip().upper())

    async def _run(
        self, payload: Any, *, authorization: str | None, client_ip: str
    ) -> SearchResponse:
        started = self._clock()

        account = await self._accounts.authenticate(extract_bearer_token(authorization))
        request = self._validate(payload)
        self._rate_limits.enforce(client_ip=client_ip, identity=account.id)
        await self._check_access(account)

        criteria = request.filter_criteria
        result_cap = (
            self._settings.filtered_result_cap
            if criteria.is_active
            else self._settings.default_result_cap
        )
        logger.info(
            "Search from %s: %r (cap=%s, filters=%s)",
            mask_identifier(account.id),
            request.query,
            result_cap,
            criteria.is_active,
        )

        raw = await self._generator.generate(
            request.query,
            request.content_types,
            request.language,
            result_cap=result_cap,
            year_filter=request.year_filter,
        )

        entries = await self._enricher.enrich(
            raw.titles,
            include_movies=request.include_movies,
            include_series=request.include_tv_shows,
            language=request.language,
        )
        if request.actor_ids:
            entries = await self._enricher.filter_by_actors(
                entries,
                request.actor_ids,
                include_movies=request.include_movies,
                include_series=request.include_tv_shows,
                language=request.language,
            )

        offers_by_id, (details, credits) = await asyncio.gather(
            self._enricher.get_availability(entries, request.country),
            self._enricher.get_details_and_credits(entries, request.language),
        )

        outcome = apply_availability_filters(entries, offers_by_id, criteria)
        final = apply_platform_hints(
            outcome.entries, outcome.offers_by_id, raw.detected_platforms
        )
        final_ids = [entry.tmdb_id for entry in final]

        elapsed_ms = int((self._clock() - started) * 1000)
        await self._record_telemetry(account.id, request.query, len(final), elapsed_ms)

        return SearchResponse(
            recommendations=final,
            streaming_providers={
                tmdb_id: outcome.offers_by_id[tmdb_id]
                for tmdb_id in final_ids
                if tmdb_id in outcome.offers_by_id
            },
            credits={
                tmdb_id: credits[tmdb_id] for tmdb_id in final_ids if tmdb_id in credits
            },
            detailed_info={
                tmdb_id: details[tmdb_id] for tmdb_id in final_ids if tmdb_id in details
            },
            conversational_response=raw.message,
            total_results=len(final),
        )

    @staticmethod
    def _validate(payload: Any) -> SearchRequest:
        try:
            return SearchRequest.model_validate(payload)
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            message = errors[0]["msg"] if errors else "Invalid request"
            raise RequestValidationError(message, errors=errors) from exc

    async def _check_access(self, account: AccountIdentity) -> None:
        if await self._access_gate.has_access(account.id):
            return
        raise AccessDeniedError(
            "No active subscription or trial",
            reason="no_active_subscription",
        )

    async def _record_telemetry(
        self, account_id: str, query: str, result_count: int, elapsed_ms: int
    ) -> None:
        if self._telemetry is None:
            return
        try:
            await self._telemetry.record_search(account_id, query, result_count, elapsed_ms)
        except Exception as exc:
            logger.warning("Search telemetry raised: %s", exc)
