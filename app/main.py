"""Entry point for the FastAPI-powered StreamScout search API."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import Database
from .errors import PipelineError, RequestValidationError
from .services.accounts import AccessGate, AccountStore
from .services.cache import create_response_cache
from .services.enrichment import CatalogEnricher
from .services.openrouter import OpenRouterClient
from .services.rate_limiter import RateLimiter, RateLimitPolicy
from .services.recommendations import RecommendationGenerator
from .services.search import SearchOrchestrator
from .services.telemetry import SearchTelemetry
from .services.tmdb import TMDBClient
from .utils import client_ip_from_headers

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    openrouter_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.openrouter_api_url),
            timeout=httpx.Timeout(60.0, connect=10.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    cache = create_response_cache(
        settings.cache_ttl_seconds, settings.cache_max_entries
    )
    limiter = RateLimiter(sweep_interval=settings.rate_limit_sweep_interval_seconds)

    accounts = AccountStore(database.session_factory)
    tmdb = TMDBClient(settings, tmdb_http_client, cache)
    orchestrator = SearchOrchestrator(
        settings,
        accounts=accounts,
        access_gate=AccessGate(accounts),
        rate_limits=RateLimitPolicy.for_search(limiter, settings),
        generator=RecommendationGenerator(
            OpenRouterClient(settings, openrouter_http_client)
        ),
        enricher=CatalogEnricher(tmdb),
        telemetry=SearchTelemetry(database.session_factory),
    )

    fastapi_app.state.database = database
    fastapi_app.state.rate_limiter = limiter
    fastapi_app.state.cache = cache
    fastapi_app.state.search_orchestrator = orchestrator
    await limiter.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        if cache is not None:
            cache.clear()
        await limiter.stop()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="AI-assisted movie and series search with streaming availability",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[
            "Retry-After",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
        ],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_search_orchestrator(app: FastAPI) -> SearchOrchestrator:
    orchestrator = getattr(app.state, "search_orchestrator", None)
    if orchestrator is None:
        raise RuntimeError("Search orchestrator not initialised")
    return orchestrator


def _json_response(
    content: Any, *, status_code: int = 200, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        content,
        status_code=status_code,
        headers={**SECURITY_HEADERS, **(headers or {})},
    )


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(PipelineError)
    async def pipeline_error_handler(_: Request, exc: PipelineError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Search failed with %s: %s", exc.code, exc.message)
        return _json_response(
            exc.to_payload(expose_detail=not settings.is_production),
            status_code=exc.status_code,
            headers=exc.headers(),
        )

    @fastapi_app.get("/healthz")
    async def healthcheck() -> JSONResponse:
        return _json_response({"status": "ok"})

    @fastapi_app.post("/search")
    async def search(request: Request) -> JSONResponse:
        orchestrator = get_search_orchestrator(fastapi_app)
        try:
            payload = await request.json()
        except ValueError:
            # Rejected as 400 once the caller is authenticated.
            payload = None
        client_ip = client_ip_from_headers(
            request.headers, request.client.host if request.client else None
        )
        result = await orchestrator.search(
            payload,
            authorization=request.headers.get("authorization"),
            client_ip=client_ip,
        )
        return _json_response(result.to_payload())

    @fastapi_app.get("/providers")
    async def providers(country: str = "FR") -> JSONResponse:
        if len(country) != 2 or not country.isalpha():
            raise RequestValidationError("country must be a two-letter region code")
        orchestrator = get_search_orchestrator(fastapi_app)
        available = await orchestrator.list_providers(country)
        return _json_response(
            {
                "country": country.upper(),
                "providers": [
                    provider.model_dump(mode="json") for provider in available
                ],
            }
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
