"""Best-effort search telemetry."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import SearchLog

logger = logging.getLogger(__name__)


class SearchTelemetry:
    """Writes one row per search; failures are logged and never raised."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record_search(
        self,
        account_id: str | None,
        query: str,
        result_count: int,
        response_time_ms: int,
    ) -> bool:
        try:
            async with self._session_factory() as session:
                session.add(
                    SearchLog(
                        account_id=account_id,
                        query=query,
                        results_count=result_count,
                        response_time_ms=response_time_ms,
                    )
                )
                await session.commit()
        except Exception as exc:
            logger.warning("Failed to record search telemetry: %s", exc)
            return False
        return True
