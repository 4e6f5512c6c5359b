"""Module executed when running ``python -m streamscout``."""

from __future__ import annotations

import uvicorn

from app.config import settings


def main() -> None:
    """Serve the search API with uvicorn using the configured host and port."""

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=not settings.is_production,
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
