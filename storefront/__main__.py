"""Run the API server with ``python -m storefront``."""

from __future__ import annotations

import uvicorn

from .config import get_settings
from .main import create_app


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.server.rest_port,
        log_level=settings.logging.level,
        timeout_graceful_shutdown=int(settings.server.shutdown_timeout.total_seconds()),
    )


if __name__ == "__main__":
    main()
