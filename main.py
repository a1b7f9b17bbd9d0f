"""
Provider scheduling API entry point.

Serves the FastAPI app with uvicorn, or runs the offline console demo.

Usage:
    API server:   python main.py
    Console mode: python main.py console
"""

import logging
import sys

from provider_scheduling.config import settings

logger = logging.getLogger(__name__)


def _run_server() -> None:
    """Serve the HTTP API on API_HOST:API_PORT."""
    import uvicorn

    from provider_scheduling.api import create_app

    app = create_app()
    logger.info(
        "Serving %s on %s:%d (demo data: %s)",
        settings.app_name, settings.server.host, settings.server.port, settings.server.seed_demo_data,
    )
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


def _run_console_mode() -> None:
    """Start the offline console demo (no server)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server()
