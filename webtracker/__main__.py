"""
Process entrypoint: `python -m webtracker` or the `webtracker` console script.

Runs the API under uvicorn; the bot runtime starts in the app lifespan. A
logout from the chat transport sets the runtime stop event, which also stops
the server.
"""

import asyncio
import sys

import uvicorn

from webtracker.config import ConfigurationError, settings
from webtracker.infrastructure.observability.logging import get_logger, setup_logging
from webtracker.main import create_app
from webtracker.runtime import Application

logger = get_logger(__name__)


async def serve() -> bool:
    """Serve until shutdown; False when startup failed."""
    runtime = Application(settings)
    app = create_app(settings, runtime)
    server = uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=settings.api_port(), log_config=None)
    )

    async def _stop_on_logout() -> None:
        await runtime.stop_event.wait()
        server.should_exit = True

    watcher = asyncio.create_task(_stop_on_logout())
    try:
        await server.serve()
    finally:
        watcher.cancel()
    return server.started


def main() -> None:
    setup_logging(settings.LOG_LEVEL, settings.LOG_PATH or None)
    try:
        settings.validate_required()
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        sys.exit(1)

    logger.info("Starting webtracker", port=settings.api_port(), environment=settings.environment)
    if not asyncio.run(serve()):
        sys.exit(1)


if __name__ == "__main__":
    main()
