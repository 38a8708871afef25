"""
API entry point.

Run with ``python -m custody`` or the ``custody-api`` script.
"""

import asyncio
import sys

from loguru import logger

from custody.api.app import start_api_server, stop_api_server
from custody.config.settings import get_settings
from custody.container import build_container
from custody.utils.logging import setup_logging


async def serve() -> None:
    """Build services and serve the API until cancelled."""
    settings = get_settings()
    setup_logging(settings)

    container = build_container(settings)
    logger.info(
        f"Networks: {', '.join(sorted(settings.networks))} "
        f"(default: {settings.default_network})"
    )

    runner, _ = await start_api_server(container, settings.api_host, settings.api_port)
    try:
        await asyncio.Event().wait()
    finally:
        await stop_api_server(runner)


def main() -> None:
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("API stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"API crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
