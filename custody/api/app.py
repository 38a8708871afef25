"""
HTTP application.

aiohttp application factory and runner for the wallet API.
"""

from aiohttp import web
from loguru import logger

from custody.api.dependencies import CONTAINER_KEY
from custody.api.handlers import contacts, health, swap, transactions, wallet
from custody.api.middleware import error_middleware
from custody.container import Container


async def _close_container(app: web.Application) -> None:
    await app[CONTAINER_KEY].close()


def create_app(container: Container) -> web.Application:
    """
    Create the API application.

    Args:
        container: Wired services

    Returns:
        aiohttp Application with all routes registered
    """
    app = web.Application(middlewares=[error_middleware])
    app[CONTAINER_KEY] = container

    app.router.add_routes(transactions.routes)
    app.router.add_routes(wallet.routes)
    app.router.add_routes(swap.routes)
    app.router.add_routes(contacts.routes)
    app.router.add_routes(health.routes)

    app.on_cleanup.append(_close_container)
    return app


async def start_api_server(
    container: Container,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start the API server.

    Args:
        container: Wired services
        host: Host to bind to
        port: Port to listen on

    Returns:
        Tuple of (runner, site) for cleanup
    """
    app = create_app(container)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"API server started on http://{host}:{port}")
    logger.info(f"  - Liveness: http://{host}:{port}/health/live")
    logger.info(f"  - Providers: http://{host}:{port}/health/providers")

    return runner, site


async def stop_api_server(runner: web.AppRunner) -> None:
    """
    Stop the API server.

    Args:
        runner: AppRunner instance to stop
    """
    await runner.cleanup()
    logger.info("API server stopped")
