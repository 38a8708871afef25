"""
Health check routes.

Liveness for the process, provider status for the endpoint pools.
"""

from aiohttp import web

from custody.api.dependencies import get_container

routes = web.RouteTableDef()


@routes.get("/health/live")
async def liveness_handler(request: web.Request) -> web.Response:
    """
    Liveness check endpoint.

    Returns:
        JSON response indicating if the process is alive
    """
    return web.json_response(
        {
            "status": "alive",
            "alive": True,
        }
    )


@routes.get("/health/providers")
async def providers_handler(request: web.Request) -> web.Response:
    """
    Endpoint pool status per network.

    Returns:
        JSON with pool cursor / URL per network plus retry and
        background task counters
    """
    container = get_container(request)
    return web.json_response(
        {
            "status": "ok",
            "networks": container.pool.get_health_status(),
            "retry": container.executor.get_stats(),
            "background": container.background.get_stats(),
        }
    )
