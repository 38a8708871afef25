"""
Health check server for the job scheduler.

Reports whether the scheduler is running and when each job fires next.
"""

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

SCHEDULER_KEY = web.AppKey("scheduler", AsyncIOScheduler)


async def health_handler(request: web.Request) -> web.Response:
    """
    Scheduler status with its jobs.

    Returns:
        JSON response with scheduler status, 503 when stopped
    """
    scheduler = request.app[SCHEDULER_KEY]
    jobs = [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        }
        for job in scheduler.get_jobs()
    ]
    running = scheduler.running
    return web.json_response(
        {
            "status": "healthy" if running else "stopped",
            "scheduler_running": running,
            "jobs_count": len(jobs),
            "jobs": jobs,
        },
        status=200 if running else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "alive", "alive": True})


def create_health_app(scheduler: AsyncIOScheduler) -> web.Application:
    app = web.Application()
    app[SCHEDULER_KEY] = scheduler
    app.router.add_get("/health", health_handler)
    app.router.add_get("/health/live", liveness_handler)
    return app


async def start_health_server(
    scheduler: AsyncIOScheduler,
    host: str = "0.0.0.0",
    port: int = 8081,
) -> web.AppRunner:
    """
    Start the scheduler health server.

    Returns:
        AppRunner to pass to runner.cleanup() on shutdown
    """
    runner = web.AppRunner(create_health_app(scheduler))
    await runner.setup()
    await web.TCPSite(runner, host, port).start()
    logger.info(f"Scheduler health server started on http://{host}:{port}/health")
    return runner
