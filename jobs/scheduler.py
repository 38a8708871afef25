"""
Job scheduler.

Enqueues periodic dramatiq jobs. Run alongside the workers:

    dramatiq jobs.broker jobs.tasks.receipt_reconciler
    python -m jobs.scheduler
"""

import asyncio
import sys

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from custody.config.settings import Settings, get_settings
from custody.utils.logging import setup_logging
from jobs.broker import broker  # noqa: F401  (binds actors to the Redis broker)
from jobs.health import start_health_server
from jobs.tasks.receipt_reconciler import reconcile_pending_transactions


def enqueue_reconciliation() -> None:
    reconcile_pending_transactions.send()
    logger.debug("Enqueued receipt reconciliation")


def create_scheduler(settings: Settings) -> AsyncIOScheduler:
    """Scheduler with all periodic jobs registered (not started)."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        enqueue_reconciliation,
        "interval",
        minutes=settings.reconcile_interval_minutes,
        id="receipt_reconciliation",
        name="Receipt reconciliation",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def main() -> None:
    settings = get_settings()
    setup_logging(settings)

    scheduler = create_scheduler(settings)
    scheduler.start()
    logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")

    runner = await start_health_server(scheduler, port=settings.scheduler_health_port)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        await runner.cleanup()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Scheduler stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Scheduler crashed: {e}")
        sys.exit(1)
