"""
Receipt reconciler.

Re-checks ledger entries left pending (receipt wait timed out, or the
process stopped before it finished) and applies the late status
correction. Schedule it periodically, e.g. every 5 minutes.
"""

import dramatiq
import redis.asyncio as redis
from loguru import logger

from custody.config.constants import (
    DRAMATIQ_TIME_LIMIT_STANDARD,
    RECONCILE_BATCH_LIMIT,
    RECONCILE_LOCK_TIMEOUT,
)
from custody.config.settings import Settings, get_settings
from custody.services.blockchain.endpoint_pool import EndpointPool
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.contact_stats_service import ContactStatsUpdater
from custody.services.reconciliation_service import ReconciliationService
from jobs.async_runner import local_session_factory, run_async

LOCK_NAME = "custody:receipt_reconciliation"

EMPTY_RESULT = {"checked": 0, "confirmed": 0, "failed": 0, "still_pending": 0, "errors": 0}


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_STANDARD)
def reconcile_pending_transactions(
    older_than_minutes: int | None = None, limit: int = RECONCILE_BATCH_LIMIT
) -> dict:
    """
    Reconcile pending ledger entries with on-chain receipts.

    Args:
        older_than_minutes: Minimum entry age (defaults to settings)
        limit: Max entries per run

    Returns:
        Dict with checked, confirmed, failed, still_pending, errors counts
    """
    logger.info("Starting receipt reconciliation...")

    try:
        result = run_async(_reconcile_async(get_settings(), older_than_minutes, limit))
        logger.info(
            f"Receipt reconciliation complete: "
            f"{result['checked']} checked, "
            f"{result['confirmed']} confirmed, "
            f"{result['failed']} failed, "
            f"{result['still_pending']} still pending"
        )
        return result

    except Exception as e:
        logger.exception(f"Receipt reconciliation failed: {e}")
        return {**EMPTY_RESULT, "error": str(e)}


async def _reconcile_async(
    settings: Settings, older_than_minutes: int | None, limit: int
) -> dict:
    """One reconciliation run under a Redis lock."""
    redis_client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
    )
    lock = redis_client.lock(LOCK_NAME, timeout=RECONCILE_LOCK_TIMEOUT, blocking=False)

    try:
        if not await lock.acquire():
            logger.info("Receipt reconciliation already running, skipping")
            return dict(EMPTY_RESULT)
        try:
            return await run_reconciliation(
                settings,
                older_than_minutes or settings.reconcile_older_than_minutes,
                limit,
            )
        finally:
            await lock.release()
    finally:
        await redis_client.aclose()


async def run_reconciliation(
    settings: Settings,
    older_than_minutes: int,
    limit: int,
    pool: EndpointPool | None = None,
) -> dict:
    """
    Build the services for one run and reconcile.

    Args:
        settings: Application settings
        older_than_minutes: Minimum entry age
        limit: Max entries per run
        pool: Endpoint pool override (tests)
    """
    if pool is None:
        pool = EndpointPool(settings.networks, timeout=settings.rpc_timeout_seconds)
    executor = RetryExecutor(pool, max_attempts=settings.rpc_max_attempts)

    async with local_session_factory(settings) as session_factory:
        service = ReconciliationService(
            session_factory, executor, ContactStatsUpdater(session_factory)
        )
        return await service.reconcile_pending(older_than_minutes=older_than_minutes, limit=limit)
