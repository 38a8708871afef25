"""Unit tests for the receipt reconciliation job."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp.test_utils import TestClient, TestServer

from custody.config.settings import get_settings
from jobs.health import create_health_app
from jobs.tasks import receipt_reconciler
from jobs.tasks.receipt_reconciler import (
    EMPTY_RESULT,
    reconcile_pending_transactions,
    run_reconciliation,
)


class TestReconcileActor:
    def test_returns_run_result(self):
        result = {**EMPTY_RESULT, "checked": 2, "confirmed": 2}
        with patch.object(receipt_reconciler, "_reconcile_async", AsyncMock(return_value=result)):
            assert reconcile_pending_transactions() == result

    def test_failure_is_reported_not_raised(self):
        with patch.object(
            receipt_reconciler,
            "_reconcile_async",
            AsyncMock(side_effect=RuntimeError("database unreachable")),
        ):
            result = reconcile_pending_transactions()

        assert result["error"] == "database unreachable"
        assert result["checked"] == 0


class TestReconcileLock:
    @pytest.fixture
    def redis_client(self):
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock()
        client = MagicMock()
        client.lock.return_value = lock
        client.aclose = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_skips_when_another_run_holds_the_lock(self, redis_client):
        redis_client.lock.return_value.acquire.return_value = False
        run = AsyncMock()

        with (
            patch.object(receipt_reconciler.redis, "Redis", return_value=redis_client),
            patch.object(receipt_reconciler, "run_reconciliation", run),
        ):
            result = await receipt_reconciler._reconcile_async(get_settings(), None, 10)

        assert result == EMPTY_RESULT
        run.assert_not_awaited()
        redis_client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_runs_and_releases_lock(self, redis_client):
        settings = get_settings()
        run = AsyncMock(return_value={**EMPTY_RESULT, "checked": 1})

        with (
            patch.object(receipt_reconciler.redis, "Redis", return_value=redis_client),
            patch.object(receipt_reconciler, "run_reconciliation", run),
        ):
            result = await receipt_reconciler._reconcile_async(settings, None, 10)

        assert result["checked"] == 1
        run.assert_awaited_once_with(settings, settings.reconcile_older_than_minutes, 10)
        redis_client.lock.return_value.release.assert_awaited_once()


class TestRunReconciliation:
    @pytest.mark.asyncio
    async def test_wires_service_with_job_sessions(self, session_factory, pool):
        @asynccontextmanager
        async def fake_sessions(settings):
            yield session_factory

        service = MagicMock()
        service.reconcile_pending = AsyncMock(return_value=dict(EMPTY_RESULT))

        with (
            patch.object(receipt_reconciler, "local_session_factory", fake_sessions),
            patch.object(
                receipt_reconciler, "ReconciliationService", return_value=service
            ) as service_cls,
        ):
            result = await run_reconciliation(get_settings(), 5, 50, pool=pool)

        assert result == EMPTY_RESULT
        assert service_cls.call_args.args[0] is session_factory
        service.reconcile_pending.assert_awaited_once_with(older_than_minutes=5, limit=50)


class TestSchedulerHealth:
    @pytest.mark.asyncio
    async def test_stopped_scheduler_is_unhealthy(self):
        scheduler = MagicMock(running=False)
        scheduler.get_jobs.return_value = []

        async with TestClient(TestServer(create_health_app(scheduler))) as client:
            response = await client.get("/health")
            data = await response.json()

        assert response.status == 503
        assert data["scheduler_running"] is False

    @pytest.mark.asyncio
    async def test_running_scheduler_lists_jobs(self):
        job = MagicMock(id="receipt_reconciliation", next_run_time=None)
        job.name = "Receipt reconciliation"
        scheduler = MagicMock(running=True)
        scheduler.get_jobs.return_value = [job]

        async with TestClient(TestServer(create_health_app(scheduler))) as client:
            response = await client.get("/health")
            data = await response.json()

        assert response.status == 200
        assert data["jobs"][0]["id"] == "receipt_reconciliation"
