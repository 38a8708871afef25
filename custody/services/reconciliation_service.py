"""
Receipt reconciliation.

Re-checks ledger entries still marked pending (the receipt wait timed
out, or the process stopped before it finished) and applies the late
status correction once the chain has a receipt. Contact stats for the
sender are bumped only by the run that actually moved the rows out of
pending, so they are never counted twice.
"""

from collections import defaultdict
from datetime import UTC, datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custody.models.enums import LedgerKind, LedgerPerspective, TransactionStatus
from custody.models.ledger_entry import LedgerEntry
from custody.repositories.ledger_repository import LedgerRepository
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.types import SubmittedTransaction
from custody.services.contact_stats_service import ContactStatsUpdater
from custody.utils.security import mask_tx_hash


def submitted_from_entry(entry: LedgerEntry) -> SubmittedTransaction:
    """Rebuild a SubmittedTransaction view of a ledger row."""
    return SubmittedTransaction(
        hash=entry.tx_hash,
        sender=entry.from_address,
        recipient=entry.to_address,
        value_wei=int(entry.value_wei),
        network=entry.network,
        nonce=-1,
        status=TransactionStatus(entry.status),
        block_number=entry.block_number,
        block_hash=entry.block_hash,
        gas_used=entry.gas_used,
        confirmations=entry.confirmations,
        timestamp=entry.created_at,
    )


class ReconciliationService:
    """Late status corrections for pending ledger entries."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        executor: RetryExecutor,
        contact_stats: ContactStatsUpdater,
    ) -> None:
        self.session_factory = session_factory
        self.executor = executor
        self.contact_stats = contact_stats

    async def reconcile_pending(
        self, older_than_minutes: int = 5, limit: int = 100
    ) -> dict[str, Any]:
        """
        Reconcile pending entries older than a threshold.

        Args:
            older_than_minutes: Minimum entry age
            limit: Max entries per run

        Returns:
            Dict with checked / confirmed / failed / still_pending / errors counts
        """
        stats = {"checked": 0, "confirmed": 0, "failed": 0, "still_pending": 0, "errors": 0}
        threshold = datetime.now(UTC) - timedelta(minutes=older_than_minutes)

        async with self.session_factory() as session:
            entries = await LedgerRepository(session).find_pending(threshold, limit=limit)

        by_hash: dict[tuple[str, str], list[LedgerEntry]] = defaultdict(list)
        for entry in entries:
            by_hash[(entry.network, entry.tx_hash)].append(entry)

        if not by_hash:
            logger.debug("No pending ledger entries to reconcile")
            return stats

        logger.info(f"Reconciling {len(by_hash)} pending transactions")

        for (network, tx_hash), group in by_hash.items():
            stats["checked"] += 1
            try:
                outcome = await self._reconcile_one(network, tx_hash, group)
            except Exception as e:
                stats["errors"] += 1
                logger.bind(network=network, entries=len(group)).error(
                    f"Reconciliation failed for {mask_tx_hash(tx_hash)}: {e}"
                )
                continue
            stats[outcome] += 1

        logger.info(f"Reconciliation complete: {stats}")
        return stats

    async def _reconcile_one(
        self, network: str, tx_hash: str, group: list[LedgerEntry]
    ) -> str:
        receipt = await self.executor.with_retry(
            network,
            lambda client: client.get_transaction_receipt(tx_hash),
            operation_name="get_transaction_receipt",
        )
        if receipt is None:
            return "still_pending"

        tx = submitted_from_entry(group[0])
        latest_block = await self.executor.with_retry(
            network,
            lambda client: client.get_block_number(),
            operation_name="get_block_number",
        )
        tx.apply_receipt(receipt, latest_block)

        async with self.session_factory() as session:
            moved = await LedgerRepository(session).apply_receipt(
                tx_hash,
                status=tx.status.value,
                block_number=tx.block_number,
                block_hash=tx.block_hash,
                gas_used=tx.gas_used,
                effective_gas_price=(
                    str(tx.effective_gas_price) if tx.effective_gas_price is not None else None
                ),
                confirmations=tx.confirmations,
            )
            await session.commit()

        if moved and tx.status is TransactionStatus.SUCCESS:
            for entry in group:
                if (
                    entry.perspective == LedgerPerspective.SENT.value
                    and entry.kind == LedgerKind.TRANSFER.value
                ):
                    await self.contact_stats.bump(entry.user_id, entry.to_address, tx)

        logger.info(
            f"[{network}] {mask_tx_hash(tx_hash)} reconciled as {tx.status.value} "
            f"({moved} rows updated)"
        )
        return "confirmed" if tx.status is TransactionStatus.SUCCESS else "failed"
