"""
Ledger repository.

Data access layer for per-user transaction history.
"""

from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from custody.models.enums import TransactionStatus
from custody.models.ledger_entry import LedgerEntry
from custody.repositories.base import BaseRepository


def normalize_tx_hash(tx_hash: str) -> str:
    """Lowercase a transaction hash and ensure the 0x prefix."""
    normalized = tx_hash.lower()
    if not normalized.startswith("0x"):
        normalized = f"0x{normalized}"
    return normalized


class LedgerRepository(BaseRepository[LedgerEntry]):
    """Repository for ledger entries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(LedgerEntry, session)

    async def create_unique(self, **data: Any) -> LedgerEntry | None:
        """
        Insert a ledger entry relying on the unique (user, hash, perspective) key.

        A duplicate insert is not an error: the existing row wins and
        None is returned.

        Args:
            **data: Entry data

        Returns:
            Created entry, or None if the triple was already recorded
        """
        data["tx_hash"] = normalize_tx_hash(data["tx_hash"])
        entity = LedgerEntry(**data)
        self.session.add(entity)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            logger.debug(
                f"Ledger entry already recorded: user={data.get('user_id')} "
                f"hash={data['tx_hash']} perspective={data.get('perspective')}"
            )
            return None
        await self.session.refresh(entity)
        return entity

    async def get_by_hash(self, tx_hash: str) -> list[LedgerEntry]:
        """Get every perspective recorded for a transaction hash."""
        return await self.find_all(tx_hash=normalize_tx_hash(tx_hash))

    async def list_for_user(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        network: str | None = None,
        perspective: str | None = None,
        status: str | None = None,
        counterparty: str | None = None,
    ) -> tuple[list[LedgerEntry], int]:
        """
        Get a user's history, newest first.

        Args:
            user_id: Owner of the entries
            limit: Page size
            offset: Number of entries to skip
            network: Filter by network
            perspective: Filter by sent/received
            status: Filter by status
            counterparty: Filter by from/to address (case-insensitive)

        Returns:
            Tuple of (entries, total_count)
        """
        conditions = [LedgerEntry.user_id == user_id]
        if network:
            conditions.append(LedgerEntry.network == network)
        if perspective:
            conditions.append(LedgerEntry.perspective == perspective)
        if status:
            conditions.append(LedgerEntry.status == status)
        if counterparty:
            addr = counterparty.lower()
            conditions.append(
                (func.lower(LedgerEntry.to_address) == addr)
                | (func.lower(LedgerEntry.from_address) == addr)
            )

        count_stmt = select(func.count(LedgerEntry.id)).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(LedgerEntry)
            .where(*conditions)
            .order_by(LedgerEntry.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def status_counts(self, user_id: int) -> dict[str, int]:
        """Count a user's entries per status."""
        stmt = (
            select(LedgerEntry.status, func.count(LedgerEntry.id))
            .where(LedgerEntry.user_id == user_id)
            .group_by(LedgerEntry.status)
        )
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def find_pending(
        self, older_than: datetime, limit: int = 100
    ) -> list[LedgerEntry]:
        """
        Find pending entries created before a threshold.

        Args:
            older_than: Only entries created before this moment
            limit: Max results

        Returns:
            Pending entries, oldest first
        """
        stmt = (
            select(LedgerEntry)
            .where(
                LedgerEntry.status == TransactionStatus.PENDING.value,
                LedgerEntry.created_at < older_than,
            )
            .order_by(LedgerEntry.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def apply_receipt(
        self,
        tx_hash: str,
        status: str,
        block_number: int | None = None,
        block_hash: str | None = None,
        gas_used: int | None = None,
        effective_gas_price: str | None = None,
        confirmations: int | None = None,
    ) -> int:
        """
        Late status correction for every perspective of a pending hash.

        Only rows still pending are touched, so a terminal status is never
        overwritten and concurrent correctors cannot both win.

        Returns:
            Number of rows moved out of pending
        """
        values: dict[str, Any] = {"status": status}
        if block_number is not None:
            values["block_number"] = block_number
        if block_hash is not None:
            values["block_hash"] = block_hash
        if gas_used is not None:
            values["gas_used"] = gas_used
        if effective_gas_price is not None:
            values["effective_gas_price"] = effective_gas_price
        if confirmations is not None:
            values["confirmations"] = confirmations

        stmt = (
            update(LedgerEntry)
            .where(
                LedgerEntry.tx_hash == normalize_tx_hash(tx_hash),
                LedgerEntry.status == TransactionStatus.PENDING.value,
            )
            .values(**values)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0
