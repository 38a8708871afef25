"""
Transaction history service.

Per-user reads over the ledger: paginated history, lookup by hash and
status statistics.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from custody.config.constants import HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT
from custody.models.enums import LedgerPerspective, TransactionStatus
from custody.models.ledger_entry import LedgerEntry
from custody.repositories.ledger_repository import LedgerRepository


def serialize_entry(entry: LedgerEntry) -> dict[str, Any]:
    """Ledger entry as an API dict."""
    return {
        "id": entry.id,
        "hash": entry.tx_hash,
        "perspective": entry.perspective,
        "kind": entry.kind,
        "network": entry.network,
        "from": entry.from_address,
        "to": entry.to_address,
        "value": format(entry.value.normalize(), "f") if entry.value is not None else None,
        "valueWei": entry.value_wei,
        "token": entry.token,
        "tokenAddress": entry.token_address,
        "gasUsed": str(entry.gas_used) if entry.gas_used is not None else None,
        "status": entry.status,
        "blockNumber": entry.block_number,
        "blockHash": entry.block_hash,
        "confirmations": entry.confirmations,
        "timestamp": entry.created_at.isoformat() if entry.created_at else None,
    }


class TransactionHistoryService:
    """Read access to a user's ledger."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.ledger_repo = LedgerRepository(session)

    async def get_history(
        self,
        user_id: int,
        limit: int = HISTORY_DEFAULT_LIMIT,
        offset: int = 0,
        network: str | None = None,
        perspective: str | None = None,
        status: str | None = None,
        counterparty: str | None = None,
    ) -> dict[str, Any]:
        """
        Get a page of a user's history.

        Args:
            user_id: Owner
            limit: Page size (capped)
            offset: Entries to skip
            network: Optional network filter
            perspective: Optional sent/received filter
            status: Optional status filter
            counterparty: Optional address filter

        Returns:
            Dict with transactions, total, limit, offset

        Raises:
            ValueError: Unknown perspective or status filter
        """
        if perspective and perspective not in {p.value for p in LedgerPerspective}:
            raise ValueError(f"Unknown perspective: {perspective}")
        if status and status not in {s.value for s in TransactionStatus}:
            raise ValueError(f"Unknown status: {status}")

        limit = max(1, min(limit, HISTORY_MAX_LIMIT))
        offset = max(0, offset)

        entries, total = await self.ledger_repo.list_for_user(
            user_id,
            limit=limit,
            offset=offset,
            network=network,
            perspective=perspective,
            status=status,
            counterparty=counterparty,
        )
        return {
            "transactions": [serialize_entry(e) for e in entries],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    async def get_by_hash(self, user_id: int, tx_hash: str) -> list[dict[str, Any]]:
        """Entries of one hash visible to the user."""
        entries = await self.ledger_repo.get_by_hash(tx_hash)
        return [serialize_entry(e) for e in entries if e.user_id == user_id]

    async def get_stats(self, user_id: int) -> dict[str, int]:
        """Count of entries per status plus total."""
        counts = await self.ledger_repo.status_counts(user_id)
        stats = {status.value: counts.get(status.value, 0) for status in TransactionStatus}
        stats["total"] = sum(counts.values())
        return stats
