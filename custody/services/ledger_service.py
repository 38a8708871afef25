"""
Dual-Ledger Recorder.

Writes the history rows for a broadcast transaction: always a "sent" row
for the sender, and a "received" row for the recipient when the
recipient address belongs to a registered user. Each write runs in its
own session and commits on its own; a failure of one never affects the
other and never reaches the caller. Duplicate inserts hit the unique
(user, hash, perspective) key and are treated as no-ops, so recording the
same transaction twice is safe.
"""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custody.models.enums import LedgerKind, LedgerPerspective
from custody.repositories.ledger_repository import LedgerRepository
from custody.repositories.user_repository import UserRepository
from custody.services.blockchain.types import SubmittedTransaction
from custody.utils.security import mask_address, mask_tx_hash


@dataclass
class LedgerRecordResult:
    """What a record() call actually wrote."""

    sent_written: bool = False
    recipient_user_id: int | None = None
    received_written: bool = False


class DualLedgerRecorder:
    """Best-effort two-sided history writer."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger_repo_factory: Callable[[AsyncSession], LedgerRepository] = LedgerRepository,
        user_repo_factory: Callable[[AsyncSession], UserRepository] = UserRepository,
    ) -> None:
        """
        Initialize recorder.

        Args:
            session_factory: Async session factory
            ledger_repo_factory: Builds a ledger repository for a session
            user_repo_factory: Builds a user repository for a session
        """
        self.session_factory = session_factory
        self.ledger_repo_factory = ledger_repo_factory
        self.user_repo_factory = user_repo_factory

    async def record(
        self,
        sender_user_id: int,
        sender_address: str,
        recipient_address: str,
        submitted_tx: SubmittedTransaction,
        network: str,
        kind: LedgerKind = LedgerKind.TRANSFER,
        token: str = "ETH",
        token_address: str | None = None,
        value: Decimal | None = None,
    ) -> LedgerRecordResult:
        """
        Record both perspectives of a transaction.

        Never raises: every failure is logged and swallowed.

        Args:
            sender_user_id: Sending user
            sender_address: Sender wallet address
            recipient_address: Recipient address (any letter case)
            submitted_tx: Broadcast transaction
            network: Network name
            kind: Transfer, swap, approval...
            token: Asset symbol
            token_address: Token contract for ERC-20 legs
            value: Amount in token units when it differs from the native value

        Returns:
            LedgerRecordResult describing which rows were written
        """
        result = LedgerRecordResult()
        base = self._entry_data(
            submitted_tx, sender_address, recipient_address, network,
            kind, token, token_address, value,
        )

        result.sent_written = await self._write(
            {**base, "user_id": sender_user_id, "wallet_address": sender_address,
             "perspective": LedgerPerspective.SENT.value}
        )

        recipient_user_id = await self._find_recipient_user(recipient_address)
        if recipient_user_id is None or recipient_user_id == sender_user_id:
            return result

        result.recipient_user_id = recipient_user_id
        result.received_written = await self._write(
            {**base, "user_id": recipient_user_id, "wallet_address": recipient_address,
             "perspective": LedgerPerspective.RECEIVED.value}
        )
        return result

    @staticmethod
    def _entry_data(
        tx: SubmittedTransaction,
        sender_address: str,
        recipient_address: str,
        network: str,
        kind: LedgerKind,
        token: str,
        token_address: str | None,
        value: Decimal | None,
    ) -> dict[str, Any]:
        return {
            "tx_hash": tx.hash,
            "kind": kind.value,
            "network": network,
            "from_address": sender_address,
            "to_address": recipient_address,
            "value": value if value is not None else tx.value,
            "value_wei": str(tx.value_wei),
            "token": token,
            "token_address": token_address,
            "gas_used": tx.gas_used,
            "effective_gas_price": (
                str(tx.effective_gas_price) if tx.effective_gas_price is not None else None
            ),
            "status": tx.status.value,
            "block_number": tx.block_number,
            "block_hash": tx.block_hash,
            "confirmations": tx.confirmations,
        }

    async def _write(self, data: dict[str, Any]) -> bool:
        """Insert one row in its own session. True only if a new row was created."""
        try:
            async with self.session_factory() as session:
                repo = self.ledger_repo_factory(session)
                entry = await repo.create_unique(**data)
                await session.commit()
        except Exception as e:
            log = logger.bind(network=data["network"], kind=data["kind"])
            log.opt(exception=True).error(
                f"Failed to record {data['perspective']} ledger entry for user "
                f"{data['user_id']} tx {mask_tx_hash(data['tx_hash'])}: {e}",
            )
            return False

        if entry is None:
            logger.debug(
                f"Ledger {data['perspective']} entry for user {data['user_id']} "
                f"already present, skipping"
            )
            return False

        logger.info(
            f"Recorded {data['perspective']} entry for user {data['user_id']}: "
            f"{mask_tx_hash(data['tx_hash'])} ({data['status']})"
        )
        return True

    async def _find_recipient_user(self, recipient_address: str) -> int | None:
        """Case-insensitive lookup of a wallet holder by address."""
        try:
            async with self.session_factory() as session:
                user = await self.user_repo_factory(session).get_by_wallet_address(
                    recipient_address
                )
        except Exception as e:
            logger.opt(exception=True).error(
                f"Recipient lookup failed for {mask_address(recipient_address)}: {e}",
            )
            return None
        return user.id if user else None
