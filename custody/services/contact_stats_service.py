"""
Contact Stats Updater.

Best-effort side update of a saved contact's counters after a
transaction. Counters are only ever incremented atomically in SQL, never
recomputed.
"""

from collections.abc import Callable

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custody.models.enums import LedgerPerspective
from custody.repositories.contact_repository import ContactRepository
from custody.services.blockchain.types import SubmittedTransaction
from custody.utils.security import mask_address


class ContactStatsUpdater:
    """Bumps contact aggregates; never raises."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        contact_repo_factory: Callable[[AsyncSession], ContactRepository] = ContactRepository,
    ) -> None:
        self.session_factory = session_factory
        self.contact_repo_factory = contact_repo_factory

    async def bump(
        self,
        user_id: int,
        counterparty_address: str,
        submitted_tx: SubmittedTransaction,
        perspective: LedgerPerspective = LedgerPerspective.SENT,
    ) -> bool:
        """
        Update the contact matching counterparty_address, if the user saved one.

        Args:
            user_id: Contact owner
            counterparty_address: Other side of the transaction
            submitted_tx: Confirmed transaction
            perspective: SENT adds to total_sent, RECEIVED to total_received

        Returns:
            True if a contact was updated, False for no contact or on error
        """
        try:
            async with self.session_factory() as session:
                repo = self.contact_repo_factory(session)
                contact = await repo.get_by_address(user_id, counterparty_address)
                if contact is None:
                    return False

                updated = await repo.increment_stats(
                    contact.id,
                    amount=submitted_tx.value,
                    sent=perspective is LedgerPerspective.SENT,
                    occurred_at=submitted_tx.timestamp,
                )
                await session.commit()
        except Exception as e:
            logger.opt(exception=True).error(
                f"Failed to update contact stats for user {user_id} / "
                f"{mask_address(counterparty_address)}: {e}",
            )
            return False

        if updated:
            logger.debug(
                f"Contact stats updated for user {user_id}: {contact.alias} "
                f"({perspective.value} {submitted_tx.value})"
            )
        return bool(updated)
