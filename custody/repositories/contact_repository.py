"""
Contact repository.

Data access layer for saved contacts and their aggregate counters.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from custody.models.contact import Contact
from custody.repositories.base import BaseRepository


class ContactRepository(BaseRepository[Contact]):
    """Repository for contacts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(Contact, session)

    async def get_by_address(self, user_id: int, address: str) -> Contact | None:
        """Get a user's contact by wallet address (case-insensitive)."""
        return await self.get_by(user_id=user_id, wallet_address=address.lower())

    async def get_for_user(self, user_id: int, contact_id: int) -> Contact | None:
        """Get a contact only if it belongs to the user."""
        return await self.get_by(id=contact_id, user_id=user_id)

    async def get_by_alias(self, user_id: int, alias: str) -> Contact | None:
        """Get a user's contact by exact alias, ignoring case."""
        stmt = (
            select(Contact)
            .where(
                Contact.user_id == user_id,
                func.lower(Contact.alias) == alias.strip().lower(),
            )
            .order_by(Contact.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(
        self, user_id: int, limit: int = 100, offset: int = 0
    ) -> list[Contact]:
        """Get a user's contacts, favorites first then by alias."""
        stmt = (
            select(Contact)
            .where(Contact.user_id == user_id)
            .order_by(Contact.favorite.desc(), Contact.alias.asc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_for_user(self, user_id: int, contact_id: int) -> bool:
        """Delete a contact only if it belongs to the user."""
        contact = await self.get_for_user(user_id, contact_id)
        if contact is None:
            return False
        return await self.delete(contact_id)

    async def increment_stats(
        self,
        contact_id: int,
        amount: Decimal,
        sent: bool,
        occurred_at: datetime,
    ) -> int:
        """
        Atomically bump a contact's counters.

        Issued as a single UPDATE with column arithmetic so concurrent
        bumps never lose an increment.

        Args:
            contact_id: Contact to update
            amount: Value to add to the sent or received total
            sent: True to add to total_sent, False for total_received
            occurred_at: Transaction timestamp

        Returns:
            Number of rows updated
        """
        total_column = Contact.total_sent if sent else Contact.total_received
        stmt = (
            update(Contact)
            .where(Contact.id == contact_id)
            .values(
                {
                    Contact.transaction_count: Contact.transaction_count + 1,
                    total_column: total_column + amount,
                    Contact.last_transaction_at: occurred_at,
                }
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount or 0
