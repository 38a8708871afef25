"""
Contact service.

CRUD for a user's saved counterparties and the ledger view of each one.
"""

from typing import Any

from eth_utils import is_address
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from custody.config.constants import HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT
from custody.models.contact import Contact
from custody.repositories.contact_repository import ContactRepository
from custody.repositories.ledger_repository import LedgerRepository
from custody.services.history_service import serialize_entry
from custody.utils.exceptions import ConflictError, NotFoundError
from custody.utils.security import mask_address

# Fields a user may change after creation; address and counters are fixed
UPDATABLE_FIELDS = frozenset({"alias", "notes", "favorite"})


def serialize_contact(contact: Contact) -> dict[str, Any]:
    """Contact as an API dict."""
    return {
        "id": contact.id,
        "alias": contact.alias,
        "walletAddress": contact.wallet_address,
        "notes": contact.notes,
        "favorite": contact.favorite,
        "totalSent": format(contact.total_sent.normalize(), "f"),
        "totalReceived": format(contact.total_received.normalize(), "f"),
        "transactionCount": contact.transaction_count,
        "lastTransactionAt": (
            contact.last_transaction_at.isoformat() if contact.last_transaction_at else None
        ),
    }


class ContactService:
    """Manage saved contacts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.contact_repo = ContactRepository(session)
        self.ledger_repo = LedgerRepository(session)

    async def add_contact(
        self,
        user_id: int,
        alias: str,
        wallet_address: str,
        notes: str | None = None,
        favorite: bool = False,
    ) -> Contact:
        """
        Save a contact.

        Raises:
            ValueError: Invalid address or empty alias
            ConflictError: Address already saved for this user
        """
        alias = alias.strip()
        if not alias:
            raise ValueError("Alias is required")
        if not is_address(wallet_address):
            raise ValueError(f"Invalid address: {wallet_address!r}")

        if await self.contact_repo.get_by_address(user_id, wallet_address):
            raise ConflictError("Contact already exists")

        try:
            contact = await self.contact_repo.create(
                user_id=user_id,
                alias=alias,
                wallet_address=wallet_address.lower(),
                notes=notes,
                favorite=favorite,
            )
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Contact already exists") from e

        logger.info(f"User {user_id} saved contact {alias} ({mask_address(wallet_address)})")
        return contact

    async def list_contacts(self, user_id: int) -> list[Contact]:
        return await self.contact_repo.list_for_user(user_id)

    async def get_by_address(self, user_id: int, wallet_address: str) -> Contact | None:
        return await self.contact_repo.get_by_address(user_id, wallet_address)

    async def get_by_alias(self, user_id: int, alias: str) -> Contact | None:
        return await self.contact_repo.get_by_alias(user_id, alias)

    async def update_contact(
        self, user_id: int, contact_id: int, updates: dict[str, Any]
    ) -> Contact:
        """
        Change a contact's alias, notes or favorite flag.

        Keys outside UPDATABLE_FIELDS are ignored.

        Raises:
            ValueError: Empty alias
            NotFoundError: Contact missing or owned by another user
        """
        changes = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        if "alias" in changes:
            changes["alias"] = (changes["alias"] or "").strip()
            if not changes["alias"]:
                raise ValueError("Alias is required")

        contact = await self.contact_repo.get_for_user(user_id, contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found")

        if changes:
            contact = await self.contact_repo.update(contact_id, **changes)
            await self.session.commit()
            logger.info(f"User {user_id} updated contact {contact_id}: {sorted(changes)}")
        return contact

    async def get_contact_transactions(
        self, user_id: int, contact_id: int, limit: int = HISTORY_DEFAULT_LIMIT
    ) -> dict[str, Any]:
        """
        Get a contact with the user's ledger entries involving its address.

        Raises:
            NotFoundError: Contact missing or owned by another user
        """
        contact = await self.contact_repo.get_for_user(user_id, contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found")

        entries, total = await self.ledger_repo.list_for_user(
            user_id,
            limit=max(1, min(limit, HISTORY_MAX_LIMIT)),
            counterparty=contact.wallet_address,
        )
        return {
            "contact": serialize_contact(contact),
            "transactions": [serialize_entry(e) for e in entries],
            "total": total,
        }

    async def delete_contact(self, user_id: int, contact_id: int) -> None:
        """
        Delete a contact.

        Raises:
            NotFoundError: Contact missing or owned by another user
        """
        deleted = await self.contact_repo.delete_for_user(user_id, contact_id)
        if not deleted:
            raise NotFoundError(f"Contact {contact_id} not found")
        await self.session.commit()
