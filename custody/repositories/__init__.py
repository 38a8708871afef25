"""Repositories package."""

from custody.repositories.contact_repository import ContactRepository
from custody.repositories.ledger_repository import LedgerRepository
from custody.repositories.user_repository import UserRepository

__all__ = [
    "ContactRepository",
    "LedgerRepository",
    "UserRepository",
]
