"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from custody.models.base import Base
from custody.models.contact import Contact
from custody.models.enums import LedgerKind, LedgerPerspective, TransactionStatus
from custody.models.ledger_entry import LedgerEntry
from custody.models.user import User

__all__ = [
    "Base",
    "Contact",
    "LedgerEntry",
    "LedgerKind",
    "LedgerPerspective",
    "TransactionStatus",
    "User",
]
