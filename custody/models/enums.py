"""
Model enums.

String-valued enums stored in VARCHAR columns.
"""

from enum import StrEnum


class TransactionStatus(StrEnum):
    """On-chain status of a submitted transaction."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Check if status can no longer change."""
        return self is not TransactionStatus.PENDING


class LedgerPerspective(StrEnum):
    """Whose viewpoint a ledger entry represents."""

    SENT = "sent"
    RECEIVED = "received"


class LedgerKind(StrEnum):
    """What kind of transaction a ledger entry describes."""

    TRANSFER = "transfer"
    SWAP = "swap"
    APPROVAL = "approval"
    CANCEL = "cancel"
    SPEED_UP = "speed_up"
