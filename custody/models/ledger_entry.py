"""
Ledger entry model.

One row per (user, transaction hash, perspective). A confirmed transfer
between two wallet holders yields a "sent" row for the sender and a
"received" row for the recipient sharing the same hash.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from custody.models.base import Base
from custody.models.enums import LedgerKind, TransactionStatus


class LedgerEntry(Base):
    """
    Persisted transaction history record.

    The (user_id, tx_hash, perspective) triple is unique so that both
    sides of a transfer can be written, and rewritten on retry, without
    creating duplicates.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "tx_hash", "perspective",
            name="uq_ledger_user_hash_perspective",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    wallet_address: Mapped[str] = mapped_column(
        String(42), nullable=False, index=True
    )

    # Transaction identification
    tx_hash: Mapped[str] = mapped_column(String(66), nullable=False, index=True)
    perspective: Mapped[str] = mapped_column(String(10), nullable=False)
    kind: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LedgerKind.TRANSFER.value
    )
    network: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    # Addresses (checksummed as returned by the chain)
    from_address: Mapped[str] = mapped_column(String(42), nullable=False)
    to_address: Mapped[str] = mapped_column(String(42), nullable=False)

    # Amount
    value: Mapped[Decimal] = mapped_column(DECIMAL(36, 18), nullable=False)
    value_wei: Mapped[str] = mapped_column(String(78), nullable=False)
    token: Mapped[str] = mapped_column(String(16), nullable=False, default="ETH")
    token_address: Mapped[str | None] = mapped_column(String(42), nullable=True)

    # Gas & fees
    gas_used: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    effective_gas_price: Mapped[str | None] = mapped_column(String(78), nullable=True)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.PENDING.value, index=True
    )
    block_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    block_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    confirmations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<LedgerEntry(user_id={self.user_id}, tx_hash={self.tx_hash[:16]}..., "
            f"perspective={self.perspective}, status={self.status})>"
        )

    @property
    def is_pending(self) -> bool:
        """Check if the on-chain outcome is still unknown."""
        return self.status == TransactionStatus.PENDING.value
