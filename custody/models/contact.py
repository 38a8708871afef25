"""
Contact model.

A user's saved counterparty address with aggregate transaction counters.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from custody.models.base import Base


class Contact(Base):
    """Saved contact with cumulative totals."""

    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "wallet_address", name="uq_contact_user_address"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    alias: Mapped[str] = mapped_column(String(64), nullable=False)
    # Stored lowercase
    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Aggregates, only ever incremented
    total_sent: Mapped[Decimal] = mapped_column(
        DECIMAL(36, 18), nullable=False, default=Decimal("0")
    )
    total_received: Mapped[Decimal] = mapped_column(
        DECIMAL(36, 18), nullable=False, default=Decimal("0")
    )
    transaction_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    last_transaction_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Contact(id={self.id}, alias={self.alias}, tx_count={self.transaction_count})>"
