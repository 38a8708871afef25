"""
User model.

Represents a registered wallet holder with a custodial wallet.
"""

from datetime import UTC, datetime

import bcrypt
from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from custody.models.base import Base


class User(Base):
    """User model - registered wallet holders."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Wallet (checksummed address; lookups compare lowercase)
    wallet_address: Mapped[str] = mapped_column(
        String(42), unique=True, index=True, nullable=False
    )
    encrypted_private_key: Mapped[str] = mapped_column(Text, nullable=False)
    key_salt: Mapped[str] = mapped_column(String(64), nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id}, wallet={self.wallet_address})>"

    def set_password(self, password: str) -> None:
        """Hash and store password."""
        self.password_hash = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt()
        ).decode("utf-8")

    def verify_password(self, password: str) -> bool:
        """Check password against the stored bcrypt hash."""
        if not self.password_hash:
            return False
        return bcrypt.checkpw(
            password.encode("utf-8"), self.password_hash.encode("utf-8")
        )
