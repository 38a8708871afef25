"""
User repository.

Data access layer for wallet holders.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from custody.models.user import User
from custody.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for users."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_wallet_address(self, address: str) -> User | None:
        """
        Get user owning a wallet address.

        Comparison is case-insensitive: checksummed and lowercase forms of
        the same address resolve to the same user.

        Args:
            address: Wallet address in any letter case

        Returns:
            User or None
        """
        stmt = select(User).where(
            func.lower(User.wallet_address) == address.lower()
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()
