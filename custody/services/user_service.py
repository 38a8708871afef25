"""
User service.

Registration of wallet holders and unlocking of their custodial keys.
"""

from eth_account import Account
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from custody.models.user import User
from custody.repositories.user_repository import UserRepository
from custody.utils.encryption import PrivateKeyVault
from custody.utils.exceptions import AuthenticationError, ConflictError, NotFoundError
from custody.utils.security import mask_address

MIN_PASSWORD_LENGTH = 8

Account.enable_unaudited_hdwallet_features()


class UserService:
    """
    User service.

    Handles registration (wallet generation + key encryption) and
    password-gated access to the decrypted private key.
    """

    def __init__(self, session: AsyncSession, vault: PrivateKeyVault) -> None:
        """
        Initialize user service.

        Args:
            session: Database session
            vault: Private key vault
        """
        self.session = session
        self.vault = vault
        self.user_repo = UserRepository(session)

    async def register(self, email: str, password: str) -> tuple[User, str]:
        """
        Register a new user with a freshly generated wallet.

        Args:
            email: Login email
            password: Plain text password (bcrypt-hashed, also seals the key)

        Returns:
            Tuple of (created user, mnemonic). The mnemonic is returned once
            for the user's backup and never stored.

        Raises:
            ValueError: Invalid email or password too short
            ConflictError: Email already registered
        """
        email = email.strip().lower()
        if "@" not in email:
            raise ValueError("Invalid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        if await self.user_repo.get_by_email(email):
            raise ConflictError("User already registered")

        account, mnemonic = Account.create_with_mnemonic()
        salt = self.vault.generate_salt()
        encrypted_key = self.vault.encrypt_private_key(
            "0x" + bytes(account.key).hex(), password, salt
        )

        user = User(
            email=email,
            wallet_address=account.address,
            encrypted_private_key=encrypted_key,
            key_salt=salt,
        )
        user.set_password(password)
        self.session.add(user)
        await self.session.flush()
        await self.session.commit()

        logger.info(f"Registered user {user.id} with wallet {mask_address(user.wallet_address)}")
        return user, mnemonic

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        user = await self.user_repo.get_by_email(email)
        if user is None or not user.verify_password(password):
            raise AuthenticationError("Invalid email or password")
        return user

    async def get_user(self, user_id: int) -> User:
        """Get user by ID or raise NotFoundError."""
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def get_private_key(self, user_id: int, password: str) -> str:
        """
        Unlock a user's private key.

        The key is only ever held in memory by the caller; it is never
        logged or persisted in clear.

        Raises:
            NotFoundError: Unknown user
            AuthenticationError: Wrong password
        """
        user = await self.get_user(user_id)
        if not user.verify_password(password):
            logger.warning(f"Wrong password for key unlock of user {user_id}")
            raise AuthenticationError("Invalid password")
        return self.vault.decrypt_private_key(
            user.encrypted_private_key, password, user.key_salt
        )
