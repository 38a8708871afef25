"""Encryption utilities for custodial private keys."""

import base64
import os
import secrets

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from loguru import logger

from custody.utils.exceptions import SecurityError

PBKDF2_ITERATIONS = 390_000


class PrivateKeyVault:
    """
    Encrypts wallet private keys at rest.

    Each key is sealed with Fernet under a key derived (PBKDF2-HMAC-SHA256)
    from the user's password combined with the application secret and a
    per-user salt. Neither the password nor the application secret alone
    can open a stored key.
    """

    def __init__(self, app_secret: str) -> None:
        """
        Initialize vault.

        Args:
            app_secret: Application-level secret (settings.encryption_key)
        """
        self.environment = os.getenv("ENVIRONMENT", "development")

        if not app_secret:
            raise SecurityError(
                "Encryption key not configured. Set ENCRYPTION_KEY in .env file."
            )
        if len(app_secret) < 32 and self.environment == "production":
            raise SecurityError(
                "ENCRYPTION_KEY must be at least 32 characters in production."
            )
        self._app_secret = app_secret.encode("utf-8")

    @staticmethod
    def generate_salt() -> str:
        """Generate a new per-user salt (hex)."""
        return secrets.token_hex(16)

    def _fernet(self, password: str, salt: str) -> Fernet:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=bytes.fromhex(salt),
            iterations=PBKDF2_ITERATIONS,
        )
        key = kdf.derive(password.encode("utf-8") + self._app_secret)
        return Fernet(base64.urlsafe_b64encode(key))

    def encrypt_private_key(self, private_key: str, password: str, salt: str) -> str:
        """
        Encrypt a private key.

        Args:
            private_key: Hex private key
            password: User password
            salt: Per-user salt from generate_salt()

        Returns:
            Fernet token (str)
        """
        try:
            return self._fernet(password, salt).encrypt(private_key.encode("utf-8")).decode()
        except (ValueError, TypeError) as e:
            logger.error(f"Encryption error: {type(e).__name__}")
            raise SecurityError("Private key encryption failed") from e

    def decrypt_private_key(self, token: str, password: str, salt: str) -> str:
        """
        Decrypt a private key.

        Raises:
            SecurityError: Wrong password or tampered ciphertext
        """
        try:
            return self._fernet(password, salt).decrypt(token.encode("utf-8")).decode()
        except InvalidToken as e:
            # Never log the password or the token
            logger.warning("Private key decryption failed - wrong password")
            raise SecurityError("Decryption failed - wrong password") from e
        except (ValueError, TypeError) as e:
            logger.error(f"Decryption error: {type(e).__name__}")
            raise SecurityError("Decryption failed - malformed key material") from e
