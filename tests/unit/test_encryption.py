"""Unit tests for private key encryption."""

import pytest

from custody.utils.encryption import PrivateKeyVault
from custody.utils.exceptions import SecurityError
from custody.utils.security import mask_address, mask_tx_hash

APP_SECRET = "unit-test-secret-key-that-is-long-enough"


@pytest.fixture
def vault():
    return PrivateKeyVault(APP_SECRET)


class TestPrivateKeyVault:
    def test_decrypts_with_same_password(self, vault, sender_key):
        salt = vault.generate_salt()
        token = vault.encrypt_private_key(sender_key, "hunter22", salt)

        assert sender_key not in token
        assert vault.decrypt_private_key(token, "hunter22", salt) == sender_key

    def test_wrong_password(self, vault, sender_key):
        salt = vault.generate_salt()
        token = vault.encrypt_private_key(sender_key, "hunter22", salt)

        with pytest.raises(SecurityError):
            vault.decrypt_private_key(token, "hunter23", salt)

    def test_app_secret_is_part_of_the_key(self, vault, sender_key):
        """The password alone cannot open a stored key."""
        salt = vault.generate_salt()
        token = vault.encrypt_private_key(sender_key, "hunter22", salt)

        with pytest.raises(SecurityError):
            PrivateKeyVault("another-secret-key-that-is-long-enough").decrypt_private_key(
                token, "hunter22", salt
            )

    def test_salts_are_unique(self, vault):
        assert vault.generate_salt() != vault.generate_salt()

    def test_missing_secret(self):
        with pytest.raises(SecurityError):
            PrivateKeyVault("")

    def test_short_secret_rejected_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        with pytest.raises(SecurityError):
            PrivateKeyVault("short")


class TestMasking:
    def test_mask_address(self, sender_address):
        assert mask_address(sender_address) == "0xf39F...2266"
        assert mask_address(None) == "***"

    def test_mask_tx_hash(self, sample_transaction_hash):
        assert mask_tx_hash(sample_transaction_hash) == "0x12345678...abcdef"
