"""
Nonce management.

Sign + broadcast for one sender address is serialized inside this
process so two concurrent sends from the same wallet never read the same
pending nonce. The receipt wait happens outside the lock.
"""

import asyncio

from loguru import logger

from custody.config.constants import NONCE_STUCK_THRESHOLD
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.utils.security import mask_address


class SenderLocks:
    """Per-sender asyncio locks keyed by lowercase (network, address)."""

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def get(self, network: str, address: str) -> asyncio.Lock:
        key = (network, address.lower())
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


class NonceManager:
    """
    Reads account nonces through the retry executor.

    Features:
    - Pending nonce (includes mempool transactions)
    - Stuck transaction detection against the confirmed nonce
    """

    def __init__(
        self,
        executor: RetryExecutor,
        stuck_threshold: int = NONCE_STUCK_THRESHOLD,
    ) -> None:
        """
        Initialize nonce manager.

        Args:
            executor: Retry executor for chain reads
            stuck_threshold: Pending-minus-confirmed gap that triggers a warning
        """
        self.executor = executor
        self.stuck_threshold = stuck_threshold

    async def get_nonce(self, network: str, address: str, block: str = "pending") -> int:
        """Get the account nonce at a block tag."""
        return await self.executor.with_retry(
            network,
            lambda client: client.get_transaction_count(address, block),
            operation_name=f"get_transaction_count({block})",
        )

    async def get_safe_nonce(self, network: str, address: str) -> int:
        """
        Get the next nonce with stuck transaction detection.

        Args:
            network: Network name
            address: Sender address

        Returns:
            Pending nonce to use for the next transaction
        """
        pending_nonce = await self.get_nonce(network, address, "pending")
        confirmed_nonce = await self.get_nonce(network, address, "latest")

        if pending_nonce > confirmed_nonce + self.stuck_threshold:
            logger.warning(
                f"Possible stuck transactions for {mask_address(address)}: "
                f"pending={pending_nonce}, confirmed={confirmed_nonce}, "
                f"stuck={pending_nonce - confirmed_nonce}"
            )

        return pending_nonce
