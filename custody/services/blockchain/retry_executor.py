"""
Retry Executor - the single retry layer for chain calls.

Runs an async operation against the active endpoint of a network. On
failure it advances the pool cursor and tries again, up to a bounded
number of total attempts. Nothing above this layer retries, so retry
storms cannot multiply.
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger

from custody.config.constants import RPC_MAX_ATTEMPTS
from custody.services.blockchain.chain_client import ChainClient
from custody.services.blockchain.endpoint_pool import EndpointPool
from custody.services.blockchain.errors import ConfigurationError

T = TypeVar("T")

Operation = Callable[[ChainClient], Awaitable[T]]


class RetryExecutor:
    """
    Execute chain operations with endpoint failover.

    Usage:
        executor = RetryExecutor(pool)
        block = await executor.with_retry(
            "sepolia",
            lambda client: client.get_block_number(),
            operation_name="get_block_number",
        )
    """

    def __init__(self, pool: EndpointPool, max_attempts: int = RPC_MAX_ATTEMPTS) -> None:
        """
        Initialize executor.

        Args:
            pool: Endpoint pool shared by all chain services
            max_attempts: Default total attempts per call
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.pool = pool
        self.max_attempts = max_attempts

        # Track failover statistics
        self._success_count = 0
        self._failure_count = 0
        self._failover_count = 0

    async def with_retry(
        self,
        network: str,
        operation: Operation[T],
        max_attempts: int | None = None,
        operation_name: str = "rpc_call",
    ) -> T:
        """
        Run operation(client) with failover.

        Every failed attempt (including client construction failure)
        advances the shared cursor. After the last attempt the last
        observed error is re-raised unchanged so callers can classify
        the original chain error.

        Args:
            network: Network name
            operation: Async callable taking a ChainClient
            max_attempts: Total attempts (defaults to executor setting)
            operation_name: Human-readable operation name for logging

        Returns:
            Operation result

        Raises:
            ValueError: max_attempts below 1
            ConfigurationError: Network unknown or without endpoints (not retried)
            Exception: The last error raised by the operation
        """
        attempts_allowed = self.max_attempts if max_attempts is None else max_attempts
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1")

        last_error: Exception | None = None

        for attempt in range(1, attempts_allowed + 1):
            try:
                client = self.pool.get_client(network)
                result = await operation(client)
            except ConfigurationError:
                raise
            except Exception as e:
                last_error = e
                self._failure_count += 1
                logger.warning(
                    f"[{network}] {operation_name} attempt {attempt}/{attempts_allowed} "
                    f"failed: {type(e).__name__}: {e}"
                )
                self.pool.advance(network)
                self._failover_count += 1
                continue

            self._success_count += 1
            if attempt > 1:
                logger.info(
                    f"[{network}] {operation_name} succeeded on attempt {attempt}"
                )
            return result

        logger.error(
            f"[{network}] {operation_name} failed after {attempts_allowed} attempts. "
            f"Last error: {last_error}"
        )
        raise last_error

    def get_stats(self) -> dict[str, Any]:
        """
        Get execution statistics.

        Returns:
            Dict with success_count, failure_count, failover_count
        """
        return {
            "max_attempts": self.max_attempts,
            "success_count": self._success_count,
            "failure_count": self._failure_count,
            "failover_count": self._failover_count,
        }
