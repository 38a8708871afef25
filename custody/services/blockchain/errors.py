"""
Blockchain error taxonomy.

Every error raised by the chain layer derives from BlockchainError so the
HTTP layer can map them in one place. Raw transport and RPC errors from
endpoints are not wrapped by the retry executor: callers need
the original chain-level error to classify it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .revert_reasons import RevertReason


class BlockchainError(Exception):
    """Base exception for blockchain errors."""
    pass


class ConfigurationError(BlockchainError):
    """No endpoints configured for the requested network."""

    def __init__(self, network: str, detail: str | None = None) -> None:
        self.network = network
        message = detail or f"No RPC endpoints configured for network: {network}"
        super().__init__(message)


class EndpointUnavailable(BlockchainError):
    """A single endpoint could not be used (client construction failed)."""

    def __init__(self, network: str, url: str, cause: BaseException | None = None) -> None:
        self.network = network
        self.url = url
        detail = f": {cause}" if cause else ""
        super().__init__(f"Endpoint {url} for {network} unavailable{detail}")


class InvalidTransactionIntent(BlockchainError, ValueError):
    """Transaction intent failed validation before any chain interaction."""
    pass


class SimulationRevert(BlockchainError):
    """Dry run predicts the transaction will fail on-chain."""

    def __init__(self, reason: RevertReason, message: str, raw_error: str | None = None) -> None:
        self.reason = reason
        self.message = message
        self.raw_error = raw_error
        super().__init__(message)


class SubmissionError(BlockchainError):
    """Broadcast rejected by every attempted endpoint."""

    def __init__(self, message: str, original: BaseException | None = None) -> None:
        self.original = original
        super().__init__(message)


class ConfirmationTimeout(BlockchainError):
    """Receipt not observed within the bounded wait; status stays pending."""

    def __init__(self, tx_hash: str, timeout: float) -> None:
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(
            f"Transaction {tx_hash} not confirmed after {timeout}s - still pending"
        )


class OnChainRevert(BlockchainError):
    """Transaction was mined but reverted (receipt status 0)."""

    def __init__(self, tx_hash: str, message: str | None = None) -> None:
        self.tx_hash = tx_hash
        super().__init__(message or f"Transaction {tx_hash} reverted on-chain")
