"""
Blockchain layer.

Endpoint failover, retries and the transaction lifecycle.
"""

from custody.services.blockchain.chain_client import ChainClient, Web3ChainClient
from custody.services.blockchain.endpoint_pool import EndpointPool, NetworkEndpointSet
from custody.services.blockchain.errors import (
    BlockchainError,
    ConfigurationError,
    ConfirmationTimeout,
    EndpointUnavailable,
    InvalidTransactionIntent,
    OnChainRevert,
    SimulationRevert,
    SubmissionError,
)
from custody.services.blockchain.gas_estimator import GasEstimator
from custody.services.blockchain.nonce_manager import NonceManager, SenderLocks
from custody.services.blockchain.orchestrator import (
    TransactionLifecycle,
    TransactionOrchestrator,
)
from custody.services.blockchain.receipt_service import ReceiptService
from custody.services.blockchain.replacement import ReplacementService
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.revert_reasons import RevertReason, classify_revert
from custody.services.blockchain.simulator import TransactionSimulator
from custody.services.blockchain.types import (
    FeeData,
    GasEstimate,
    SimulationResult,
    SubmittedTransaction,
    TransactionIntent,
    TransactionState,
)

__all__ = [
    "BlockchainError",
    "ChainClient",
    "ConfigurationError",
    "ConfirmationTimeout",
    "EndpointPool",
    "EndpointUnavailable",
    "FeeData",
    "GasEstimate",
    "GasEstimator",
    "InvalidTransactionIntent",
    "NetworkEndpointSet",
    "NonceManager",
    "OnChainRevert",
    "ReceiptService",
    "ReplacementService",
    "RetryExecutor",
    "RevertReason",
    "SenderLocks",
    "SimulationResult",
    "SimulationRevert",
    "SubmissionError",
    "SubmittedTransaction",
    "TransactionIntent",
    "TransactionLifecycle",
    "TransactionOrchestrator",
    "TransactionSimulator",
    "TransactionState",
    "Web3ChainClient",
    "classify_revert",
]
