"""
Transaction Orchestrator.

Drives one transaction intent through

    CREATED -> ESTIMATING -> SIMULATING -> SIGNING -> SUBMITTED -> CONFIRMED

with FAILED reachable from any step before broadcast. Steps are strictly
sequential. Every chain call goes through the RetryExecutor; the
orchestrator itself never retries.

Once a transaction is broadcast nothing can undo it: errors after that
point degrade to a pending result instead of a failure.
"""

import asyncio
from typing import Any

from eth_account import Account
from loguru import logger

from custody.config.constants import RECEIPT_POLL_INTERVAL, RECEIPT_TIMEOUT
from custody.models.enums import TransactionStatus
from custody.services.blockchain.errors import (
    ConfirmationTimeout,
    InvalidTransactionIntent,
    SimulationRevert,
    SubmissionError,
)
from custody.services.blockchain.gas_estimator import GasEstimator, apply_gas_buffer
from custody.services.blockchain.nonce_manager import NonceManager, SenderLocks
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.revert_reasons import classify_revert
from custody.services.blockchain.simulator import (
    TransactionSimulator,
    is_infrastructure_error,
)
from custody.services.blockchain.types import (
    FeeData,
    GasEstimate,
    SimulationResult,
    SubmittedTransaction,
    TransactionIntent,
    TransactionState,
)
from custody.utils.security import mask_address, mask_tx_hash

# Allowed forward transitions; FAILED is reachable from every non-terminal state
_TRANSITIONS = {
    TransactionState.CREATED: {TransactionState.ESTIMATING},
    TransactionState.ESTIMATING: {TransactionState.SIMULATING},
    TransactionState.SIMULATING: {TransactionState.SIGNING},
    TransactionState.SIGNING: {TransactionState.SUBMITTED},
    TransactionState.SUBMITTED: {TransactionState.CONFIRMED},
    TransactionState.CONFIRMED: set(),
    TransactionState.FAILED: set(),
}


class TransactionLifecycle:
    """State tracker for a single intent."""

    def __init__(self, label: str = "") -> None:
        self.label = label
        self.state = TransactionState.CREATED
        self.history: list[TransactionState] = [TransactionState.CREATED]
        self.error: BaseException | None = None

    def advance(self, state: TransactionState) -> None:
        if state is not TransactionState.FAILED and state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state} -> {state}")
        if state is TransactionState.FAILED and not _TRANSITIONS[self.state]:
            raise RuntimeError(f"Cannot fail from terminal state {self.state}")
        logger.debug(f"[{self.label}] {self.state} -> {state}")
        self.state = state
        self.history.append(state)

    def fail(self, error: BaseException) -> None:
        self.error = error
        self.advance(TransactionState.FAILED)


class TransactionOrchestrator:
    """
    Runs the estimate / simulate / sign / submit / confirm sequence.

    Features:
    - Buffered gas limit and EIP-1559 or legacy fees
    - Simulation gate before any gas is spent
    - Local signing (private key never leaves process memory)
    - Per-sender serialization of nonce read + sign + broadcast
    - Bounded receipt wait with pending fallback
    """

    def __init__(
        self,
        executor: RetryExecutor,
        gas_estimator: GasEstimator,
        simulator: TransactionSimulator,
        nonce_manager: NonceManager,
        sender_locks: SenderLocks | None = None,
        receipt_timeout: float = RECEIPT_TIMEOUT,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            executor: Retry executor shared with the rest of the chain layer
            gas_estimator: Gas and fee quotes
            simulator: Dry-run service
            nonce_manager: Account nonce reads
            sender_locks: Per-sender locks (shared process-wide)
            receipt_timeout: Max seconds to wait for a receipt
            poll_interval: Seconds between receipt polls
        """
        self.executor = executor
        self.gas_estimator = gas_estimator
        self.simulator = simulator
        self.nonce_manager = nonce_manager
        self.sender_locks = sender_locks or SenderLocks()
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval

    # ------------------------------------------------------------------
    # Read-only steps
    # ------------------------------------------------------------------

    async def estimate(self, intent: TransactionIntent) -> GasEstimate:
        """
        Estimate gas for an intent.

        Raises:
            InvalidTransactionIntent: Intent failed validation
            SimulationRevert: Node rejected the estimate (transaction would fail)
        """
        intent.validate()
        try:
            return await self.gas_estimator.estimate(intent)
        except Exception as e:
            if is_infrastructure_error(e):
                raise
            reason, message = classify_revert(e)
            raise SimulationRevert(reason, message, raw_error=str(e)) from e

    async def simulate(self, intent: TransactionIntent) -> SimulationResult:
        """Dry-run an intent without spending gas."""
        intent.validate()
        return await self.simulator.simulate(intent, gas_limit=intent.gas_limit)

    # ------------------------------------------------------------------
    # Full lifecycle
    # ------------------------------------------------------------------

    async def execute(
        self,
        intent: TransactionIntent,
        private_key: str,
        force: bool = False,
        wait: bool = True,
        lifecycle: TransactionLifecycle | None = None,
    ) -> SubmittedTransaction:
        """
        Execute a transaction intent end to end.

        Args:
            intent: Transaction intent
            private_key: Sender's decrypted private key (never logged)
            force: Broadcast even if simulation predicts a revert
            wait: Wait for the receipt (bounded); False returns right after broadcast
            lifecycle: Optional tracker, useful to observe state transitions

        Returns:
            SubmittedTransaction with status success, failed or pending

        Raises:
            InvalidTransactionIntent: Validation failed (nothing sent)
            SimulationRevert: Predicted revert and force is False (nothing sent)
            SubmissionError: Every broadcast attempt was rejected (nothing sent)
        """
        lifecycle = lifecycle or TransactionLifecycle(
            f"{intent.network}:{mask_address(intent.sender)}"
        )

        try:
            intent.validate()

            lifecycle.advance(TransactionState.ESTIMATING)
            gas_limit, fee_data = await self._resolve_gas(intent)

            lifecycle.advance(TransactionState.SIMULATING)
            simulation = await self.simulator.simulate(intent, gas_limit=gas_limit)
            if not simulation.success:
                if not force:
                    raise SimulationRevert(
                        simulation.reason, simulation.message or "Transaction will fail"
                    )
                logger.warning(
                    f"[{lifecycle.label}] Simulation failed ({simulation.reason}), "
                    f"broadcasting anyway (force=True)"
                )

            lifecycle.advance(TransactionState.SIGNING)
            submitted = await self.sign_and_submit(
                intent, private_key, gas_limit, fee_data, lifecycle=lifecycle
            )
        except Exception as e:
            if lifecycle.state is not TransactionState.FAILED:
                lifecycle.fail(e)
            logger.error(
                f"[{lifecycle.label}] Transaction aborted before broadcast: "
                f"{type(e).__name__}: {e}"
            )
            raise

        if not wait:
            return submitted

        await self.wait_for_confirmation(submitted)
        if not submitted.is_pending:
            lifecycle.advance(TransactionState.CONFIRMED)
        return submitted

    async def _resolve_gas(self, intent: TransactionIntent) -> tuple[int, FeeData]:
        """Gas limit and fees: explicit intent values win over quotes."""
        if intent.gas_limit is not None:
            gas_limit = intent.gas_limit
        else:
            try:
                gas_limit = apply_gas_buffer(
                    await self.gas_estimator.estimate_gas(intent),
                    self.gas_estimator.gas_buffer_percent,
                )
            except Exception as e:
                if is_infrastructure_error(e):
                    raise
                reason, message = classify_revert(e)
                raise SimulationRevert(reason, message, raw_error=str(e)) from e

        if intent.max_fee_per_gas is not None and intent.max_priority_fee_per_gas is not None:
            fee_data = FeeData(
                max_fee_per_gas=intent.max_fee_per_gas,
                max_priority_fee_per_gas=intent.max_priority_fee_per_gas,
            )
        else:
            quoted = await self.gas_estimator.get_fee_data(intent.network)
            if quoted.is_eip1559:
                fee_data = FeeData(
                    gas_price=quoted.gas_price,
                    max_fee_per_gas=intent.max_fee_per_gas or quoted.max_fee_per_gas,
                    max_priority_fee_per_gas=(
                        intent.max_priority_fee_per_gas or quoted.max_priority_fee_per_gas
                    ),
                )
            else:
                fee_data = quoted

        return gas_limit, fee_data

    async def sign_and_submit(
        self,
        intent: TransactionIntent,
        private_key: str,
        gas_limit: int,
        fee_data: FeeData,
        lifecycle: TransactionLifecycle | None = None,
    ) -> SubmittedTransaction:
        """
        Sign locally and broadcast.

        The nonce read, signing and broadcast run under the sender's lock
        so concurrent sends from one wallet get consecutive nonces.

        Raises:
            InvalidTransactionIntent: Private key does not control the sender
            SubmissionError: Broadcast rejected by every attempted endpoint
        """
        account = Account.from_key(private_key)
        if account.address.lower() != intent.sender.lower():
            raise InvalidTransactionIntent("Private key does not match sender address")

        network = intent.network
        async with self.sender_locks.get(network, intent.sender):
            if intent.nonce is not None:
                nonce = intent.nonce
            else:
                nonce = await self.nonce_manager.get_safe_nonce(network, intent.sender)

            tx = self._build_transaction(intent, gas_limit, fee_data, nonce)
            signed = account.sign_transaction(tx)
            raw_transaction = signed.raw_transaction
            local_hash = "0x" + bytes(signed.hash).hex()

            try:
                tx_hash = await self.executor.with_retry(
                    network,
                    lambda client: client.send_raw_transaction(raw_transaction),
                    operation_name="send_raw_transaction",
                )
            except Exception as e:
                # A retry after a lost response hits the node's duplicate check
                if "already known" in str(e).lower():
                    tx_hash = local_hash
                    logger.info(
                        f"[{network}] Broadcast already accepted: {mask_tx_hash(tx_hash)}"
                    )
                else:
                    raise SubmissionError(str(e), original=e) from e

        submitted = SubmittedTransaction(
            hash=tx_hash.lower() if tx_hash.startswith("0x") else f"0x{tx_hash.lower()}",
            sender=intent.sender_checksum,
            recipient=intent.recipient_checksum,
            value_wei=intent.value_wei,
            network=network,
            nonce=nonce,
        )
        if lifecycle is not None:
            lifecycle.advance(TransactionState.SUBMITTED)

        logger.info(
            f"[{network}] Transaction sent: {mask_tx_hash(submitted.hash)} "
            f"nonce={nonce} gas={gas_limit} from {mask_address(intent.sender)}"
        )
        return submitted

    def _build_transaction(
        self,
        intent: TransactionIntent,
        gas_limit: int,
        fee_data: FeeData,
        nonce: int,
    ) -> dict[str, Any]:
        tx: dict[str, Any] = {
            "chainId": self.executor.pool.chain_id(intent.network),
            "nonce": nonce,
            "to": intent.recipient_checksum,
            "value": intent.value_wei,
            "gas": gas_limit,
            "data": intent.data or "0x",
        }
        if fee_data.is_eip1559:
            tx["type"] = 2
            tx["maxFeePerGas"] = fee_data.max_fee_per_gas
            tx["maxPriorityFeePerGas"] = min(
                fee_data.max_priority_fee_per_gas, fee_data.max_fee_per_gas
            )
        else:
            tx["gasPrice"] = fee_data.gas_price or 0
        return tx

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def wait_for_confirmation(
        self,
        submitted: SubmittedTransaction,
        timeout: float | None = None,
    ) -> SubmittedTransaction:
        """
        Wait (bounded) for the receipt and apply it.

        A timeout or an unreachable network leaves the transaction pending;
        callers can re-query the receipt by hash later.

        Returns:
            The same SubmittedTransaction, updated in place
        """
        wait = timeout if timeout is not None else self.receipt_timeout
        try:
            receipt = await self._wait_for_receipt(submitted.network, submitted.hash, wait)
        except ConfirmationTimeout as e:
            logger.warning(str(e))
            return submitted
        except Exception as e:
            logger.warning(
                f"[{submitted.network}] Receipt lookup failed for "
                f"{mask_tx_hash(submitted.hash)}, leaving pending: {e}"
            )
            return submitted

        latest_block = await self._latest_block(submitted.network)
        submitted.apply_receipt(receipt, latest_block)

        if submitted.status is TransactionStatus.SUCCESS:
            logger.success(
                f"[{submitted.network}] Transaction confirmed: {mask_tx_hash(submitted.hash)} "
                f"block={submitted.block_number} gas_used={submitted.gas_used}"
            )
        else:
            logger.error(
                f"[{submitted.network}] Transaction reverted on-chain: "
                f"{mask_tx_hash(submitted.hash)} block={submitted.block_number}"
            )
        return submitted

    async def _wait_for_receipt(
        self, network: str, tx_hash: str, timeout: float
    ) -> dict[str, Any]:
        async def poll() -> dict[str, Any]:
            while True:
                receipt = await self.executor.with_retry(
                    network,
                    lambda client: client.get_transaction_receipt(tx_hash),
                    operation_name="get_transaction_receipt",
                )
                if receipt is not None:
                    return receipt
                await asyncio.sleep(self.poll_interval)

        try:
            return await asyncio.wait_for(poll(), timeout=timeout)
        except TimeoutError as e:
            raise ConfirmationTimeout(tx_hash, timeout) from e

    async def _latest_block(self, network: str) -> int | None:
        try:
            return await self.executor.with_retry(
                network,
                lambda client: client.get_block_number(),
                operation_name="get_block_number",
            )
        except Exception as e:
            logger.debug(f"[{network}] Block number unavailable for confirmations: {e}")
            return None
