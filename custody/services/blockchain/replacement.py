"""
Cancel / speed-up of pending transactions.

Both resubmit with the SAME nonce and fees bumped to a percentage of the
current fee data, relying on the node's replace-by-fee rules. Cancel
sends zero value to self; speed-up resends the original parameters.

Neither detects the race with the original being mined first: the
caller gets whatever receipt eventually shows up for the new hash.
"""

from decimal import Decimal

from eth_account import Account
from loguru import logger

from custody.config.constants import FEE_BUMP_PERCENT, NATIVE_TRANSFER_GAS_LIMIT
from custody.services.blockchain.errors import InvalidTransactionIntent
from custody.services.blockchain.orchestrator import TransactionOrchestrator
from custody.services.blockchain.types import FeeData, SubmittedTransaction, TransactionIntent
from custody.utils.amounts import from_wei
from custody.utils.security import mask_tx_hash


class ReplacementService:
    """Replace-by-fee flows on top of the orchestrator."""

    def __init__(
        self,
        orchestrator: TransactionOrchestrator,
        fee_bump_percent: int = FEE_BUMP_PERCENT,
    ) -> None:
        """
        Initialize service.

        Args:
            orchestrator: Orchestrator used for signing and broadcast
            fee_bump_percent: Fee multiplier (150 = 150% of current fees)
        """
        self.orchestrator = orchestrator
        self.executor = orchestrator.executor
        self.fee_bump_percent = fee_bump_percent

    async def _bumped_fees(self, network: str) -> FeeData:
        fee_data = await self.orchestrator.gas_estimator.get_fee_data(network)
        return fee_data.scaled(self.fee_bump_percent)

    async def _lookup_original(self, network: str, tx_hash: str) -> dict:
        original = await self.executor.with_retry(
            network,
            lambda client: client.get_transaction(tx_hash),
            operation_name="get_transaction",
        )
        if original is None:
            raise InvalidTransactionIntent(f"Transaction not found: {tx_hash}")
        return original

    async def cancel(
        self,
        private_key: str,
        network: str,
        nonce: int | None = None,
        tx_hash: str | None = None,
        wait: bool = True,
    ) -> SubmittedTransaction:
        """
        Cancel a pending transaction by replacing it with a 0-value self-transfer.

        Args:
            private_key: Sender's private key
            network: Network name
            nonce: Nonce of the transaction to cancel
            tx_hash: Alternatively, the hash of the transaction to cancel
            wait: Wait (bounded) for the replacement's receipt

        Returns:
            The replacement transaction
        """
        if nonce is None:
            if not tx_hash:
                raise InvalidTransactionIntent("Either nonce or tx_hash is required")
            nonce = int((await self._lookup_original(network, tx_hash))["nonce"])

        address = Account.from_key(private_key).address
        intent = TransactionIntent(
            sender=address,
            recipient=address,
            value=Decimal(0),
            network=network,
            nonce=nonce,
        )
        intent.validate(allow_zero_value=True)

        fee_data = await self._bumped_fees(network)
        logger.info(
            f"[{network}] Cancelling nonce {nonce} with fees at {self.fee_bump_percent}%"
        )
        submitted = await self.orchestrator.sign_and_submit(
            intent, private_key, NATIVE_TRANSFER_GAS_LIMIT, fee_data
        )
        if wait:
            await self.orchestrator.wait_for_confirmation(submitted)
        return submitted

    async def speed_up(
        self,
        private_key: str,
        network: str,
        tx_hash: str,
        wait: bool = True,
    ) -> SubmittedTransaction:
        """
        Resubmit a pending transaction with bumped fees.

        The original's recipient, value, calldata, gas limit and nonce are
        looked up by hash and reused.

        Returns:
            The replacement transaction
        """
        original = await self._lookup_original(network, tx_hash)
        address = Account.from_key(private_key).address
        if str(original["from"]).lower() != address.lower():
            raise InvalidTransactionIntent("Transaction was not sent by this wallet")
        if original.get("to") is None:
            raise InvalidTransactionIntent("Contract creation cannot be sped up")

        calldata = original.get("input")
        if isinstance(calldata, (bytes, bytearray)):
            calldata = "0x" + bytes(calldata).hex()
        if calldata in (None, "", "0x"):
            calldata = None

        intent = TransactionIntent(
            sender=address,
            recipient=original["to"],
            value=from_wei(int(original.get("value", 0))),
            network=network,
            data=calldata,
            nonce=int(original["nonce"]),
        )
        intent.validate(allow_zero_value=True)

        fee_data = await self._bumped_fees(network)
        logger.info(
            f"[{network}] Speeding up {mask_tx_hash(tx_hash)} "
            f"(nonce {intent.nonce}) with fees at {self.fee_bump_percent}%"
        )
        submitted = await self.orchestrator.sign_and_submit(
            intent, private_key, int(original.get("gas") or NATIVE_TRANSFER_GAS_LIMIT), fee_data
        )
        if wait:
            await self.orchestrator.wait_for_confirmation(submitted)
        return submitted
