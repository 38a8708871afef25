"""Receipt and nonce queries by hash / address."""

from typing import Any

from custody.models.enums import TransactionStatus
from custody.services.blockchain.nonce_manager import NonceManager
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.types import hex_string


class ReceiptService:
    """Read-only transaction status lookups."""

    def __init__(self, executor: RetryExecutor, nonce_manager: NonceManager) -> None:
        self.executor = executor
        self.nonce_manager = nonce_manager

    async def get_receipt(self, network: str, tx_hash: str) -> dict[str, Any]:
        """
        Get the status of a transaction by hash.

        Args:
            network: Network name
            tx_hash: Transaction hash

        Returns:
            Dict with status "pending" while not mined, else the receipt
            fields and current confirmation count
        """
        receipt = await self.executor.with_retry(
            network,
            lambda client: client.get_transaction_receipt(tx_hash),
            operation_name="get_transaction_receipt",
        )
        if receipt is None:
            return {
                "hash": tx_hash,
                "status": TransactionStatus.PENDING.value,
                "confirmations": 0,
            }

        latest_block = await self.executor.with_retry(
            network,
            lambda client: client.get_block_number(),
            operation_name="get_block_number",
        )
        block_number = receipt.get("blockNumber")
        block_hash = receipt.get("blockHash")
        return {
            "hash": tx_hash,
            "status": (
                TransactionStatus.SUCCESS.value
                if receipt.get("status") == 1
                else TransactionStatus.FAILED.value
            ),
            "blockNumber": block_number,
            "blockHash": hex_string(block_hash) if block_hash is not None else None,
            "from": receipt.get("from"),
            "to": receipt.get("to"),
            "gasUsed": str(receipt.get("gasUsed")) if receipt.get("gasUsed") is not None else None,
            "effectiveGasPrice": (
                str(receipt["effectiveGasPrice"])
                if receipt.get("effectiveGasPrice") is not None
                else None
            ),
            "confirmations": (
                max(latest_block - block_number + 1, 1) if block_number is not None else 0
            ),
        }

    async def get_nonce(self, network: str, address: str) -> dict[str, int]:
        """Pending and confirmed nonce of an address."""
        pending = await self.nonce_manager.get_nonce(network, address, "pending")
        confirmed = await self.nonce_manager.get_nonce(network, address, "latest")
        return {"nonce": pending, "confirmedNonce": confirmed, "pendingCount": pending - confirmed}
