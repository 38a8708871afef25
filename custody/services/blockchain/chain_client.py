"""
Chain client capability interface.

ChainClient is the narrow set of JSON-RPC capabilities the transaction
core needs. Web3ChainClient implements it over AsyncWeb3 with an HTTP
provider bound to one endpoint URL; tests substitute a fake.
"""

from typing import Any, Protocol, runtime_checkable

import aiohttp
from loguru import logger
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound
from web3.middleware import ExtraDataToPOAMiddleware

from custody.config.constants import BLOCKCHAIN_RPC_TIMEOUT
from custody.services.blockchain.types import FeeData


@runtime_checkable
class ChainClient(Protocol):
    """Capabilities required from a connected chain client."""

    url: str
    chain_id: int

    async def estimate_gas(self, params: dict[str, Any]) -> int: ...

    async def call(self, params: dict[str, Any], block: str = "latest") -> bytes: ...

    async def get_fee_data(self) -> FeeData: ...

    async def send_raw_transaction(self, raw_transaction: bytes) -> str: ...

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None: ...

    async def get_transaction_count(self, address: str, block: str = "pending") -> int: ...

    async def get_transaction(self, tx_hash: str) -> dict[str, Any] | None: ...

    async def get_block_number(self) -> int: ...

    async def get_balance(self, address: str) -> int: ...

    async def call_function(
        self, address: str, abi: list[dict[str, Any]], fn_name: str, *args: Any
    ) -> Any: ...


class Web3ChainClient:
    """
    ChainClient over AsyncWeb3 + AsyncHTTPProvider.

    Construction does not touch the network; the first RPC call does.
    """

    def __init__(
        self,
        url: str,
        chain_id: int,
        timeout: float = BLOCKCHAIN_RPC_TIMEOUT,
    ) -> None:
        """
        Initialize client.

        Args:
            url: HTTP JSON-RPC endpoint
            chain_id: Expected chain id
            timeout: Total HTTP timeout per request in seconds
        """
        self.url = url
        self.chain_id = chain_id
        self.w3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=timeout)},
                # Failover across endpoints is the only retry layer
                exception_retry_configuration=None,
            )
        )
        # PoA chains (polygon) return oversized extraData in block headers
        self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    def __repr__(self) -> str:
        return f"<Web3ChainClient(url={self.url}, chain_id={self.chain_id})>"

    async def estimate_gas(self, params: dict[str, Any]) -> int:
        return int(await self.w3.eth.estimate_gas(params))

    async def call(self, params: dict[str, Any], block: str = "latest") -> bytes:
        return bytes(await self.w3.eth.call(params, block))

    async def get_fee_data(self) -> FeeData:
        """
        Get current fee data.

        EIP-1559 chains get max fee = 2 * base fee + priority fee. Chains
        without a base fee fall back to the legacy gas price.
        """
        gas_price = int(await self.w3.eth.gas_price)
        block = await self.w3.eth.get_block("latest")
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            return FeeData(gas_price=gas_price)

        priority_fee = int(await self.w3.eth.max_priority_fee)
        return FeeData(
            gas_price=gas_price,
            max_fee_per_gas=int(base_fee) * 2 + priority_fee,
            max_priority_fee_per_gas=priority_fee,
        )

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        tx_hash = await self.w3.eth.send_raw_transaction(raw_transaction)
        return self.w3.to_hex(tx_hash)

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        """Get receipt, or None while the transaction is not mined."""
        try:
            receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        return dict(receipt)

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return int(await self.w3.eth.get_transaction_count(address, block))

    async def get_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        try:
            tx = await self.w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None
        return dict(tx)

    async def get_block_number(self) -> int:
        return int(await self.w3.eth.block_number)

    async def get_balance(self, address: str) -> int:
        return int(await self.w3.eth.get_balance(address))

    async def call_function(
        self, address: str, abi: list[dict[str, Any]], fn_name: str, *args: Any
    ) -> Any:
        """Call a read-only contract function."""
        contract = self.w3.eth.contract(address=address, abi=abi)
        return await getattr(contract.functions, fn_name)(*args).call()


def create_web3_client(url: str, chain_id: int, timeout: float) -> ChainClient:
    """Default client factory used by the endpoint pool."""
    logger.debug(f"Creating chain client for {url} (chain_id={chain_id})")
    return Web3ChainClient(url, chain_id, timeout=timeout)
