"""
Wallet service.

Balance and gas price reads through the retry executor.
"""

from typing import Any

from eth_utils import is_address, to_checksum_address

from custody.config.constants import ERC20_ABI
from custody.config.networks import NetworkConfig
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.utils.amounts import format_amount, to_gwei


class WalletService:
    """Read-only wallet queries."""

    def __init__(self, executor: RetryExecutor, networks: dict[str, NetworkConfig]) -> None:
        self.executor = executor
        self.networks = networks

    async def get_balance(self, network: str, address: str) -> dict[str, Any]:
        """
        Get native balance.

        Args:
            network: Network name
            address: Wallet address

        Returns:
            Dict with address, balance (decimal string), balanceWei, symbol
        """
        if not is_address(address):
            raise ValueError(f"Invalid address: {address!r}")
        checksum = to_checksum_address(address)

        balance_wei = await self.executor.with_retry(
            network,
            lambda client: client.get_balance(checksum),
            operation_name="get_balance",
        )
        config = self.networks.get(network)
        return {
            "address": checksum,
            "network": network,
            "balance": format_amount(balance_wei),
            "balanceWei": str(balance_wei),
            "symbol": config.native_symbol if config else "ETH",
        }

    async def get_token_balance(
        self, network: str, token_address: str, address: str
    ) -> dict[str, Any]:
        """Get ERC-20 balance with the token's decimals and symbol."""
        if not is_address(address) or not is_address(token_address):
            raise ValueError("Invalid address")
        token = to_checksum_address(token_address)
        owner = to_checksum_address(address)

        async def read(client):
            balance = await client.call_function(token, ERC20_ABI, "balanceOf", owner)
            decimals = await client.call_function(token, ERC20_ABI, "decimals")
            symbol = await client.call_function(token, ERC20_ABI, "symbol")
            return int(balance), int(decimals), symbol

        balance, decimals, symbol = await self.executor.with_retry(
            network, read, operation_name="erc20_balance"
        )
        return {
            "address": owner,
            "token": token,
            "symbol": symbol,
            "decimals": decimals,
            "balance": format_amount(balance, decimals),
            "balanceRaw": str(balance),
        }

    async def get_gas_prices(self, network: str) -> dict[str, Any]:
        """Current gas prices in gwei (legacy and EIP-1559 when available)."""
        fee_data = await self.executor.with_retry(
            network,
            lambda client: client.get_fee_data(),
            operation_name="get_fee_data",
        )
        result: dict[str, Any] = {
            "network": network,
            "gasPrice": format(to_gwei(fee_data.gas_price), "f") if fee_data.gas_price else None,
            "eip1559": fee_data.is_eip1559,
        }
        if fee_data.is_eip1559:
            result["maxFeePerGas"] = format(to_gwei(fee_data.max_fee_per_gas), "f")
            result["maxPriorityFeePerGas"] = format(
                to_gwei(fee_data.max_priority_fee_per_gas), "f"
            )
        return result
