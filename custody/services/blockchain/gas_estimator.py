"""
Gas estimation.

Buffered gas limit, current fee data and advisory speed tiers, all read
through the retry executor.
"""

from loguru import logger

from custody.config.constants import GAS_BUFFER_PERCENT, SPEED_TIERS
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.types import FeeData, GasEstimate, TransactionIntent
from custody.utils.amounts import format_amount


def apply_gas_buffer(gas_estimate: int, buffer_percent: int = GAS_BUFFER_PERCENT) -> int:
    """
    Add a safety buffer to a gas estimate.

    Examples:
        >>> apply_gas_buffer(21000)
        25200
    """
    return gas_estimate * (100 + buffer_percent) // 100


def build_speed_tiers(gas_limit: int, fee_data: FeeData) -> dict[str, dict[str, str]]:
    """
    Build slow / standard / fast fee options.

    Advisory output only; the orchestrator signs with the standard quote
    unless the caller passes explicit fees.
    """
    tiers: dict[str, dict[str, str]] = {}
    for name, (percent, estimated_time) in SPEED_TIERS.items():
        scaled = fee_data.scaled(percent)
        tier = {
            "estimatedTime": estimated_time,
            "cost": format_amount(gas_limit * scaled.effective_price),
        }
        if scaled.is_eip1559:
            tier["maxFeePerGas"] = str(scaled.max_fee_per_gas)
            tier["maxPriorityFeePerGas"] = str(scaled.max_priority_fee_per_gas)
        else:
            tier["gasPrice"] = str(scaled.gas_price or 0)
        tiers[name] = tier
    return tiers


class GasEstimator:
    """Gas limit and fee quotes for transaction intents."""

    def __init__(
        self,
        executor: RetryExecutor,
        gas_buffer_percent: int = GAS_BUFFER_PERCENT,
    ) -> None:
        self.executor = executor
        self.gas_buffer_percent = gas_buffer_percent

    async def estimate_gas(self, intent: TransactionIntent) -> int:
        """Raw eth_estimateGas for the intent (no buffer)."""
        params = intent.to_call_params()
        return await self.executor.with_retry(
            intent.network,
            lambda client: client.estimate_gas(params),
            operation_name="estimate_gas",
        )

    async def get_fee_data(self, network: str) -> FeeData:
        """Current fee data (EIP-1559 when available, else legacy)."""
        return await self.executor.with_retry(
            network,
            lambda client: client.get_fee_data(),
            operation_name="get_fee_data",
        )

    async def estimate(self, intent: TransactionIntent) -> GasEstimate:
        """
        Estimate gas for an intent.

        Args:
            intent: Validated transaction intent

        Returns:
            GasEstimate with buffered limit, fee data and speed tiers

        Raises:
            Exception: Last chain error if every attempt failed
        """
        gas_estimate = await self.estimate_gas(intent)
        gas_limit = apply_gas_buffer(gas_estimate, self.gas_buffer_percent)
        fee_data = await self.get_fee_data(intent.network)

        logger.debug(
            f"[{intent.network}] Gas estimate {gas_estimate} -> limit {gas_limit} "
            f"(+{self.gas_buffer_percent}%), fee {fee_data.effective_price} wei"
        )

        return GasEstimate(
            gas_estimate=gas_estimate,
            gas_limit=gas_limit,
            fee_data=fee_data,
            speeds=build_speed_tiers(gas_limit, fee_data),
        )
