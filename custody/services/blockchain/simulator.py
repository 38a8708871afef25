"""
Transaction simulation.

Dry run via eth_call with the intent's parameters. A revert is turned
into a SimulationResult with a classified reason; an unreachable network
is not a revert and propagates.
"""

from loguru import logger

from custody.services.blockchain.errors import EndpointUnavailable
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.revert_reasons import classify_revert
from custody.services.blockchain.types import SimulationResult, TransactionIntent
from custody.utils.exceptions import is_transport_error


def is_infrastructure_error(exc: BaseException) -> bool:
    """Check if an error says nothing about the transaction itself."""
    return is_transport_error(exc) or isinstance(exc, EndpointUnavailable)


class TransactionSimulator:
    """Predicts whether an intent would revert."""

    def __init__(self, executor: RetryExecutor) -> None:
        self.executor = executor

    async def simulate(
        self, intent: TransactionIntent, gas_limit: int | None = None
    ) -> SimulationResult:
        """
        Simulate a transaction.

        Args:
            intent: Validated transaction intent
            gas_limit: Gas figure from the estimating step, echoed back as
                the predicted usage. Estimated here when missing.

        Returns:
            SimulationResult (success, or classified failure)

        Raises:
            Exception: Transport errors after every endpoint failed
        """
        params = intent.to_call_params()
        if gas_limit is not None:
            params["gas"] = gas_limit

        try:
            await self.executor.with_retry(
                intent.network,
                lambda client: client.call(params),
                operation_name="eth_call",
            )
            if gas_limit is None:
                gas_limit = await self.executor.with_retry(
                    intent.network,
                    lambda client: client.estimate_gas(intent.to_call_params()),
                    operation_name="estimate_gas",
                )
        except Exception as e:
            if is_infrastructure_error(e):
                raise
            reason, message = classify_revert(e)
            logger.warning(
                f"[{intent.network}] Simulation predicts failure ({reason}): {message}"
            )
            return SimulationResult(success=False, reason=reason, message=message)

        return SimulationResult(success=True, gas_used=gas_limit)
