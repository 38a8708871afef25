"""Unit tests for the transaction orchestrator."""

import asyncio
from decimal import Decimal

import pytest
from web3.exceptions import BadResponseFormat, Web3RPCError

from custody.models.enums import TransactionStatus
from custody.services.blockchain.errors import (
    InvalidTransactionIntent,
    SimulationRevert,
    SubmissionError,
)
from custody.services.blockchain.orchestrator import TransactionLifecycle
from custody.services.blockchain.revert_reasons import RevertReason
from custody.services.blockchain.types import FeeData, TransactionIntent, TransactionState
from custody.utils.exceptions import is_transport_error

GWEI = 10**9


@pytest.fixture
def intent(sender_address, recipient_address):
    return TransactionIntent(
        sender=sender_address,
        recipient=recipient_address,
        value="0.5",
        network="testnet",
    )


class TestOrchestratorExecute:
    """Full estimate / simulate / sign / submit / confirm flow."""

    @pytest.mark.asyncio
    async def test_value_round_trips_exactly(self, orchestrator, intent, sender_key, chain):
        """Submitted value equals the decimal input with no drift."""
        submitted = await orchestrator.execute(intent, sender_key)

        assert submitted.value == Decimal("0.5")
        assert submitted.value_wei == 500_000_000_000_000_000
        assert submitted.status is TransactionStatus.SUCCESS
        assert submitted.hash == chain.sent[0][0]
        assert submitted.confirmations == 1

    @pytest.mark.asyncio
    async def test_lifecycle_states(self, orchestrator, intent, sender_key):
        lifecycle = TransactionLifecycle("test")
        await orchestrator.execute(intent, sender_key, lifecycle=lifecycle)

        assert lifecycle.history == [
            TransactionState.CREATED,
            TransactionState.ESTIMATING,
            TransactionState.SIMULATING,
            TransactionState.SIGNING,
            TransactionState.SUBMITTED,
            TransactionState.CONFIRMED,
        ]

    @pytest.mark.asyncio
    async def test_insufficient_funds_blocks_broadcast(
        self, orchestrator, sender_address, recipient_address, sender_key, chain
    ):
        """Simulation predicts insufficient funds: nothing is sent."""
        chain.call_error = ValueError("insufficient funds for gas * price + value")
        intent = TransactionIntent(
            sender=sender_address,
            recipient=recipient_address,
            value="100",
            network="testnet",
        )
        lifecycle = TransactionLifecycle("test")

        with pytest.raises(SimulationRevert) as exc_info:
            await orchestrator.execute(intent, sender_key, lifecycle=lifecycle)

        assert exc_info.value.reason is RevertReason.INSUFFICIENT_FUNDS
        assert exc_info.value.message == "Insufficient balance to complete transaction"
        assert chain.sent == []
        assert lifecycle.state is TransactionState.FAILED

    @pytest.mark.asyncio
    async def test_estimate_revert_is_a_simulation_revert(
        self, orchestrator, intent, sender_key, chain
    ):
        chain.estimate_error = ValueError("execution reverted: PAUSED")

        with pytest.raises(SimulationRevert) as exc_info:
            await orchestrator.execute(intent, sender_key, force=True)

        assert exc_info.value.message == "PAUSED"
        assert chain.sent == []

    @pytest.mark.asyncio
    async def test_force_broadcasts_despite_failed_simulation(
        self, orchestrator, intent, sender_key, chain
    ):
        chain.call_error = ValueError("execution reverted")

        submitted = await orchestrator.execute(intent, sender_key, force=True)

        assert len(chain.sent) == 1
        assert submitted.hash == chain.sent[0][0]

    @pytest.mark.asyncio
    async def test_explicit_gas_limit_skips_estimation(
        self, orchestrator, sender_address, recipient_address, sender_key, chain
    ):
        chain.estimate_error = ValueError("estimate unavailable")
        intent = TransactionIntent(
            sender=sender_address,
            recipient=recipient_address,
            value="0.1",
            network="testnet",
            gas_limit=30000,
        )

        submitted = await orchestrator.execute(intent, sender_key)

        assert submitted.status is TransactionStatus.SUCCESS
        assert not any(method == "estimate_gas" for _, method in chain.calls)

    @pytest.mark.asyncio
    async def test_unreachable_network_is_not_a_revert(
        self, orchestrator, intent, sender_key, chain
    ):
        """Transport errors propagate raw instead of being classified."""
        for url in ("https://rpc-a.test", "https://rpc-b.test", "https://rpc-c.test"):
            chain.failing_urls[url] = ConnectionError(f"{url} refused")

        with pytest.raises(ConnectionError):
            await orchestrator.execute(intent, sender_key)

    @pytest.mark.asyncio
    async def test_malformed_endpoint_response_is_not_a_revert(
        self, orchestrator, intent, sender_key, chain
    ):
        """Garbage from every endpoint fails over and surfaces raw."""
        for url in ("https://rpc-a.test", "https://rpc-b.test", "https://rpc-c.test"):
            chain.failing_urls[url] = BadResponseFormat(f"{url} returned html")

        with pytest.raises(BadResponseFormat):
            await orchestrator.simulate(intent)
        with pytest.raises(BadResponseFormat):
            await orchestrator.execute(intent, sender_key)
        assert chain.sent == []

    @pytest.mark.asyncio
    async def test_wrong_key_is_rejected(self, orchestrator, recipient_address, chain):
        intent = TransactionIntent(
            sender=recipient_address,
            recipient=recipient_address,
            value="0.1",
            network="testnet",
        )
        other_key = "0x" + "11" * 32

        with pytest.raises(InvalidTransactionIntent):
            await orchestrator.execute(intent, other_key)
        assert chain.sent == []

    @pytest.mark.asyncio
    async def test_invalid_intent_touches_no_endpoint(self, orchestrator, sender_key, chain):
        intent = TransactionIntent(
            sender="0xnope", recipient="0xnope", value="1", network="testnet"
        )
        with pytest.raises(InvalidTransactionIntent):
            await orchestrator.execute(intent, sender_key)
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_rejected_broadcast_raises_submission_error(
        self, orchestrator, intent, sender_key, chain
    ):
        chain.send_error = ValueError("nonce too low")

        with pytest.raises(SubmissionError) as exc_info:
            await orchestrator.execute(intent, sender_key)

        assert exc_info.value.original is chain.send_error

    @pytest.mark.asyncio
    async def test_already_known_counts_as_accepted(
        self, orchestrator, intent, sender_key, chain
    ):
        """A duplicate broadcast keeps the locally computed hash."""
        chain.send_error = ValueError("already known")

        submitted = await orchestrator.execute(intent, sender_key, wait=False)

        assert submitted.hash.startswith("0x")
        assert len(submitted.hash) == 66
        assert submitted.is_pending

    @pytest.mark.asyncio
    async def test_receipt_timeout_leaves_pending(self, orchestrator, intent, sender_key, chain):
        """No receipt within the bounded wait: pending, hash still returned."""
        chain.auto_mine = False

        submitted = await orchestrator.execute(intent, sender_key)

        assert submitted.status is TransactionStatus.PENDING
        assert submitted.hash == chain.sent[0][0]

    @pytest.mark.asyncio
    async def test_reverted_receipt_is_failed(self, orchestrator, intent, sender_key, chain):
        chain.mine_status = 0

        submitted = await orchestrator.execute(intent, sender_key)

        assert submitted.status is TransactionStatus.FAILED
        assert submitted.block_number is not None

    @pytest.mark.asyncio
    async def test_sender_balance_debited_by_value_plus_gas(
        self, orchestrator, executor, intent, sender_key, sender_address, chain
    ):
        chain.track_balances = True
        chain.balances[sender_address.lower()] = 10**18

        await orchestrator.execute(intent, sender_key)
        balance = await executor.with_retry("testnet", lambda c: c.get_balance(sender_address))

        assert balance == 10**18 - 5 * 10**17 - 21000 * 12 * GWEI


class TestNonceSerialization:
    """Per-sender serialization of nonce read + broadcast."""

    @pytest.mark.asyncio
    async def test_sequential_sends_use_consecutive_nonces(
        self, orchestrator, intent, sender_key
    ):
        first = await orchestrator.execute(intent, sender_key, wait=False)
        second = await orchestrator.execute(intent, sender_key, wait=False)
        assert (first.nonce, second.nonce) == (0, 1)

    @pytest.mark.asyncio
    async def test_concurrent_sends_never_share_a_nonce(
        self, orchestrator, intent, sender_key
    ):
        results = await asyncio.gather(
            *(orchestrator.execute(intent, sender_key, wait=False) for _ in range(3))
        )
        assert sorted(tx.nonce for tx in results) == [0, 1, 2]
        assert len({tx.hash for tx in results}) == 3


class TestOrchestratorReads:
    """Estimate and simulate without broadcasting."""

    @pytest.mark.asyncio
    async def test_estimate_applies_buffer(self, orchestrator, intent):
        estimate = await orchestrator.estimate(intent)

        assert estimate.gas_estimate == 21000
        assert estimate.gas_limit == 25200
        assert set(estimate.speeds) == {"slow", "standard", "fast"}

    @pytest.mark.asyncio
    async def test_simulate_reports_failure_without_raising(self, orchestrator, intent, chain):
        chain.call_error = ValueError("insufficient funds for transfer")

        result = await orchestrator.simulate(intent)

        assert result.success is False
        assert result.reason is RevertReason.INSUFFICIENT_FUNDS
        assert chain.sent == []

    def test_build_dynamic_fee_transaction(self, orchestrator, intent):
        fees = FeeData(max_fee_per_gas=30 * GWEI, max_priority_fee_per_gas=2 * GWEI)
        tx = orchestrator._build_transaction(intent, 25200, fees, nonce=7)

        assert tx["type"] == 2
        assert tx["chainId"] == 11155111
        assert tx["maxFeePerGas"] == 30 * GWEI
        assert "gasPrice" not in tx
        assert tx["nonce"] == 7

    def test_build_legacy_transaction(self, orchestrator, intent):
        tx = orchestrator._build_transaction(intent, 25200, FeeData(gas_price=5 * GWEI), nonce=0)

        assert tx["gasPrice"] == 5 * GWEI
        assert "type" not in tx


class TestInfrastructureErrors:
    def test_malformed_response_is_transport(self):
        assert is_transport_error(BadResponseFormat("not json"))

    def test_rpc_error_response_is_not_transport(self):
        """Node answers about the transaction are classified, not failed over."""
        assert not is_transport_error(Web3RPCError("execution reverted"))
