"""Unit tests for the dual-ledger recorder."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from custody.models.enums import LedgerKind, TransactionStatus
from custody.services.blockchain.types import SubmittedTransaction
from custody.services.ledger_service import DualLedgerRecorder


@pytest.fixture
def submitted_tx(sender_address, recipient_address, sample_transaction_hash):
    return SubmittedTransaction(
        hash=sample_transaction_hash,
        sender=sender_address,
        recipient=recipient_address,
        value_wei=5 * 10**17,
        network="testnet",
        nonce=0,
        status=TransactionStatus.SUCCESS,
        block_number=101,
        gas_used=21000,
    )


@pytest.fixture
def ledger_repo():
    repo = MagicMock()
    repo.create_unique = AsyncMock(side_effect=lambda **data: MagicMock(**data))
    return repo


@pytest.fixture
def user_repo():
    repo = MagicMock()
    repo.get_by_wallet_address = AsyncMock(return_value=MagicMock(id=2))
    return repo


@pytest.fixture
def recorder(session_factory, ledger_repo, user_repo):
    return DualLedgerRecorder(
        session_factory,
        ledger_repo_factory=lambda session: ledger_repo,
        user_repo_factory=lambda session: user_repo,
    )


def written(ledger_repo):
    return [call.kwargs for call in ledger_repo.create_unique.await_args_list]


class TestDualLedgerRecorder:
    """Sent and received perspectives of one transaction."""

    @pytest.mark.asyncio
    async def test_writes_both_perspectives(
        self, recorder, ledger_repo, submitted_tx, sender_address, recipient_address
    ):
        """0.5 sent by user 1 to a wallet owned by user 2."""
        result = await recorder.record(1, sender_address, recipient_address, submitted_tx, "testnet")

        assert result.sent_written and result.received_written
        assert result.recipient_user_id == 2

        sent, received = written(ledger_repo)
        assert sent["user_id"] == 1 and sent["perspective"] == "sent"
        assert received["user_id"] == 2 and received["perspective"] == "received"
        assert sent["tx_hash"] == received["tx_hash"] == submitted_tx.hash
        assert sent["value"] == received["value"] == submitted_tx.value
        assert sent["value_wei"] == "500000000000000000"
        assert received["wallet_address"] == recipient_address
        assert sent["status"] == "success"

    @pytest.mark.asyncio
    async def test_recipient_lookup_ignores_case(
        self, recorder, user_repo, submitted_tx, sender_address, recipient_address
    ):
        await recorder.record(1, sender_address, recipient_address.lower(), submitted_tx, "testnet")
        user_repo.get_by_wallet_address.assert_awaited_once_with(recipient_address.lower())

    @pytest.mark.asyncio
    async def test_external_recipient_gets_no_received_row(
        self, recorder, ledger_repo, user_repo, submitted_tx, sender_address, recipient_address
    ):
        user_repo.get_by_wallet_address.return_value = None

        result = await recorder.record(1, sender_address, recipient_address, submitted_tx, "testnet")

        assert result.sent_written
        assert result.recipient_user_id is None
        assert len(written(ledger_repo)) == 1

    @pytest.mark.asyncio
    async def test_self_transfer_writes_one_row(
        self, recorder, ledger_repo, user_repo, submitted_tx, sender_address
    ):
        user_repo.get_by_wallet_address.return_value = MagicMock(id=1)

        result = await recorder.record(1, sender_address, sender_address, submitted_tx, "testnet")

        assert not result.received_written
        assert len(written(ledger_repo)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_is_a_no_op(
        self, recorder, ledger_repo, submitted_tx, sender_address, recipient_address
    ):
        """create_unique returning None means the row already existed."""
        ledger_repo.create_unique = AsyncMock(return_value=None)

        result = await recorder.record(1, sender_address, recipient_address, submitted_tx, "testnet")

        assert not result.sent_written
        assert not result.received_written

    @pytest.mark.asyncio
    async def test_failed_sent_write_does_not_block_received(
        self, recorder, ledger_repo, submitted_tx, sender_address, recipient_address
    ):
        ledger_repo.create_unique = AsyncMock(side_effect=[RuntimeError("db down"), MagicMock()])

        result = await recorder.record(1, sender_address, recipient_address, submitted_tx, "testnet")

        assert not result.sent_written
        assert result.received_written

    @pytest.mark.asyncio
    async def test_lookup_failure_is_swallowed(
        self, recorder, user_repo, submitted_tx, sender_address, recipient_address
    ):
        user_repo.get_by_wallet_address.side_effect = RuntimeError("timeout")

        result = await recorder.record(1, sender_address, recipient_address, submitted_tx, "testnet")

        assert result.sent_written
        assert result.recipient_user_id is None

    @pytest.mark.asyncio
    async def test_each_write_uses_its_own_session(
        self, recorder, session_factory, mock_session, submitted_tx,
        sender_address, recipient_address,
    ):
        await recorder.record(1, sender_address, recipient_address, submitted_tx, "testnet")

        # sent write, recipient lookup, received write
        assert session_factory.calls == 3
        assert mock_session.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_token_leg_overrides_value(
        self, recorder, ledger_repo, submitted_tx, sender_address, recipient_address
    ):
        await recorder.record(
            1, sender_address, recipient_address, submitted_tx, "testnet",
            kind=LedgerKind.SWAP, token="USDC", value=Decimal("12.5"),
        )

        sent = written(ledger_repo)[0]
        assert sent["kind"] == LedgerKind.SWAP.value
        assert sent["token"] == "USDC"
        assert sent["value"] == Decimal("12.5")
