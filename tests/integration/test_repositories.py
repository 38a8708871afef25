"""Repository and recorder tests against a real (in-memory SQLite) database."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from custody.models import Base, Contact, LedgerEntry, User
from custody.models.enums import LedgerPerspective, TransactionStatus
from custody.repositories.contact_repository import ContactRepository
from custody.repositories.ledger_repository import LedgerRepository
from custody.repositories.user_repository import UserRepository
from custody.services.blockchain.types import SubmittedTransaction
from custody.services.contact_service import ContactService
from custody.services.ledger_service import DualLedgerRecorder
from custody.utils.exceptions import NotFoundError

TX_HASH = "0x" + "ab" * 32
OTHER_HASH = "0x" + "cd" * 32


@pytest_asyncio.fixture
async def db():
    """Session factory over a fresh schema shared by every session."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def users(db, sender_address, recipient_address):
    """Sender (id 1) and recipient (id 2), addresses stored checksummed."""
    async with db() as session:
        for email, address in (
            ("alice@example.com", sender_address),
            ("bob@example.com", recipient_address),
        ):
            session.add(
                User(
                    email=email,
                    password_hash="x",
                    wallet_address=address,
                    encrypted_private_key="x",
                    key_salt="x",
                )
            )
        await session.commit()
    return {"sender": 1, "recipient": 2}


def make_tx(sender_address, recipient_address, tx_hash=TX_HASH):
    return SubmittedTransaction(
        hash=tx_hash,
        sender=sender_address,
        recipient=recipient_address,
        value_wei=5 * 10**17,
        network="testnet",
        nonce=0,
        status=TransactionStatus.SUCCESS,
        block_number=101,
        gas_used=21000,
        confirmations=1,
    )


async def ledger_rows(db, tx_hash=TX_HASH):
    async with db() as session:
        result = await session.execute(
            select(LedgerEntry).where(LedgerEntry.tx_hash == tx_hash)
        )
        return list(result.scalars().all())


class TestLedgerIdempotence:
    """The unique (user, hash, perspective) key on a real database."""

    @pytest.mark.asyncio
    async def test_recording_twice_keeps_one_row_per_side(
        self, db, users, sender_address, recipient_address
    ):
        recorder = DualLedgerRecorder(db)
        tx = make_tx(sender_address, recipient_address)

        first = await recorder.record(1, sender_address, recipient_address, tx, "testnet")
        second = await recorder.record(1, sender_address, recipient_address, tx, "testnet")

        rows = await ledger_rows(db)
        perspectives = sorted((row.user_id, row.perspective) for row in rows)
        assert perspectives == [
            (1, LedgerPerspective.SENT.value),
            (2, LedgerPerspective.RECEIVED.value),
        ]
        assert first.sent_written and first.received_written
        assert not second.sent_written and not second.received_written
        assert second.recipient_user_id == 2

    @pytest.mark.asyncio
    async def test_duplicate_insert_returns_none_and_session_stays_usable(
        self, db, users, sender_address, recipient_address
    ):
        data = {
            "user_id": 1,
            "wallet_address": sender_address,
            "tx_hash": TX_HASH,
            "perspective": LedgerPerspective.SENT.value,
            "network": "testnet",
            "from_address": sender_address,
            "to_address": recipient_address,
            "value": Decimal("0.5"),
            "value_wei": str(5 * 10**17),
        }
        async with db() as session:
            repo = LedgerRepository(session)
            assert await repo.create_unique(**data) is not None
            await session.commit()

            assert await repo.create_unique(**data) is None
            # Mixed-case hash normalizes onto the same key
            assert await repo.create_unique(**{**data, "tx_hash": TX_HASH.upper()[2:]}) is None

            other = await repo.create_unique(**{**data, "tx_hash": OTHER_HASH})
            await session.commit()

        assert other is not None
        assert len(await ledger_rows(db)) == 1

    @pytest.mark.asyncio
    async def test_received_row_found_by_lowercase_recipient(
        self, db, users, sender_address, recipient_address
    ):
        recorder = DualLedgerRecorder(db)
        tx = make_tx(sender_address, recipient_address.lower())

        result = await recorder.record(
            1, sender_address, recipient_address.lower(), tx, "testnet"
        )

        assert result.recipient_user_id == 2
        assert result.received_written


class TestUserLookup:
    @pytest.mark.asyncio
    async def test_wallet_lookup_ignores_case(self, db, users, recipient_address):
        async with db() as session:
            repo = UserRepository(session)
            by_lower = await repo.get_by_wallet_address(recipient_address.lower())
            by_upper = await repo.get_by_wallet_address("0x" + recipient_address[2:].upper())

        assert by_lower is not None and by_lower.id == 2
        assert by_upper is not None and by_upper.id == 2

    @pytest.mark.asyncio
    async def test_unknown_wallet(self, db, users):
        async with db() as session:
            assert await UserRepository(session).get_by_wallet_address("0x" + "00" * 20) is None


class TestContactsOnDatabase:
    @pytest_asyncio.fixture
    async def contact_id(self, db, users, recipient_address):
        async with db() as session:
            contact = await ContactService(session).add_contact(
                1, "Bob", recipient_address, notes="rent"
            )
            return contact.id

    @pytest.mark.asyncio
    async def test_increment_is_cumulative(self, db, contact_id):
        when = datetime(2026, 1, 1, tzinfo=UTC)
        async with db() as session:
            repo = ContactRepository(session)
            await repo.increment_stats(contact_id, Decimal("0.5"), sent=True, occurred_at=when)
            await repo.increment_stats(contact_id, Decimal("0.25"), sent=True, occurred_at=when)
            await repo.increment_stats(contact_id, Decimal("1"), sent=False, occurred_at=when)
            await session.commit()

        async with db() as session:
            contact = await session.get(Contact, contact_id)

        assert contact.transaction_count == 3
        assert contact.total_sent == Decimal("0.75")
        assert contact.total_received == Decimal("1")

    @pytest.mark.asyncio
    async def test_alias_lookup_ignores_case(self, db, contact_id):
        async with db() as session:
            service = ContactService(session)
            found = await service.get_by_alias(1, " bob ")
            missing = await service.get_by_alias(2, "bob")

        assert found is not None and found.id == contact_id
        assert missing is None

    @pytest.mark.asyncio
    async def test_update_changes_only_allowed_fields(self, db, contact_id, recipient_address):
        async with db() as session:
            contact = await ContactService(session).update_contact(
                1,
                contact_id,
                {"alias": "Robert", "favorite": True, "notes": None,
                 "wallet_address": "0x" + "00" * 20, "transaction_count": 99},
            )

        assert contact.alias == "Robert"
        assert contact.favorite is True
        assert contact.notes is None
        assert contact.wallet_address == recipient_address.lower()
        assert contact.transaction_count == 0

    @pytest.mark.asyncio
    async def test_update_foreign_contact(self, db, contact_id):
        async with db() as session:
            with pytest.raises(NotFoundError):
                await ContactService(session).update_contact(2, contact_id, {"alias": "x"})

    @pytest.mark.asyncio
    async def test_contact_transactions_use_the_ledger(
        self, db, contact_id, sender_address, recipient_address
    ):
        recorder = DualLedgerRecorder(db)
        await recorder.record(
            1, sender_address, recipient_address, make_tx(sender_address, recipient_address),
            "testnet",
        )
        stranger = "0x" + "12" * 20
        await recorder.record(
            1, sender_address, stranger,
            make_tx(sender_address, stranger, tx_hash=OTHER_HASH), "testnet",
        )

        async with db() as session:
            result = await ContactService(session).get_contact_transactions(1, contact_id)

        assert result["contact"]["alias"] == "Bob"
        assert result["total"] == 1
        assert [tx["hash"] for tx in result["transactions"]] == [TX_HASH]
