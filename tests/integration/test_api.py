"""Integration tests for the HTTP API over the in-memory chain."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from custody.api.app import create_app
from custody.config.settings import Settings
from custody.container import build_container
from custody.services.transfer_service import UnlockedWallet
from custody.utils.exceptions import AuthenticationError

NETWORKS_JSON = json.dumps(
    {
        "testnet": {
            "chain_id": 11155111,
            "rpc_urls": ["https://rpc-a.test", "https://rpc-b.test", "https://rpc-c.test"],
            "block_explorer": "https://explorer.test",
        }
    }
)


@pytest.fixture
def settings():
    return Settings(
        encryption_key="integration-secret-key-that-is-long-enough",
        environment="testing",
        networks_json=NETWORKS_JSON,
        default_network="testnet",
        receipt_timeout_seconds=0.5,
        receipt_poll_interval_seconds=0.01,
        log_file=None,
    )


@pytest.fixture
def container(settings, session_factory, client_factory, sender_key, sender_address):
    container = build_container(
        settings, session_factory=session_factory, client_factory=client_factory
    )
    container.transfers.unlock_wallet = AsyncMock(
        return_value=UnlockedWallet(
            user_id=1,
            email="alice@example.com",
            address=sender_address,
            private_key=sender_key,
        )
    )
    container.transfers.recorder = MagicMock(record=AsyncMock())
    container.transfers.contact_stats = MagicMock(bump=AsyncMock(return_value=True))
    return container


@pytest_asyncio.fixture
async def client(container):
    async with TestClient(TestServer(create_app(container))) as client:
        yield client


def transfer_body(sender_address, recipient_address, **extra):
    return {
        "from": sender_address,
        "to": recipient_address,
        "value": "0.5",
        "network": "testnet",
        **extra,
    }


class TestHealth:
    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/health/live")
        assert response.status == 200
        assert (await response.json())["alive"] is True

    @pytest.mark.asyncio
    async def test_providers(self, client):
        response = await client.get("/health/providers")
        data = await response.json()

        assert response.status == 200
        assert "testnet" in data["networks"]
        assert data["background"]["failed"] == 0


class TestEstimateAndSimulate:
    @pytest.mark.asyncio
    async def test_estimate_gas(self, client, sender_address, recipient_address):
        response = await client.post(
            "/api/transaction/estimate-gas",
            json=transfer_body(sender_address, recipient_address),
        )
        data = await response.json()

        assert response.status == 200
        assert data["success"] is True
        assert data["estimate"]["gasLimit"] == "25200"

    @pytest.mark.asyncio
    async def test_simulate_reports_revert(self, client, chain, sender_address, recipient_address):
        chain.call_error = ValueError("insufficient funds for transfer")

        response = await client.post(
            "/api/transaction/simulate",
            json=transfer_body(sender_address, recipient_address),
        )
        data = await response.json()

        assert response.status == 200
        assert data["simulation"]["success"] is False

    @pytest.mark.asyncio
    async def test_float_value_rejected(self, client, sender_address, recipient_address):
        """Amounts travel as decimal strings only."""
        response = await client.post(
            "/api/transaction/estimate-gas",
            json=transfer_body(sender_address, recipient_address, value=0.1),
        )
        assert response.status == 400

    @pytest.mark.asyncio
    async def test_unknown_network(self, client, sender_address, recipient_address):
        response = await client.post(
            "/api/transaction/estimate-gas",
            json=transfer_body(sender_address, recipient_address, network="mars"),
        )
        assert response.status == 400
        assert "mars" in (await response.json())["error"]

    @pytest.mark.asyncio
    async def test_malformed_json(self, client):
        response = await client.post(
            "/api/transaction/estimate-gas",
            data="{broken",
            headers={"Content-Type": "application/json"},
        )
        assert response.status == 400

    @pytest.mark.asyncio
    async def test_all_endpoints_down(self, client, chain, sender_address, recipient_address):
        for url in ("https://rpc-a.test", "https://rpc-b.test", "https://rpc-c.test"):
            chain.failing_urls[url] = ConnectionError(f"{url} refused")

        response = await client.post(
            "/api/transaction/estimate-gas",
            json=transfer_body(sender_address, recipient_address),
        )
        assert response.status == 502


class TestSendWithPassword:
    @pytest.mark.asyncio
    async def test_send(self, client, container, chain, sender_address, recipient_address):
        response = await client.post(
            "/api/transaction/send-with-password",
            json=transfer_body(sender_address, recipient_address, password="correct-horse"),
            headers={"X-User-Id": "1"},
        )
        data = await response.json()

        assert response.status == 200
        assert data["success"] is True
        assert data["transaction"]["hash"] == chain.sent[0][0]
        assert data["transaction"]["value"] == "0.5"
        assert data["transaction"]["status"] == "success"

    @pytest.mark.asyncio
    async def test_missing_user_header(self, client, sender_address, recipient_address):
        response = await client.post(
            "/api/transaction/send-with-password",
            json=transfer_body(sender_address, recipient_address, password="correct-horse"),
        )
        assert response.status == 401

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, container, sender_address, recipient_address):
        container.transfers.unlock_wallet.side_effect = AuthenticationError("Invalid password")

        response = await client.post(
            "/api/transaction/send-with-password",
            json=transfer_body(sender_address, recipient_address, password="wrong-horse"),
            headers={"X-User-Id": "1"},
        )
        assert response.status == 401

    @pytest.mark.asyncio
    async def test_predicted_revert_is_422(
        self, client, chain, sender_address, recipient_address
    ):
        chain.call_error = ValueError("insufficient funds for gas * price + value")

        response = await client.post(
            "/api/transaction/send-with-password",
            json=transfer_body(sender_address, recipient_address, password="correct-horse"),
            headers={"X-User-Id": "1"},
        )
        data = await response.json()

        assert response.status == 422
        assert data["error"] == "Insufficient balance to complete transaction"
        assert chain.sent == []

    @pytest.mark.asyncio
    async def test_rejected_broadcast_is_502(
        self, client, chain, sender_address, recipient_address
    ):
        chain.send_error = ValueError("nonce too low")

        response = await client.post(
            "/api/transaction/send-with-password",
            json=transfer_body(sender_address, recipient_address, password="correct-horse"),
            headers={"X-User-Id": "1"},
        )
        assert response.status == 502

    @pytest.mark.asyncio
    async def test_cancel_needs_nonce_or_hash(self, client):
        response = await client.post(
            "/api/transaction/cancel",
            json={"password": "correct-horse", "network": "testnet"},
            headers={"X-User-Id": "1"},
        )
        assert response.status == 400


class TestWalletReads:
    @pytest.mark.asyncio
    async def test_balance_of_explicit_address(self, client, chain, recipient_address):
        chain.balances[recipient_address.lower()] = 15 * 10**17

        response = await client.get(
            "/api/wallet/balance",
            params={"address": recipient_address, "network": "testnet"},
        )
        data = await response.json()

        assert response.status == 200
        assert data["balance"] == "1.5"
        assert data["balanceWei"] == str(15 * 10**17)
