"""Unit tests for the endpoint pool."""

import pytest

from custody.config.networks import NetworkConfig
from custody.services.blockchain.endpoint_pool import EndpointPool
from custody.services.blockchain.errors import ConfigurationError, EndpointUnavailable


class TestEndpointPool:
    """Cursor, handle and configuration behaviour."""

    def test_starts_at_first_endpoint(self, pool):
        """Cursor starts at the first configured URL."""
        assert pool.current_index("testnet") == 0
        assert pool.current_url("testnet") == "https://rpc-a.test"

    def test_client_is_constructed_lazily_and_reused(self, networks):
        """One construction per slot until the cursor moves."""
        built = []

        def factory(url, chain_id, timeout):
            built.append(url)
            return object()

        pool = EndpointPool(networks, client_factory=factory)
        assert built == []

        first = pool.get_client("testnet")
        second = pool.get_client("testnet")

        assert first is second
        assert built == ["https://rpc-a.test"]

    def test_advance_wraps_around(self, pool):
        """After the last endpoint the cursor returns to the first."""
        assert pool.advance("testnet") == 1
        assert pool.advance("testnet") == 2
        assert pool.advance("testnet") == 0
        assert pool.current_url("testnet") == "https://rpc-a.test"

    def test_advance_discards_stale_handle(self, networks):
        """A slot revisited after wrapping gets a fresh client."""
        built = []

        def factory(url, chain_id, timeout):
            client = object()
            built.append(client)
            return client

        pool = EndpointPool(
            {"two": NetworkConfig(name="two", chain_id=5, rpc_urls=("https://a", "https://b"))},
            client_factory=factory,
        )
        original = pool.get_client("two")
        pool.advance("two")
        pool.get_client("two")
        pool.advance("two")

        assert pool.get_client("two") is not original
        assert len(built) == 3

    def test_unknown_network_raises_configuration_error(self, pool):
        with pytest.raises(ConfigurationError):
            pool.get_client("nope")

    def test_network_without_endpoints_raises_configuration_error(self, pool):
        """Empty URL list is a configuration problem, not a retryable one."""
        with pytest.raises(ConfigurationError):
            pool.get_client("empty")

    def test_factory_failure_raises_endpoint_unavailable(self, networks):
        def factory(url, chain_id, timeout):
            raise RuntimeError("bad url")

        pool = EndpointPool(networks, client_factory=factory)

        with pytest.raises(EndpointUnavailable) as exc_info:
            pool.get_client("testnet")

        assert exc_info.value.url == "https://rpc-a.test"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_chain_id_comes_from_config(self, pool):
        assert pool.chain_id("testnet") == 11155111

    def test_networks_are_isolated(self, pool):
        """Advancing one network leaves the others alone."""
        pool.advance("testnet")
        status = pool.get_health_status()

        assert status["testnet"]["currentIndex"] == 1
        assert status["empty"]["totalProviders"] == 0

    def test_health_status_reports_connection(self, pool):
        assert pool.get_health_status()["testnet"]["connected"] is False
        pool.get_client("testnet")
        assert pool.get_health_status()["testnet"]["connected"] is True
