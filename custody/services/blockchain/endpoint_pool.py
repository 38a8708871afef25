"""
Endpoint pool with failover cursor.

Holds, per network, the ordered list of RPC endpoint URLs, a cursor
pointing at the active endpoint and one lazily constructed client handle
per slot. Endpoints are tried in configured order; after the last one
the cursor wraps. There is no health-based reordering.

The pool never retries. Callers (RetryExecutor) advance the cursor after
a failure and ask again.
"""

import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from custody.config.constants import BLOCKCHAIN_RPC_TIMEOUT
from custody.config.networks import NetworkConfig
from custody.services.blockchain.chain_client import ChainClient, create_web3_client
from custody.services.blockchain.errors import ConfigurationError, EndpointUnavailable

ClientFactory = Callable[[str, int, float], ChainClient]


@dataclass
class NetworkEndpointSet:
    """
    Endpoints for one network.

    Invariant: 0 <= cursor < len(urls). handles[i] is None until the
    client for urls[i] is first requested.
    """

    network: str
    chain_id: int
    urls: tuple[str, ...]
    cursor: int = 0
    handles: list[ChainClient | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.handles:
            self.handles = [None] * len(self.urls)

    @property
    def current_url(self) -> str:
        return self.urls[self.cursor]


class EndpointPool:
    """
    Per-network endpoint pool.

    Cursor and handle updates are made under one lock so a reader never
    observes a half-advanced cursor. Client construction happens under
    the same lock; it is cheap (no network I/O) so contention stays low.
    """

    def __init__(
        self,
        networks: Mapping[str, NetworkConfig],
        client_factory: ClientFactory | None = None,
        timeout: float = BLOCKCHAIN_RPC_TIMEOUT,
    ) -> None:
        """
        Initialize pool.

        Args:
            networks: Network table (name -> NetworkConfig)
            client_factory: Builds a ChainClient from (url, chain_id, timeout)
            timeout: HTTP timeout handed to the factory
        """
        self._client_factory = client_factory or create_web3_client
        self._timeout = timeout
        self._lock = threading.Lock()
        self._sets: dict[str, NetworkEndpointSet] = {}

        for name, config in networks.items():
            self._sets[name] = NetworkEndpointSet(
                network=name,
                chain_id=config.chain_id,
                urls=tuple(config.rpc_urls),
            )

        summary = ", ".join(f"{name}={len(s.urls)}" for name, s in self._sets.items())
        logger.info(f"EndpointPool initialized: {summary}")

    @property
    def networks(self) -> list[str]:
        return list(self._sets)

    def _get_set(self, network: str) -> NetworkEndpointSet:
        endpoint_set = self._sets.get(network)
        if endpoint_set is None:
            raise ConfigurationError(network, f"Unsupported network: {network}")
        if not endpoint_set.urls:
            raise ConfigurationError(network)
        return endpoint_set

    def get_client(self, network: str) -> ChainClient:
        """
        Get the client at the current cursor, constructing it on first use.

        Args:
            network: Network name

        Returns:
            Chain client bound to the active endpoint

        Raises:
            ConfigurationError: Network unknown or has no endpoints
            EndpointUnavailable: Client construction failed
        """
        with self._lock:
            endpoint_set = self._get_set(network)
            index = endpoint_set.cursor
            handle = endpoint_set.handles[index]
            if handle is not None:
                return handle

            url = endpoint_set.urls[index]
            try:
                handle = self._client_factory(url, endpoint_set.chain_id, self._timeout)
            except Exception as e:
                logger.warning(f"[{network}] Failed to construct client for {url}: {e}")
                raise EndpointUnavailable(network, url, e) from e

            endpoint_set.handles[index] = handle
            logger.debug(f"[{network}] Connected to endpoint {index}: {url}")
            return handle

    def advance(self, network: str) -> int:
        """
        Move the cursor to the next endpoint (wrapping).

        The handle at the new cursor is discarded so it is rebuilt on the
        next get_client and a previously failed endpoint is never reused
        with stale state.

        Returns:
            New cursor position
        """
        with self._lock:
            endpoint_set = self._get_set(network)
            old_index = endpoint_set.cursor
            endpoint_set.cursor = (old_index + 1) % len(endpoint_set.urls)
            endpoint_set.handles[endpoint_set.cursor] = None
            new_index = endpoint_set.cursor

        logger.info(
            f"[{network}] Switched RPC endpoint {old_index} -> {new_index}: "
            f"{endpoint_set.urls[new_index]}"
        )
        return new_index

    def chain_id(self, network: str) -> int:
        """Configured chain id of a network."""
        with self._lock:
            return self._get_set(network).chain_id

    def current_index(self, network: str) -> int:
        with self._lock:
            return self._get_set(network).cursor

    def current_url(self, network: str) -> str:
        with self._lock:
            return self._get_set(network).current_url

    def get_health_status(self) -> dict[str, dict[str, Any]]:
        """
        Get per-network pool status.

        Returns:
            Dict of network -> total endpoints, cursor, current URL and
            whether the active handle is constructed
        """
        status: dict[str, dict[str, Any]] = {}
        with self._lock:
            for name, endpoint_set in self._sets.items():
                if not endpoint_set.urls:
                    status[name] = {"totalProviders": 0, "currentIndex": None, "currentUrl": None}
                    continue
                status[name] = {
                    "totalProviders": len(endpoint_set.urls),
                    "currentIndex": endpoint_set.cursor,
                    "currentUrl": endpoint_set.current_url,
                    "connected": endpoint_set.handles[endpoint_set.cursor] is not None,
                }
        return status
