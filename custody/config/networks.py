"""
Supported chain networks.

Static table of networks with their chain IDs and ordered public RPC
endpoints. The order matters: failover walks the list front to back.
"""

import json
from dataclasses import dataclass, field


@dataclass(frozen=True)
class NetworkConfig:
    """Static configuration for one chain network."""

    name: str
    chain_id: int
    rpc_urls: tuple[str, ...]
    block_explorer: str | None = None
    native_symbol: str = "ETH"
    native_decimals: int = 18
    tags: tuple[str, ...] = field(default_factory=tuple)


DEFAULT_NETWORKS: dict[str, NetworkConfig] = {
    "sepolia": NetworkConfig(
        name="sepolia",
        chain_id=11155111,
        rpc_urls=(
            "https://ethereum-sepolia-rpc.publicnode.com",
            "https://sepolia.gateway.tenderly.co",
            "https://rpc2.sepolia.org",
            "https://1rpc.io/sepolia",
            "https://sepolia.drpc.org",
        ),
        block_explorer="https://sepolia.etherscan.io",
        tags=("testnet",),
    ),
    "ethereum": NetworkConfig(
        name="ethereum",
        chain_id=1,
        rpc_urls=(
            "https://ethereum-rpc.publicnode.com",
            "https://eth.llamarpc.com",
            "https://rpc.flashbots.net",
            "https://eth.drpc.org",
        ),
        block_explorer="https://etherscan.io",
    ),
    "polygon": NetworkConfig(
        name="polygon",
        chain_id=137,
        rpc_urls=(
            "https://polygon-rpc.com",
            "https://polygon-bor-rpc.publicnode.com",
            "https://polygon.drpc.org",
            "https://polygon.llamarpc.com",
        ),
        block_explorer="https://polygonscan.com",
        native_symbol="MATIC",
    ),
}


def parse_networks_json(raw: str) -> dict[str, NetworkConfig]:
    """
    Parse a JSON network table.

    Expected shape::

        {"sepolia": {"chain_id": 11155111, "rpc_urls": ["https://..."]}}

    Args:
        raw: JSON document

    Returns:
        Mapping of network name to NetworkConfig

    Raises:
        ValueError: If the document is malformed
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"NETWORKS_JSON is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("NETWORKS_JSON must be an object keyed by network name")

    networks: dict[str, NetworkConfig] = {}
    for name, entry in data.items():
        if "chain_id" not in entry:
            raise ValueError(f"Network '{name}' is missing chain_id")
        networks[name] = NetworkConfig(
            name=name,
            chain_id=int(entry["chain_id"]),
            rpc_urls=tuple(entry.get("rpc_urls") or ()),
            block_explorer=entry.get("block_explorer"),
            native_symbol=entry.get("native_symbol", "ETH"),
        )
    return networks
