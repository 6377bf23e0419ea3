"""Named network presets for the JSON-RPC chain client."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Network:
    """An EVM network the wallet can build transactions for."""

    name: str
    chain_id: int
    rpc_url: str
    poa: bool = False


NETWORKS: dict[str, Network] = {
    "mainnet": Network(
        name="mainnet",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
    ),
    "sepolia": Network(
        name="sepolia",
        chain_id=11155111,
        rpc_url="https://rpc.sepolia.org",
    ),
    "holesky": Network(
        name="holesky",
        chain_id=17000,
        rpc_url="https://ethereum-holesky-rpc.publicnode.com",
    ),
    "local": Network(
        name="local",
        chain_id=31337,
        rpc_url="http://127.0.0.1:8545",
    ),
}


def get_network(name: str) -> Network:
    """Get a network by name. Raises ``KeyError`` if not found."""
    key = name.strip().lower()
    if key not in NETWORKS:
        raise KeyError(
            f"Unknown network '{name}'. Available: {list_network_names()}"
        )
    return NETWORKS[key]


def list_network_names() -> list[str]:
    """Return the names of all preset networks."""
    return list(NETWORKS.keys())
