"""Upstream health report and network id lookup."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import GatewayError

HEALTH_CHECK_TIMEOUT_SECONDS = 5.0
FAILED_TO_CONNECT = "Failed to connect to RPC endpoint"

_CHAIN_NAMES: dict[str, str] = {
    "1": "Ethereum Mainnet",
    "3": "Ropsten Testnet",
    "4": "Rinkeby Testnet",
    "5": "Goerli Testnet",
    "10": "Optimism",
    "42": "Kovan Testnet",
    "56": "Binance Smart Chain",
    "137": "Polygon Mainnet",
    "42161": "Arbitrum One",
}


@dataclass(frozen=True)
class HealthReport:
    """Outcome of one health check against the upstream node."""

    healthy: bool
    description: str
    network_id: str | None = None
    chain_name: str | None = None
    error: GatewayError | None = None


def chain_name_for(network_id: str) -> str:
    """Return a human-readable chain name, or "" for unknown networks."""

    name = _CHAIN_NAMES.get(network_id)
    if name is not None:
        return name
    if network_id.startswith("2018"):
        return "Ethereum Classic"
    return ""


def describe_network(network_id: str) -> HealthReport:
    chain_name = chain_name_for(network_id)
    if chain_name:
        description = f"Connected to {chain_name} (Network ID: {network_id})"
    else:
        description = f"Connected to RPC endpoint (Network ID: {network_id})"
    return HealthReport(
        healthy=True,
        description=description,
        network_id=network_id,
        chain_name=chain_name,
    )


def unhealthy(error: GatewayError) -> HealthReport:
    return HealthReport(healthy=False, description=FAILED_TO_CONNECT, error=error)
