"""
Environment variable loading and validation for Backend Guard.

- CHAIN_NETWORK: base-sepolia | arbitrum-sepolia | sepolia (default: base-sepolia)
- AUDIT_REGISTRY_ADDRESS: deployed AuditRegistry contract (default: Base Sepolia deployment)
- GEMINI_API_KEY: AI provider key
- EXPLORER_API_URL / BASESCAN_API_KEY: Etherscan-style explorer for the transactions endpoint
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_guard/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_AUDIT_REGISTRY_ADDRESS = "0x9641E3A58aBe4c3a7320c3d176Da265A3a523F08"
DEFAULT_CHAIN_NETWORK = "base-sepolia"


@dataclass(frozen=True)
class ChainNetwork:
    """EVM network the registry lives on, plus its Etherscan-style explorer API."""

    name: str
    chain_id: int
    explorer_api_url: str
    explorer_url: str


CHAIN_NETWORKS: dict[str, ChainNetwork] = {
    "base-sepolia": ChainNetwork(
        name="Base Sepolia",
        chain_id=84532,
        explorer_api_url="https://api-sepolia.basescan.org/api",
        explorer_url="https://sepolia.basescan.org",
    ),
    "arbitrum-sepolia": ChainNetwork(
        name="Arbitrum Sepolia",
        chain_id=421614,
        explorer_api_url="https://api-sepolia.arbiscan.io/api",
        explorer_url="https://sepolia.arbiscan.io",
    ),
    "sepolia": ChainNetwork(
        name="Ethereum Sepolia",
        chain_id=11155111,
        explorer_api_url="https://api-sepolia.etherscan.io/api",
        explorer_url="https://sepolia.etherscan.io",
    ),
}


def load_guard_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env wins."""
    load_dotenv(_ENV_PATH, override=False)


def get_chain_network_key() -> str:
    """
    Return CHAIN_NETWORK from env, normalized to a key of CHAIN_NETWORKS.
    Unknown values fall back to base-sepolia.
    """
    load_guard_env()
    raw = (os.getenv("CHAIN_NETWORK") or DEFAULT_CHAIN_NETWORK).strip().lower().replace("_", "-")
    if raw in ("base", "basesepolia"):
        raw = "base-sepolia"
    if raw in ("arbitrum", "arbsepolia"):
        raw = "arbitrum-sepolia"
    return raw if raw in CHAIN_NETWORKS else DEFAULT_CHAIN_NETWORK


def get_chain_network() -> ChainNetwork:
    return CHAIN_NETWORKS[get_chain_network_key()]


def get_registry_address() -> str:
    """AUDIT_REGISTRY_ADDRESS (or the NEXT_PUBLIC_ name the frontend uses), else the default deployment."""
    load_guard_env()
    addr = (
        os.getenv("AUDIT_REGISTRY_ADDRESS")
        or os.getenv("NEXT_PUBLIC_AUDIT_REGISTRY_ADDRESS")
        or ""
    ).strip()
    return addr or DEFAULT_AUDIT_REGISTRY_ADDRESS


def get_explorer_api_url() -> str:
    """EXPLORER_API_URL overrides the network default."""
    load_guard_env()
    url = (os.getenv("EXPLORER_API_URL") or "").strip()
    return url or get_chain_network().explorer_api_url


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_list(name: str) -> tuple[str, ...]:
    """Comma-separated env value as a tuple of non-empty, stripped items."""
    raw = os.getenv(name) or ""
    return tuple(item.strip() for item in raw.split(",") if item.strip())
