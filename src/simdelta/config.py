"""Runtime configuration loaded from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError


MAINNET_RPC = "https://api.mainnet-beta.solana.com"
DEVNET_RPC = "https://api.devnet.solana.com"
TESTNET_RPC = "https://api.testnet.solana.com"

NETWORKS = {
    "mainnet": MAINNET_RPC,
    "mainnet-beta": MAINNET_RPC,
    "devnet": DEVNET_RPC,
    "testnet": TESTNET_RPC,
}

DEFAULT_METADATA_URL = "https://tokens.jup.ag/token/{mint}"


def load_env(start: Optional[Path] = None) -> Optional[Path]:
    """
    Load a .env file from the working directory or its parents.

    Variables already present in the environment are left alone.

    Returns:
        Path of the file that was loaded, or None
    """
    current = start or Path.cwd()
    for _ in range(5):  # Check up to 5 parent dirs
        env_file = current / ".env"
        if env_file.exists():
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        os.environ.setdefault(key.strip(), value.strip().strip('"'))
            return env_file
        current = current.parent
    return None


def resolve_rpc_url(network_or_url: str) -> str:
    """Map a network name to its public endpoint; URLs pass through."""
    return NETWORKS.get(network_or_url.lower(), network_or_url)


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


@dataclass
class Settings:
    """Configuration for one simulator instance."""
    rpc_url: str = MAINNET_RPC
    commitment: str = "confirmed"
    metadata_url: str = DEFAULT_METADATA_URL
    # 0 keeps every resolved mint for the lifetime of the process
    metadata_cache_size: int = 0
    request_timeout: float = 30.0

    def __post_init__(self):
        if "{mint}" not in self.metadata_url:
            raise ConfigError("metadata_url must contain a {mint} placeholder")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from SOLANA_RPC_URL, TOKEN_METADATA_URL and friends."""
        return cls(
            rpc_url=resolve_rpc_url(os.environ.get("SOLANA_RPC_URL", MAINNET_RPC)),
            commitment=os.environ.get("SIMDELTA_COMMITMENT", "confirmed"),
            metadata_url=os.environ.get("TOKEN_METADATA_URL", DEFAULT_METADATA_URL),
            metadata_cache_size=_int_env("METADATA_CACHE_SIZE", 0),
            request_timeout=_float_env("SIMDELTA_TIMEOUT", 30.0),
        )
