# brokerage_oracle/config.py
"""
Runtime configuration, read once from the environment at startup.

Nothing below the CLI reads os.environ directly; the Settings instance is
passed down explicitly.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigError

# Ethereum Sepolia functions network
DEFAULT_DON_ID = "fun-ethereum-sepolia-1"
DEFAULT_GATEWAY_URLS = (
    "https://01.functions-gateway.testnet.chain.link/",
    "https://02.functions-gateway.testnet.chain.link/",
)
DEFAULT_SLOT_ID = 0
DEFAULT_TTL_MINUTES = 1440  # 24h
DEFAULT_GATEWAY_TIMEOUT = 10
DEFAULT_FETCH_TIMEOUT = 9


@dataclass
class Settings:
    api_key: str = ""
    api_secret: str = field(default="", repr=False)
    api_url: str = ""
    private_key: str = field(default="", repr=False)
    rpc_url: str = ""
    don_id: str = DEFAULT_DON_ID
    don_public_key: str = ""
    don_private_key: str = field(default="", repr=False)
    gateway_urls: tuple = DEFAULT_GATEWAY_URLS
    slot_id: int = DEFAULT_SLOT_ID
    ttl_minutes: int = DEFAULT_TTL_MINUTES
    quorum: Optional[int] = None
    gateway_timeout: float = DEFAULT_GATEWAY_TIMEOUT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    data_dir: Path = Path("data")

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ

        gateways = tuple(
            u.strip() for u in env.get("GATEWAY_URLS", "").split(",") if u.strip()
        ) or DEFAULT_GATEWAY_URLS

        return cls(
            api_key=env.get("ALPACA_API_KEY", "").strip(),
            api_secret=env.get("ALPACA_SECRET_KEY", "").strip(),
            api_url=env.get("ALPACA_API_URL", "").strip(),
            private_key=env.get("PRIVATE_KEY", "").strip(),
            rpc_url=env.get("SEPOLIA_RPC_URL", "").strip(),
            don_id=env.get("DON_ID", "").strip() or DEFAULT_DON_ID,
            don_public_key=env.get("DON_PUBLIC_KEY", "").strip(),
            don_private_key=env.get("DON_PRIVATE_KEY", "").strip(),
            gateway_urls=gateways,
            slot_id=_int(env, "SECRETS_SLOT_ID", DEFAULT_SLOT_ID),
            ttl_minutes=_int(env, "SECRETS_TTL_MINUTES", DEFAULT_TTL_MINUTES),
            quorum=_int(env, "GATEWAY_QUORUM", None),
            gateway_timeout=_float(env, "GATEWAY_TIMEOUT", DEFAULT_GATEWAY_TIMEOUT),
            fetch_timeout=_float(env, "FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
            data_dir=Path(env.get("ORACLE_DATA_DIR", "").strip() or "data"),
        )


def _int(env, name, default):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float(env, name, default):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value
