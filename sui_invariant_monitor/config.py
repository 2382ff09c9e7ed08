"""Environment-driven configuration."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from sui_invariant_monitor.constants import (
    DEFAULT_POLLING_INTERVAL_SECS,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    NETWORK_RPC_URLS,
    SUI_COIN_TYPE,
    SUI_RPC_MAINNET,
)
from sui_invariant_monitor.errors import ConfigError


def get_rpc_url(network: str | None, environ: Mapping[str, str] | None = None) -> str:
    """RPC URL for a named network, falling back to SUI_RPC_URL, then mainnet."""
    if network in NETWORK_RPC_URLS:
        return NETWORK_RPC_URLS[network]
    env = os.environ if environ is None else environ
    return env.get("SUI_RPC_URL") or SUI_RPC_MAINNET


def _env_str(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name, "").strip()
    return value or None


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _env_str(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as ex:
        raise ConfigError(f"Invalid value for {name}") from ex
    if value <= 0:
        raise ConfigError(f"Invalid value for {name}")
    return value


@dataclass(frozen=True)
class Config:
    rpc_url: str = SUI_RPC_MAINNET
    polling_interval_secs: int = DEFAULT_POLLING_INTERVAL_SECS
    webhook_url: str | None = None
    discord_webhook_url: str | None = None
    monitored_object_ids: tuple[str, ...] = ()
    balance_address: str | None = None
    balance_coin_type: str = SUI_COIN_TYPE
    port: int = DEFAULT_PORT
    request_timeout_secs: int = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Config":
        env = os.environ if environ is None else environ
        object_ids = tuple(s.strip() for s in env.get("MONITORED_OBJECT_IDS", "").split(",") if s.strip())
        return cls(
            rpc_url=get_rpc_url(_env_str(env, "SUI_NETWORK"), env),
            polling_interval_secs=_env_int(env, "POLLING_INTERVAL_SECS", DEFAULT_POLLING_INTERVAL_SECS),
            webhook_url=_env_str(env, "WEBHOOK_URL"),
            discord_webhook_url=_env_str(env, "DISCORD_WEBHOOK_URL"),
            monitored_object_ids=object_ids,
            balance_address=_env_str(env, "BALANCE_ADDRESS"),
            balance_coin_type=_env_str(env, "BALANCE_COIN_TYPE") or SUI_COIN_TYPE,
            port=_env_int(env, "PORT", DEFAULT_PORT),
            request_timeout_secs=_env_int(env, "REQUEST_TIMEOUT_SECS", DEFAULT_TIMEOUT),
        )
