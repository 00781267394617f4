"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from eth_utils import is_hex_address

from .models import StakingChain, Token

logger = logging.getLogger(__name__)

CELO_CORE_REGISTRY = "0x000000000000000000000000000000000000ce10"

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class BalancesConfig:
    base_unit_decimals: int = 18
    dust_threshold: int = 10**14

    @property
    def base_unit(self) -> int:
        return 10**self.base_unit_decimals


@dataclass(frozen=True)
class OverridePath:
    """Price ``token`` through ``via`` when it has no liquid stable pair."""

    token: str
    via: str


@dataclass(frozen=True)
class PricingConfig:
    factory: str = ""
    primary_stable: str = ""
    secondary_stable: str = ""
    pinned: tuple[str, ...] = ()
    overrides: tuple[OverridePath, ...] = ()


@dataclass(frozen=True)
class PoolsConfig:
    pool_manager: str = ""
    staking_chains: tuple[StakingChain, ...] = ()


@dataclass(frozen=True)
class LockedConfig:
    enabled: bool = True
    token: str = ""
    locked_gold: str = ""
    core_registry: str = CELO_CORE_REGISTRY


@dataclass(frozen=True)
class AppConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    balances: BalancesConfig = field(default_factory=BalancesConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    pools: PoolsConfig = field(default_factory=PoolsConfig)
    locked: LockedConfig = field(default_factory=LockedConfig)
    tokens: tuple[Token, ...] = ()


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _to_int(value: Any) -> int:
    # YAML 1.1 reads "1e14" as a string
    return int(Decimal(str(value)))


# ---------------------------------------------------------------------------
# YAML -> dataclass builders
# ---------------------------------------------------------------------------


def _build_chain(raw: dict[str, Any]) -> ChainConfig:
    endpoints = tuple(e for e in raw.get("rpc_endpoints", []) if e)
    return ChainConfig(
        rpc_endpoints=endpoints,
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
    )


def _build_balances(raw: dict[str, Any]) -> BalancesConfig:
    return BalancesConfig(
        base_unit_decimals=int(raw.get("base_unit_decimals", 18)),
        dust_threshold=_to_int(raw.get("dust_threshold", 10**14)),
    )


def _build_pricing(raw: dict[str, Any]) -> PricingConfig:
    overrides = tuple(
        OverridePath(token=o.get("token", ""), via=o.get("via", ""))
        for o in raw.get("overrides", [])
    )
    return PricingConfig(
        factory=raw.get("factory", ""),
        primary_stable=raw.get("primary_stable", ""),
        secondary_stable=raw.get("secondary_stable", ""),
        pinned=tuple(raw.get("pinned", [])),
        overrides=overrides,
    )


def _build_pools(raw: dict[str, Any]) -> PoolsConfig:
    chains = tuple(
        StakingChain(
            contracts=tuple(c.get("contracts", [])),
            label=c.get("label", ""),
        )
        for c in raw.get("staking_chains", [])
    )
    return PoolsConfig(
        pool_manager=raw.get("pool_manager", ""),
        staking_chains=chains,
    )


def _build_locked(raw: dict[str, Any]) -> LockedConfig:
    return LockedConfig(
        enabled=bool(raw.get("enabled", True)),
        token=raw.get("token", ""),
        locked_gold=raw.get("locked_gold", ""),
        core_registry=raw.get("core_registry", CELO_CORE_REGISTRY),
    )


def _build_tokens(raw: list[dict[str, Any]]) -> tuple[Token, ...]:
    tokens: list[Token] = []
    for t in raw:
        tokens.append(
            Token(
                address=t.get("address", ""),
                symbol=t.get("symbol", ""),
                name=t.get("name", ""),
                logo_uri=t.get("logo_uri", ""),
                decimals=int(t.get("decimals", 18)),
            )
        )
    return tuple(tokens)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        chain=_build_chain(raw.get("chain") or {}),
        balances=_build_balances(raw.get("balances") or {}),
        pricing=_build_pricing(raw.get("pricing") or {}),
        pools=_build_pools(raw.get("pools") or {}),
        locked=_build_locked(raw.get("locked") or {}),
        tokens=_build_tokens(raw.get("tokens") or []),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _require_address(address: str, what: str) -> None:
    if not is_hex_address(address):
        raise ValueError(f"{what} '{address}' is not a 0x-prefixed 20-byte hex address")


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.tokens:
        raise ValueError("At least one token must be configured")
    if not cfg.chain.rpc_endpoints:
        raise ValueError("At least one RPC endpoint must be configured")
    if cfg.balances.dust_threshold < 0:
        raise ValueError("dust_threshold must not be negative")

    known: set[str] = set()
    for token in cfg.tokens:
        if not token.address or not token.symbol:
            raise ValueError(f"Token entry {token} needs an address and a symbol")
        _require_address(token.address, f"Token {token.symbol}")
        if token.address.lower() in known:
            raise ValueError(f"Duplicate token address '{token.address}'")
        # amounts are normalized with one base unit for every token
        if token.decimals != cfg.balances.base_unit_decimals:
            raise ValueError(
                f"Token {token.symbol} has {token.decimals} decimals, "
                f"expected {cfg.balances.base_unit_decimals}"
            )
        known.add(token.address.lower())

    def _require_known(address: str, what: str) -> None:
        if address.lower() not in known:
            raise ValueError(f"{what} '{address}' is not a registered token")

    pricing = cfg.pricing
    if not pricing.factory:
        raise ValueError("Pricing needs a pair factory address")
    _require_address(pricing.factory, "Pair factory")
    _require_known(pricing.primary_stable, "Primary stable token")
    _require_known(pricing.secondary_stable, "Secondary stable token")
    for address in pricing.pinned:
        _require_known(address, "Pinned token")
    for override in pricing.overrides:
        _require_known(override.token, "Override token")
        _require_known(override.via, "Override base token")

    if cfg.pools.pool_manager:
        _require_address(cfg.pools.pool_manager, "Pool manager")
    for chain in cfg.pools.staking_chains:
        if not chain.contracts:
            raise ValueError(f"Staking chain '{chain.label}' has no contracts")
        for contract in chain.contracts:
            _require_address(contract, f"Staking chain '{chain.label}' contract")

    if cfg.locked.enabled:
        _require_known(cfg.locked.token, "Locked token")
        if cfg.locked.locked_gold:
            _require_address(cfg.locked.locked_gold, "LockedGold")
        _require_address(cfg.locked.core_registry, "Core registry")
