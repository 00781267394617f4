"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from celo_portfolio.config import (
    AppConfig,
    BalancesConfig,
    ChainConfig,
    LockedConfig,
    OverridePath,
    PoolsConfig,
    PricingConfig,
)
from celo_portfolio.errors import ChainReadError
from celo_portfolio.models import PoolInfo, Token
from celo_portfolio.registry import TokenRegistry

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

CELO = "0x471EcE3750Da237f93B8E339c536989b8978a438"
CUSD = "0x765DE816845861e75A25fCA122bb6898B8B1282a"
MCUSD = "0x64dEFa3544c695db8c535D289d843a189aa26b98"
UBE = "0x00Be915B9dCf56a3CBE739D9B9c202ca692409EC"
POOF = "0x00400FcbF0816bebB94654259de7273f4A05c762"

FACTORY = "0x62d5b84bE28a183aBB507E125B384122D2C25fAE"
LOCKED_GOLD = "0x6cc083aed9e3ebe302a6336dbc7c921c9f03349e"
WALLET = "0x1111111111111111111111111111111111111111"


# ---------------------------------------------------------------------------
# Fake chain reader
# ---------------------------------------------------------------------------


class FakeChainReader:
    """In-memory ChainReader. Reads touching an address in ``failing`` raise."""

    def __init__(self) -> None:
        self.balances: dict[tuple[str, str], int] = {}
        self.supplies: dict[str, int] = {}
        self.reserves: dict[str, tuple[int, int]] = {}
        self.pair_tokens: dict[str, tuple[str, str]] = {}
        self.pairs: dict[frozenset[str], str] = {}
        self.pools: list[PoolInfo] = []
        self.locked: tuple[int, int] = (0, 0)
        self.locked_fails = False
        self.pool_count_fails = False
        self.failing: set[str] = set()
        self.pair_lookups: list[tuple[str, str]] = []

    def _check(self, *addresses: str) -> None:
        for address in addresses:
            if address.lower() in self.failing:
                raise ChainReadError(f"read failed for {address}")

    # -- setup helpers --------------------------------------------------

    def set_balance(self, token: str, owner: str, amount: int) -> None:
        self.balances[(token.lower(), owner.lower())] = amount

    def set_supply(self, contract: str, supply: int) -> None:
        self.supplies[contract.lower()] = supply

    def add_pair(
        self, pair: str, token_a: str, reserve_a: int, token_b: str, reserve_b: int
    ) -> None:
        """Register a pair; token0 is the numerically smaller address."""
        if int(token_a, 16) > int(token_b, 16):
            token_a, reserve_a, token_b, reserve_b = token_b, reserve_b, token_a, reserve_a
        self.pair_tokens[pair.lower()] = (token_a, token_b)
        self.reserves[pair.lower()] = (reserve_a, reserve_b)
        self.pairs[frozenset({token_a.lower(), token_b.lower()})] = pair

    def fail(self, address: str) -> None:
        self.failing.add(address.lower())

    # -- ChainReader ----------------------------------------------------

    async def read_balance(self, token_address: str, owner_address: str) -> int:
        self._check(token_address)
        return self.balances.get((token_address.lower(), owner_address.lower()), 0)

    async def read_total_supply(self, contract_address: str) -> int:
        self._check(contract_address)
        return self.supplies.get(contract_address.lower(), 0)

    async def read_reserves(self, pair_address: str) -> tuple[int, int]:
        self._check(pair_address)
        return self.reserves.get(pair_address.lower(), (0, 0))

    async def read_token0(self, pair_address: str) -> str:
        self._check(pair_address)
        return self.pair_tokens[pair_address.lower()][0]

    async def read_token1(self, pair_address: str) -> str:
        self._check(pair_address)
        return self.pair_tokens[pair_address.lower()][1]

    async def read_pair_address(
        self, factory_address: str, token_a: str, token_b: str
    ) -> str:
        self.pair_lookups.append((token_a.lower(), token_b.lower()))
        pair = self.pairs.get(frozenset({token_a.lower(), token_b.lower()}))
        if pair is None:
            return ZERO_ADDRESS
        self._check(pair)
        return pair

    async def read_pool_count(self, manager_address: str) -> int:
        if self.pool_count_fails:
            raise ChainReadError("poolsCount failed")
        return len(self.pools)

    async def read_pool_by_index(self, manager_address: str, index: int) -> str:
        return self.pools[index].staking_token

    async def read_pool_info(
        self, manager_address: str, staking_address: str
    ) -> PoolInfo:
        self._check(staking_address)
        for info in self.pools:
            if info.staking_token.lower() == staking_address.lower():
                return info
        raise ChainReadError(f"unknown pool {staking_address}")

    async def read_locked_balances(self, owner_address: str) -> tuple[int, int]:
        if self.locked_fails:
            raise ChainReadError("LockedGold unreachable")
        return self.locked


@pytest.fixture()
def fake_reader() -> FakeChainReader:
    return FakeChainReader()


# ---------------------------------------------------------------------------
# Token and config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def tokens() -> dict[str, Token]:
    return {
        "CELO": Token(address=CELO, symbol="CELO", name="Celo"),
        "cUSD": Token(address=CUSD, symbol="cUSD", name="Celo Dollar"),
        "mcUSD": Token(address=MCUSD, symbol="mcUSD", name="Moola cUSD"),
        "UBE": Token(address=UBE, symbol="UBE", name="Ubeswap"),
        "POOF": Token(address=POOF, symbol="POOF", name="Poof Governance"),
    }


@pytest.fixture()
def registry(tokens: dict[str, Token]) -> TokenRegistry:
    return TokenRegistry(tokens.values())


@pytest.fixture()
def sample_pricing_config() -> PricingConfig:
    return PricingConfig(
        factory=FACTORY,
        primary_stable=MCUSD,
        secondary_stable=CUSD,
        pinned=(CUSD, MCUSD),
        overrides=(OverridePath(token=POOF, via=CELO),),
    )


@pytest.fixture()
def sample_app_config(
    tokens: dict[str, Token], sample_pricing_config: PricingConfig
) -> AppConfig:
    return AppConfig(
        chain=ChainConfig(
            rpc_endpoints=("https://rpc1.example.com", "https://rpc2.example.com"),
            rpc_timeout=10,
        ),
        balances=BalancesConfig(base_unit_decimals=18, dust_threshold=10**14),
        pricing=sample_pricing_config,
        pools=PoolsConfig(),
        locked=LockedConfig(enabled=True, token=CELO, locked_gold=LOCKED_GOLD),
        tokens=tuple(tokens.values()),
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    chain:
      rpc_endpoints: ["https://rpc.example.com"]
      rpc_timeout: 10
    balances:
      base_unit_decimals: 18
      dust_threshold: 100000000000000
    pricing:
      factory: "{FACTORY}"
      primary_stable: "{MCUSD}"
      secondary_stable: "{CUSD}"
      pinned: ["{CUSD}", "{MCUSD}"]
      overrides:
        - token: "{POOF}"
          via: "{CELO}"
    pools:
      pool_manager: "0x9Ee3600543eCcc85020D6bc77EB553d1747a65D2"
      staking_chains:
        - label: POOF dual rewards
          contracts:
            - "0x969D7653ddBAbb42589d73EfBC2051432332A940"
            - "0xC88B8d622c0322fb59ae4473D7A1798DE60785dD"
            - "0x573bcEBD09Ff805eD32df2cb1A968418DC74DCf7"
    locked:
      enabled: true
      token: "{CELO}"
    tokens:
      - address: "{CELO}"
        symbol: CELO
        name: Celo
      - address: "{CUSD}"
        symbol: cUSD
      - address: "{MCUSD}"
        symbol: mcUSD
      - address: "{POOF}"
        symbol: POOF
        logo_uri: "poof.png"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
