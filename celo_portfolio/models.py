"""Data models - all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum

from .errors import UnpricedTokenError


@dataclass(frozen=True)
class Token:
    """Registry entry for an ERC-20 token."""

    address: str
    symbol: str
    name: str = ""
    logo_uri: str = ""
    decimals: int = 18


@dataclass(frozen=True)
class TokenBalance:
    """Wallet balance of a single token.

    ``raw_amount`` is in base units. ``usd_value`` keeps the same base-unit
    scale so raw-scale sums stay additive until the single normalization in
    the aggregator.
    """

    token: Token
    raw_amount: int
    usd_value: Decimal | None = None


@dataclass(frozen=True)
class StakingChain:
    """Contracts from the outermost staking wrapper down to the base pool."""

    contracts: tuple[str, ...]
    label: str = ""

    @property
    def pool_address(self) -> str:
        return self.contracts[-1]

    @property
    def key(self) -> tuple[str, ...]:
        return tuple(c.lower() for c in self.contracts)


@dataclass(frozen=True)
class PooledPosition:
    """Wallet's resolved claim on the reserves of a liquidity pool.

    ``balances`` maps symbol to an amount already normalized by the base unit.
    """

    chain: StakingChain
    participant_tokens: tuple[Token, Token]
    balances: dict[str, Decimal] = field(default_factory=dict)
    usd_value: Decimal | None = None

    @property
    def pool_address(self) -> str:
        return self.chain.pool_address

    @property
    def label(self) -> str:
        return "-".join(t.symbol for t in self.participant_tokens)


@dataclass(frozen=True)
class LockedPosition:
    """Locked CELO held by the wallet, in base units."""

    token: Token
    total: int
    nonvoting: int
    usd_value: Decimal | None = None
    nonvoting_usd_value: Decimal | None = None


class FailureKind(StrEnum):
    TOKEN = "token"
    POOL = "pool"
    LOCKED = "locked"
    PRICE = "price"
    DISCOVERY = "discovery"


@dataclass(frozen=True)
class ResolutionFailure:
    """A single entry that could not be resolved; siblings are unaffected."""

    kind: FailureKind
    key: str
    reason: str
    symbol: str = ""


@dataclass(frozen=True)
class PoolInfo:
    """PoolManager record for one staking pool."""

    index: int
    staking_token: str
    pool_address: str
    weight: int = 0
    next_period: int = 0


@dataclass(frozen=True)
class PriceTable:
    """USD price per symbol, built once per valuation request."""

    prices: dict[str, Decimal] = field(default_factory=dict)
    failures: tuple[ResolutionFailure, ...] = ()

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.prices

    @property
    def symbols(self) -> tuple[str, ...]:
        return tuple(self.prices)

    def price_of(self, symbol: str) -> Decimal:
        try:
            return self.prices[symbol]
        except KeyError:
            raise UnpricedTokenError([symbol]) from None


@dataclass(frozen=True)
class BalanceSnapshot:
    """Everything the balance resolver found for one wallet."""

    token_balances: tuple[TokenBalance, ...] = ()
    pooled_positions: tuple[PooledPosition, ...] = ()
    locked_position: LockedPosition | None = None
    failures: tuple[ResolutionFailure, ...] = ()

    @property
    def token_addresses(self) -> list[str]:
        """Addresses of every token referenced by the snapshot, in order."""
        addresses = [b.token.address for b in self.token_balances]
        for position in self.pooled_positions:
            addresses.extend(t.address for t in position.participant_tokens)
        if self.locked_position is not None:
            addresses.append(self.locked_position.token.address)
        return addresses


@dataclass(frozen=True)
class Portfolio:
    """Fully valued portfolio.

    ``total`` is normalized USD. Entries whose symbol is listed in
    ``unpriced`` keep ``usd_value=None`` and are not part of the total.
    """

    address: str
    token_balances: tuple[TokenBalance, ...] = ()
    pooled_positions: tuple[PooledPosition, ...] = ()
    locked_position: LockedPosition | None = None
    total: Decimal = Decimal(0)
    failures: tuple[ResolutionFailure, ...] = ()
    unpriced: tuple[str, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.failures and not self.unpriced
