"""Exception types raised while valuing a portfolio."""
from __future__ import annotations


class PortfolioError(Exception):
    """Base class for valuation errors."""


class ChainReadError(PortfolioError):
    """A read-only contract call could not be completed."""


class ZeroLiquidityError(PortfolioError):
    """A pair does not exist or holds no reserves, so its rate is undefined."""

    def __init__(self, token_a: str, token_b: str) -> None:
        super().__init__(f"No liquidity between {token_a} and {token_b}")
        self.token_a = token_a
        self.token_b = token_b


class UnpricedTokenError(PortfolioError):
    """One or more referenced symbols have no entry in the price table."""

    def __init__(self, symbols: list[str] | tuple[str, ...]) -> None:
        self.symbols = tuple(sorted(set(symbols)))
        super().__init__(f"No price for: {', '.join(self.symbols)}")
