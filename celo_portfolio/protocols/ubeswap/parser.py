"""Pure Ubeswap math: ownership shares, pool claims and exchange rates. No I/O."""
from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from fractions import Fraction

from ...models import Token

FEE_NUMERATOR = 997
FEE_DENOMINATOR = 1000


def is_above_dust(raw_amount: int, dust_threshold: int) -> bool:
    """Balances must be strictly greater than the threshold to count."""
    return raw_amount > dust_threshold


def compound_share(levels: Sequence[tuple[int, int]]) -> Fraction:
    """Multiply per-level ownership fractions, outermost level first.

    Each level is ``(held, total_supply)``. A zero supply anywhere means the
    holder owns nothing through this chain.
    """
    share = Fraction(1)
    for held, supply in levels:
        if supply <= 0:
            return Fraction(0)
        share *= Fraction(held, supply)
    return share


def to_decimal(value: Fraction) -> Decimal:
    return Decimal(value.numerator) / Decimal(value.denominator)


def pool_claims(
    share: Fraction, reserves: tuple[int, int], base_unit: int
) -> tuple[Decimal, Decimal]:
    """Normalized amounts of each reserve owned through ``share``."""
    reserve0, reserve1 = reserves
    return (
        to_decimal(share * reserve0 / base_unit),
        to_decimal(share * reserve1 / base_unit),
    )


def claim_balances(
    tokens: tuple[Token, Token], claims: tuple[Decimal, Decimal]
) -> dict[str, Decimal]:
    """Map claims onto token symbols, summing if both sides share a symbol."""
    balances: dict[str, Decimal] = {}
    for token, amount in zip(tokens, claims, strict=True):
        balances[token.symbol] = balances.get(token.symbol, Decimal(0)) + amount
    return balances


def sorts_before(address_a: str, address_b: str) -> bool:
    """Canonical pair order: token0 is the numerically smaller address."""
    return int(address_a, 16) < int(address_b, 16)


def exchange_rate(reserve0: int, reserve1: int, invert: bool) -> Decimal | None:
    """Constant-product rate with the 0.3% fee folded in.

    ``997 * reserve0 / (1000 * reserve1 + 997)``, inverted when the queried
    token is the pair's token0. Returns None when either reserve is empty.
    """
    if reserve0 <= 0 or reserve1 <= 0:
        return None
    numerator = Decimal(FEE_NUMERATOR * reserve0)
    denominator = Decimal(reserve1 * FEE_DENOMINATOR + FEE_NUMERATOR)
    rate = numerator / denominator
    return 1 / rate if invert else rate
