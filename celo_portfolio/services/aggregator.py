"""Combine balances and prices into a valued Portfolio."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal

from ..errors import UnpricedTokenError
from ..models import (
    LockedPosition,
    PooledPosition,
    Portfolio,
    PriceTable,
    ResolutionFailure,
    TokenBalance,
)

logger = logging.getLogger(__name__)


def referenced_symbols(
    token_balances: Sequence[TokenBalance],
    pooled_positions: Sequence[PooledPosition],
    locked_position: LockedPosition | None,
) -> set[str]:
    """Every symbol that needs a price to value these entries."""
    symbols = {b.token.symbol for b in token_balances}
    for position in pooled_positions:
        symbols.update(position.balances)
    if locked_position is not None:
        symbols.add(locked_position.token.symbol)
    return symbols


class PortfolioAggregator:
    """Pure valuation of resolved balances against a price table.

    Token balance values stay in base units until the single division by
    ``base_unit`` when the total is formed; pooled amounts are already
    normalized; locked amounts are normalized here.
    """

    def __init__(self, base_unit: int = 10**18) -> None:
        self._base_unit = Decimal(base_unit)

    def aggregate(
        self,
        token_balances: Sequence[TokenBalance],
        pooled_positions: Sequence[PooledPosition],
        locked_position: LockedPosition | None,
        price_table: PriceTable,
        *,
        address: str = "",
        failures: Sequence[ResolutionFailure] = (),
        allow_unpriced: bool = False,
    ) -> Portfolio:
        """Value every entry and sum the total.

        Raises:
            UnpricedTokenError: a referenced symbol has no price and
                ``allow_unpriced`` is False. With ``allow_unpriced`` those
                entries keep ``usd_value=None``, are left out of the total and
                their symbols are listed in ``Portfolio.unpriced``.
        """
        symbols = referenced_symbols(token_balances, pooled_positions, locked_position)
        missing = sorted(s for s in symbols if s not in price_table)
        if missing and not allow_unpriced:
            raise UnpricedTokenError(missing)
        unpriced = set(missing)

        valued_balances: list[TokenBalance] = []
        raw_total = Decimal(0)
        for balance in token_balances:
            if balance.token.symbol in unpriced:
                valued_balances.append(replace(balance, usd_value=None))
                continue
            usd_value = balance.raw_amount * price_table.price_of(balance.token.symbol)
            raw_total += usd_value
            valued_balances.append(replace(balance, usd_value=usd_value))

        valued_positions: list[PooledPosition] = []
        pooled_total = Decimal(0)
        for position in pooled_positions:
            if unpriced.intersection(position.balances):
                valued_positions.append(replace(position, usd_value=None))
                continue
            usd_value = sum(
                (
                    amount * price_table.price_of(symbol)
                    for symbol, amount in position.balances.items()
                ),
                Decimal(0),
            )
            pooled_total += usd_value
            valued_positions.append(replace(position, usd_value=usd_value))

        valued_locked = locked_position
        locked_total = Decimal(0)
        if locked_position is not None:
            symbol = locked_position.token.symbol
            if symbol in unpriced:
                valued_locked = replace(
                    locked_position, usd_value=None, nonvoting_usd_value=None
                )
            else:
                price = price_table.price_of(symbol)
                locked_total = locked_position.total * price / self._base_unit
                valued_locked = replace(
                    locked_position,
                    usd_value=locked_total,
                    nonvoting_usd_value=locked_position.nonvoting * price / self._base_unit,
                )

        total = raw_total / self._base_unit + pooled_total + locked_total
        logger.debug(
            "Aggregated %d balances, %d pools, total $%s",
            len(valued_balances),
            len(valued_positions),
            total,
        )

        return Portfolio(
            address=address,
            token_balances=tuple(valued_balances),
            pooled_positions=tuple(valued_positions),
            locked_position=valued_locked,
            total=total,
            failures=tuple(failures),
            unpriced=tuple(missing),
        )
