"""Portfolio valuation orchestration: balances, then prices, then totals."""
from __future__ import annotations

import logging

from ..chains.celo import CeloClient
from ..config import AppConfig
from ..interfaces.chain import ChainReader
from ..models import Portfolio
from ..registry import TokenRegistry
from .aggregator import PortfolioAggregator
from .balance_resolver import BalanceResolver
from .price_resolver import PriceResolver

logger = logging.getLogger(__name__)


class PortfolioService:
    """Values a wallet's holdings for one request at a time."""

    def __init__(self, config: AppConfig, reader: ChainReader | None = None) -> None:
        self._config = config
        self._registry = TokenRegistry(config.tokens)

        if reader is None:
            reader = CeloClient(
                config.chain,
                locked_gold_address=config.locked.locked_gold,
                core_registry=config.locked.core_registry,
            )
        self._reader = reader

        self._balances = BalanceResolver(reader, self._registry, config)
        self._prices = PriceResolver(reader, self._registry, config.pricing)
        self._aggregator = PortfolioAggregator(config.balances.base_unit)

    @property
    def registry(self) -> TokenRegistry:
        return self._registry

    async def value(self, wallet: str, *, allow_unpriced: bool = False) -> Portfolio:
        """Resolve, price and aggregate everything ``wallet`` holds.

        Raises:
            UnpricedTokenError: a held symbol could not be priced and
                ``allow_unpriced`` is False.
        """
        logger.info("Valuing portfolio for %s", wallet)

        snapshot = await self._balances.resolve(wallet)
        price_table = await self._prices.resolve(snapshot.token_addresses)

        portfolio = self._aggregator.aggregate(
            snapshot.token_balances,
            snapshot.pooled_positions,
            snapshot.locked_position,
            price_table,
            address=wallet,
            failures=snapshot.failures + price_table.failures,
            allow_unpriced=allow_unpriced,
        )

        logger.info(
            "Portfolio total for %s: $%.2f (%d failed entries)",
            wallet,
            portfolio.total,
            len(portfolio.failures),
        )
        return portfolio
