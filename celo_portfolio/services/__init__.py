"""Service modules"""
from .aggregator import PortfolioAggregator
from .balance_resolver import BalanceResolver
from .price_resolver import PriceResolver
from .valuation import PortfolioService

__all__ = ["BalanceResolver", "PortfolioAggregator", "PortfolioService", "PriceResolver"]
