"""Protocol interfaces for the portfolio valuation engine."""
from .chain import (
    ChainReader,
    ERC20Reader,
    FactoryReader,
    LockedGoldReader,
    PairReader,
    PoolManagerReader,
)

__all__ = [
    "ChainReader",
    "ERC20Reader",
    "FactoryReader",
    "LockedGoldReader",
    "PairReader",
    "PoolManagerReader",
]
