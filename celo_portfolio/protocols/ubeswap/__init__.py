"""Ubeswap liquidity pools and staking chains."""
from .pools import UbeswapPools

__all__ = ["UbeswapPools"]
