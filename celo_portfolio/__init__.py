"""Celo wallet portfolio valuation from on-chain balances and Ubeswap prices."""

__version__ = "0.1.0"
