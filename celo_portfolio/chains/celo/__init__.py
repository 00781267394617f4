"""Celo chain client."""
from .client import CeloClient

__all__ = ["CeloClient"]
