"""Token registry: static address -> Token lookup."""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from .models import Token


class TokenRegistry:
    """Read-only lookup of known tokens keyed by address (case-insensitive)."""

    def __init__(self, tokens: Iterable[Token]) -> None:
        by_address: dict[str, Token] = {}
        for token in tokens:
            by_address.setdefault(token.address.lower(), token)
        self._by_address = MappingProxyType(by_address)

    def get(self, address: str) -> Token | None:
        return self._by_address.get(address.lower())

    def symbol_of(self, address: str) -> str | None:
        token = self.get(address)
        return token.symbol if token else None

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and address.lower() in self._by_address

    def __iter__(self) -> Iterator[Token]:
        return iter(self._by_address.values())

    def __len__(self) -> int:
        return len(self._by_address)
