"""Chain reader protocols - typed read-only contract access per contract kind.

All methods return raw integers in base units and raise
``ChainReadError`` when the underlying call fails.
"""
from typing import Protocol

from ..models import PoolInfo


class ERC20Reader(Protocol):
    async def read_balance(self, token_address: str, owner_address: str) -> int: ...

    async def read_total_supply(self, contract_address: str) -> int: ...


class PairReader(Protocol):
    async def read_reserves(self, pair_address: str) -> tuple[int, int]: ...

    async def read_token0(self, pair_address: str) -> str: ...

    async def read_token1(self, pair_address: str) -> str: ...


class FactoryReader(Protocol):
    async def read_pair_address(
        self, factory_address: str, token_a: str, token_b: str
    ) -> str: ...


class PoolManagerReader(Protocol):
    async def read_pool_count(self, manager_address: str) -> int: ...

    async def read_pool_by_index(self, manager_address: str, index: int) -> str: ...

    async def read_pool_info(
        self, manager_address: str, staking_address: str
    ) -> PoolInfo: ...


class LockedGoldReader(Protocol):
    async def read_locked_balances(self, owner_address: str) -> tuple[int, int]:
        """Return ``(total, nonvoting)`` locked amounts for the owner."""
        ...


class ChainReader(
    ERC20Reader, PairReader, FactoryReader, PoolManagerReader, LockedGoldReader, Protocol
):
    """Every read the valuation engine needs from the chain."""
