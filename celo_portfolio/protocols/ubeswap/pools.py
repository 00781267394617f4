"""Ubeswap staking chain discovery via the PoolManager contract."""
from __future__ import annotations

import asyncio
import logging

from ...config import PoolsConfig
from ...errors import ChainReadError
from ...interfaces.chain import PoolManagerReader
from ...models import FailureKind, ResolutionFailure, StakingChain

logger = logging.getLogger(__name__)


class UbeswapPools:
    """Enumerate staking chains: PoolManager pools plus configured chains."""

    def __init__(self, reader: PoolManagerReader, config: PoolsConfig) -> None:
        self._reader = reader
        self._manager = config.pool_manager
        self._configured = config.staking_chains

    async def _chain_for_index(
        self, index: int
    ) -> StakingChain | ResolutionFailure:
        try:
            staking = await self._reader.read_pool_by_index(self._manager, index)
            info = await self._reader.read_pool_info(self._manager, staking)
        except ChainReadError as e:
            logger.warning("Could not read pool #%d from PoolManager: %s", index, e)
            return ResolutionFailure(
                kind=FailureKind.DISCOVERY, key=f"pool #{index}", reason=str(e)
            )
        return StakingChain(
            contracts=(info.pool_address, info.staking_token),
            label=f"ubeswap pool #{index}",
        )

    async def _managed_chains(
        self,
    ) -> tuple[list[StakingChain], list[ResolutionFailure]]:
        if not self._manager:
            return [], []

        try:
            count = await self._reader.read_pool_count(self._manager)
        except ChainReadError as e:
            logger.warning("Could not read PoolManager pool count: %s", e)
            failure = ResolutionFailure(
                kind=FailureKind.DISCOVERY, key=self._manager, reason=str(e)
            )
            return [], [failure]

        results = await asyncio.gather(
            *(self._chain_for_index(i) for i in range(count))
        )
        chains = [r for r in results if isinstance(r, StakingChain)]
        failures = [r for r in results if isinstance(r, ResolutionFailure)]
        logger.info("PoolManager lists %d pools", count)
        return chains, failures

    async def staking_chains(
        self,
    ) -> tuple[tuple[StakingChain, ...], tuple[ResolutionFailure, ...]]:
        """Return de-duplicated staking chains and any discovery failures."""
        managed, failures = await self._managed_chains()

        chains: list[StakingChain] = []
        seen: set[tuple[str, ...]] = set()
        for chain in [*managed, *self._configured]:
            if chain.key in seen:
                continue
            seen.add(chain.key)
            chains.append(chain)

        return tuple(chains), tuple(failures)
