"""Wallet balances: plain tokens, staked pool shares and locked CELO."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TypeVar

from ..config import AppConfig
from ..errors import ChainReadError
from ..interfaces.chain import ChainReader
from ..models import (
    BalanceSnapshot,
    FailureKind,
    LockedPosition,
    PooledPosition,
    ResolutionFailure,
    StakingChain,
    Token,
    TokenBalance,
)
from ..protocols.ubeswap import UbeswapPools
from ..protocols.ubeswap import parser
from ..registry import TokenRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _partition(
    results: Iterable[T | ResolutionFailure | None],
) -> tuple[tuple[T, ...], tuple[ResolutionFailure, ...]]:
    """Split gathered results into entries and failures, dropping omissions."""
    entries: list[T] = []
    failures: list[ResolutionFailure] = []
    for result in results:
        if result is None:
            continue
        if isinstance(result, ResolutionFailure):
            failures.append(result)
        else:
            entries.append(result)
    return tuple(entries), tuple(failures)


class BalanceResolver:
    """Resolve everything a wallet holds, one concurrent read per entry.

    A failed read is reported as a ``ResolutionFailure`` for that entry only;
    it never aborts sibling reads.
    """

    def __init__(
        self, reader: ChainReader, registry: TokenRegistry, config: AppConfig
    ) -> None:
        self._reader = reader
        self._registry = registry
        self._dust_threshold = config.balances.dust_threshold
        self._base_unit = config.balances.base_unit
        self._locked = config.locked
        self._pools = UbeswapPools(reader, config.pools)

    # ------------------------------------------------------------------
    # Plain token balances
    # ------------------------------------------------------------------

    async def _token_balance(
        self, token: Token, wallet: str
    ) -> TokenBalance | ResolutionFailure | None:
        try:
            raw_amount = await self._reader.read_balance(token.address, wallet)
        except ChainReadError as e:
            logger.warning("Balance read failed for %s: %s", token.symbol, e)
            return ResolutionFailure(
                kind=FailureKind.TOKEN,
                key=token.address,
                reason=str(e),
                symbol=token.symbol,
            )

        if not parser.is_above_dust(raw_amount, self._dust_threshold):
            return None
        return TokenBalance(token=token, raw_amount=raw_amount)

    async def resolve_token_balances(
        self, wallet: str
    ) -> tuple[tuple[TokenBalance, ...], tuple[ResolutionFailure, ...]]:
        """Balances above the dust threshold for every registry token."""
        results = await asyncio.gather(
            *(self._token_balance(token, wallet) for token in self._registry)
        )
        balances, failures = _partition(results)
        logger.info(
            "Found %d token balances (%d failed reads)", len(balances), len(failures)
        )
        return balances, failures

    # ------------------------------------------------------------------
    # Pooled positions
    # ------------------------------------------------------------------

    async def _pool_tokens(self, pool: str) -> tuple[Token, Token] | None:
        address0, address1 = await asyncio.gather(
            self._reader.read_token0(pool), self._reader.read_token1(pool)
        )
        token0 = self._registry.get(address0)
        token1 = self._registry.get(address1)
        if token0 is None or token1 is None:
            logger.debug("Pool %s has an unregistered token, skipping", pool)
            return None
        return token0, token1

    async def _chain_levels(
        self, chain: StakingChain, wallet: str
    ) -> list[tuple[int, int]] | None:
        """Read ``(held, total_supply)`` for every level of the chain."""
        contracts = chain.contracts
        own = await self._reader.read_balance(contracts[0], wallet)
        if own == 0:
            return None

        # each wrapper is the holder at the level below it
        held = await asyncio.gather(
            *(
                self._reader.read_balance(contract, holder)
                for contract, holder in zip(contracts[1:], contracts[:-1])
            )
        )
        supplies = await asyncio.gather(
            *(self._reader.read_total_supply(contract) for contract in contracts)
        )
        return list(zip([own, *held], supplies))

    async def _pooled_position(
        self, chain: StakingChain, wallet: str
    ) -> PooledPosition | ResolutionFailure | None:
        pool = chain.pool_address
        try:
            tokens = await self._pool_tokens(pool)
            if tokens is None:
                return None
            levels = await self._chain_levels(chain, wallet)
            if levels is None:
                return None
            reserves = await self._reader.read_reserves(pool)
        except ChainReadError as e:
            logger.warning("Pool read failed for %s: %s", chain.label or pool, e)
            return ResolutionFailure(
                kind=FailureKind.POOL, key=chain.label or pool, reason=str(e)
            )

        share = parser.compound_share(levels)
        if share == 0:
            return None

        claims = parser.pool_claims(share, reserves, self._base_unit)
        if any(claim <= 0 for claim in claims):
            return None

        position = PooledPosition(
            chain=chain,
            participant_tokens=tokens,
            balances=parser.claim_balances(tokens, claims),
        )
        logger.debug("Resolved %s position: %s", position.label, position.balances)
        return position

    async def resolve_pooled_positions(
        self, wallet: str
    ) -> tuple[tuple[PooledPosition, ...], tuple[ResolutionFailure, ...]]:
        """Claims on every pool the wallet owns, directly or through stakes."""
        chains, discovery_failures = await self._pools.staking_chains()
        results = await asyncio.gather(
            *(self._pooled_position(chain, wallet) for chain in chains)
        )
        positions, failures = _partition(results)
        logger.info(
            "Found %d pooled positions across %d staking chains",
            len(positions),
            len(chains),
        )
        return positions, discovery_failures + failures

    # ------------------------------------------------------------------
    # Locked CELO
    # ------------------------------------------------------------------

    async def resolve_locked_position(
        self, wallet: str
    ) -> tuple[LockedPosition | None, tuple[ResolutionFailure, ...]]:
        if not self._locked.enabled:
            return None, ()

        token = self._registry.get(self._locked.token)
        if token is None:
            return None, ()

        try:
            total, nonvoting = await self._reader.read_locked_balances(wallet)
        except ChainReadError as e:
            logger.warning("Locked %s read failed: %s", token.symbol, e)
            failure = ResolutionFailure(
                kind=FailureKind.LOCKED,
                key=token.address,
                reason=str(e),
                symbol=token.symbol,
            )
            return None, (failure,)

        if total <= 0 and nonvoting <= 0:
            return None, ()
        return LockedPosition(token=token, total=total, nonvoting=nonvoting), ()

    # ------------------------------------------------------------------
    # Everything
    # ------------------------------------------------------------------

    async def resolve(self, wallet: str) -> BalanceSnapshot:
        """Run all balance lookups for ``wallet`` concurrently."""
        (
            (token_balances, token_failures),
            (pooled_positions, pool_failures),
            (locked_position, locked_failures),
        ) = await asyncio.gather(
            self.resolve_token_balances(wallet),
            self.resolve_pooled_positions(wallet),
            self.resolve_locked_position(wallet),
        )
        return BalanceSnapshot(
            token_balances=token_balances,
            pooled_positions=pooled_positions,
            locked_position=locked_position,
            failures=token_failures + pool_failures + locked_failures,
        )
