"""On-chain USD prices from Ubeswap pair reserves."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from decimal import Decimal

from ..config import PricingConfig
from ..errors import ChainReadError, ZeroLiquidityError
from ..interfaces.chain import ChainReader
from ..models import FailureKind, PriceTable, ResolutionFailure, Token
from ..protocols.ubeswap import parser
from ..registry import TokenRegistry

logger = logging.getLogger(__name__)


class PriceResolver:
    """Build a PriceTable for a set of token addresses.

    Direct prices come from the token's pair with the primary stable token,
    falling back to the secondary stable token when that pair has no
    liquidity. Pinned stable tokens are worth exactly 1. Override paths price
    a token through another token whose price is resolved first.
    """

    def __init__(
        self, reader: ChainReader, registry: TokenRegistry, config: PricingConfig
    ) -> None:
        self._reader = reader
        self._registry = registry
        self._factory = config.factory
        self._primary = config.primary_stable
        self._secondary = config.secondary_stable
        self._pinned = {address.lower() for address in config.pinned}
        self._overrides = {o.token.lower(): o for o in config.overrides}

    async def exchange_rate(self, token_a: str, token_b: str) -> Decimal:
        """Units of ``token_b`` per unit of ``token_a``.

        Raises:
            ZeroLiquidityError: no pair exists or a reserve is empty.
            ChainReadError: a read failed.
        """
        pair = await self._reader.read_pair_address(self._factory, token_a, token_b)
        if int(pair, 16) == 0:
            raise ZeroLiquidityError(token_a, token_b)

        reserve0, reserve1 = await self._reader.read_reserves(pair)
        rate = parser.exchange_rate(
            reserve0, reserve1, invert=parser.sorts_before(token_a, token_b)
        )
        if rate is None:
            raise ZeroLiquidityError(token_a, token_b)
        return rate

    async def _stable_price(self, token: Token) -> Decimal:
        try:
            return await self.exchange_rate(token.address, self._primary)
        except ZeroLiquidityError:
            logger.debug(
                "No primary stable liquidity for %s, trying secondary", token.symbol
            )
            return await self.exchange_rate(token.address, self._secondary)

    async def _direct_price(
        self, token: Token
    ) -> tuple[str, Decimal] | ResolutionFailure:
        try:
            price = await self._stable_price(token)
        except (ZeroLiquidityError, ChainReadError) as e:
            logger.warning("Could not price %s: %s", token.symbol, e)
            return ResolutionFailure(
                kind=FailureKind.PRICE,
                key=token.address,
                reason=str(e),
                symbol=token.symbol,
            )
        return token.symbol, price

    def _requested_tokens(self, addresses: Iterable[str]) -> dict[str, Token]:
        requested: dict[str, Token] = {}
        for address in addresses:
            token = self._registry.get(address)
            if token is None:
                logger.debug("Skipping unregistered token %s", address)
                continue
            requested.setdefault(address.lower(), token)
        return requested

    async def resolve(self, addresses: Iterable[str]) -> PriceTable:
        """Prices for every registered token in ``addresses``."""
        requested = self._requested_tokens(addresses)
        overrides = [self._overrides[a] for a in requested if a in self._overrides]

        direct = {a: t for a, t in requested.items() if a not in self._overrides}
        for override in overrides:
            base = self._registry.get(override.via)
            if base is not None:
                direct.setdefault(override.via.lower(), base)

        prices: dict[str, Decimal] = {}
        failures: list[ResolutionFailure] = []

        pending: list[Token] = []
        for address, token in direct.items():
            if address in self._pinned:
                prices[token.symbol] = Decimal(1)
            else:
                pending.append(token)

        for result in await asyncio.gather(*(self._direct_price(t) for t in pending)):
            if isinstance(result, ResolutionFailure):
                failures.append(result)
            else:
                symbol, price = result
                prices[symbol] = price

        # overrides depend on base prices resolved above, so run them in order
        for override in overrides:
            target = requested[override.token.lower()]
            result = await self._override_price(target, override.via, prices)
            if isinstance(result, ResolutionFailure):
                failures.append(result)
            else:
                symbol, price = result
                prices[symbol] = price

        logger.info("Priced %d of %d tokens", len(prices), len(requested))
        return PriceTable(prices=prices, failures=tuple(failures))

    async def _override_price(
        self, token: Token, via: str, prices: dict[str, Decimal]
    ) -> tuple[str, Decimal] | ResolutionFailure:
        base = self._registry.get(via)
        if base is None or base.symbol not in prices:
            reason = f"Base price for {via} unavailable"
            logger.warning("Could not price %s: %s", token.symbol, reason)
            return ResolutionFailure(
                kind=FailureKind.PRICE,
                key=token.address,
                reason=reason,
                symbol=token.symbol,
            )

        try:
            rate = await self.exchange_rate(token.address, base.address)
        except (ZeroLiquidityError, ChainReadError) as e:
            logger.warning("Could not price %s via %s: %s", token.symbol, base.symbol, e)
            return ResolutionFailure(
                kind=FailureKind.PRICE,
                key=token.address,
                reason=str(e),
                symbol=token.symbol,
            )
        return token.symbol, rate * prices[base.symbol]
