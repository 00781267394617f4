"""Celo JSON-RPC client with endpoint fallback, implementing ChainReader."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import CELO_CORE_REGISTRY, ChainConfig
from ...errors import ChainReadError
from ...models import PoolInfo
from . import abi

logger = logging.getLogger(__name__)


class CeloClient:
    """Read-only contract access over JSON-RPC ``eth_call``."""

    def __init__(
        self,
        config: ChainConfig,
        locked_gold_address: str = "",
        core_registry: str = CELO_CORE_REGISTRY,
    ) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0
        self._core_registry = core_registry
        self._locked_gold_address = locked_gold_address

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise ChainReadError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise ChainReadError(f"All RPC endpoints failed. Last error: {last_error}")

    async def call(
        self, contract_address: str, function: abi.ContractFunction, *args: Any
    ) -> tuple[Any, ...]:
        """Run a view function via ``eth_call`` at the latest block."""
        tx = {"to": contract_address, "data": function.encode_call(*args)}
        result = await self.rpc_call("eth_call", [tx, "latest"])
        return function.decode_result(result)

    # ------------------------------------------------------------------
    # ERC-20
    # ------------------------------------------------------------------

    async def read_balance(self, token_address: str, owner_address: str) -> int:
        (balance,) = await self.call(token_address, abi.BALANCE_OF, owner_address)
        return balance

    async def read_total_supply(self, contract_address: str) -> int:
        (supply,) = await self.call(contract_address, abi.TOTAL_SUPPLY)
        return supply

    # ------------------------------------------------------------------
    # Pairs and factory
    # ------------------------------------------------------------------

    async def read_reserves(self, pair_address: str) -> tuple[int, int]:
        reserve0, reserve1, _ = await self.call(pair_address, abi.GET_RESERVES)
        return reserve0, reserve1

    async def read_token0(self, pair_address: str) -> str:
        (token,) = await self.call(pair_address, abi.TOKEN0)
        return token

    async def read_token1(self, pair_address: str) -> str:
        (token,) = await self.call(pair_address, abi.TOKEN1)
        return token

    async def read_pair_address(
        self, factory_address: str, token_a: str, token_b: str
    ) -> str:
        (pair,) = await self.call(factory_address, abi.GET_PAIR, token_a, token_b)
        return pair

    # ------------------------------------------------------------------
    # Ubeswap pool manager
    # ------------------------------------------------------------------

    async def read_pool_count(self, manager_address: str) -> int:
        (count,) = await self.call(manager_address, abi.POOLS_COUNT)
        return count

    async def read_pool_by_index(self, manager_address: str, index: int) -> str:
        (staking,) = await self.call(manager_address, abi.POOLS_BY_INDEX, index)
        return staking

    async def read_pool_info(
        self, manager_address: str, staking_address: str
    ) -> PoolInfo:
        index, staking_token, pool_address, weight, next_period = await self.call(
            manager_address, abi.POOLS, staking_address
        )
        return PoolInfo(
            index=index,
            staking_token=staking_token,
            pool_address=pool_address,
            weight=weight,
            next_period=next_period,
        )

    # ------------------------------------------------------------------
    # Locked CELO
    # ------------------------------------------------------------------

    async def _get_locked_gold_address(self) -> str:
        if not self._locked_gold_address:
            (address,) = await self.call(
                self._core_registry, abi.GET_ADDRESS_FOR_STRING, "LockedGold"
            )
            logger.debug("Resolved LockedGold at %s", address)
            self._locked_gold_address = address
        return self._locked_gold_address

    async def read_locked_balances(self, owner_address: str) -> tuple[int, int]:
        locked_gold = await self._get_locked_gold_address()
        (total,) = await self.call(locked_gold, abi.TOTAL_LOCKED_GOLD, owner_address)
        (nonvoting,) = await self.call(
            locked_gold, abi.NONVOTING_LOCKED_GOLD, owner_address
        )
        return total, nonvoting
