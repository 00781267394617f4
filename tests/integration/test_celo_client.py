"""Integration tests for the Celo client: RPC fallback, calls and decoding."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from eth_abi import encode

from celo_portfolio.chains.celo import CeloClient
from celo_portfolio.chains.celo import abi
from celo_portfolio.config import ChainConfig
from celo_portfolio.errors import ChainReadError

OWNER = "0x1111111111111111111111111111111111111111"
TOKEN = "0x471EcE3750Da237f93B8E339c536989b8978a438"
LOCKED_GOLD = "0x6cc083aed9e3ebe302a6336dbc7c921c9f03349e"

SESSION = "celo_portfolio.chains.celo.client.aiohttp.ClientSession"
CONNECTOR = "celo_portfolio.chains.celo.client.aiohttp.TCPConnector"


@pytest.fixture()
def client() -> CeloClient:
    return CeloClient(
        ChainConfig(
            rpc_endpoints=(
                "https://rpc1.example.com",
                "https://rpc2.example.com",
                "https://rpc3.example.com",
            ),
            rpc_timeout=5,
        )
    )


def _result(types: list[str], values: list) -> dict:
    return {"jsonrpc": "2.0", "id": 1, "result": "0x" + encode(types, values).hex()}


def _response(data: dict):
    response = AsyncMock()
    response.json = AsyncMock(return_value=data)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def _mock_session(response_data: dict | None = None, error: Exception | None = None):
    """Create a mock aiohttp session that returns given data or raises error."""
    mock_session = AsyncMock()
    if error:
        mock_session.post = MagicMock(side_effect=error)
    else:
        mock_session.post = MagicMock(return_value=_response(response_data or {}))
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


def _sequence_session(*responses: dict):
    """Session whose successive posts answer with ``responses`` in order."""
    mock_session = AsyncMock()
    mock_session.post = MagicMock(side_effect=[_response(r) for r in responses])
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)
    return mock_session


class TestRpcCall:
    @pytest.mark.asyncio
    async def test_successful_call(self, client: CeloClient) -> None:
        mock_session = _mock_session({"jsonrpc": "2.0", "result": "0x01"})

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                result = await client.rpc_call("eth_blockNumber", [])

        assert result == "0x01"
        payload = mock_session.post.call_args.kwargs["json"]
        assert payload["method"] == "eth_blockNumber"

    @pytest.mark.asyncio
    async def test_rpc_error_raises(self, client: CeloClient) -> None:
        mock_session = _mock_session(
            {"jsonrpc": "2.0", "error": {"code": -32000, "message": "bad"}}
        )

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(ChainReadError, match="All RPC endpoints failed"):
                    await client.rpc_call("eth_call", [])

        assert mock_session.post.call_count == 3

    @pytest.mark.asyncio
    async def test_fallback_on_connection_error(self, client: CeloClient) -> None:
        """When first endpoint fails, should try the next one."""
        call_count = 0
        success_response = _response({"jsonrpc": "2.0", "result": "0x02"})

        def side_effect(*args, **kwargs):
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise ConnectionError("first endpoint down")
            return success_response

        mock_session = AsyncMock()
        mock_session.post = MagicMock(side_effect=side_effect)
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=None)

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                result = await client.rpc_call("eth_call", [])

        assert result == "0x02"
        assert client.current_rpc_index == 1
        assert mock_session.post.call_args_list[1].args[0] == "https://rpc2.example.com"

    @pytest.mark.asyncio
    async def test_all_endpoints_fail(self, client: CeloClient) -> None:
        mock_session = _mock_session(error=ConnectionError("down"))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(ChainReadError, match="All RPC endpoints failed"):
                    await client.rpc_call("eth_call", [])


class TestContractReads:
    @pytest.mark.asyncio
    async def test_read_balance(self, client: CeloClient) -> None:
        mock_session = _mock_session(_result(["uint256"], [12345]))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                balance = await client.read_balance(TOKEN, OWNER)

        assert balance == 12345
        tx, block = mock_session.post.call_args.kwargs["json"]["params"]
        assert block == "latest"
        assert tx["to"] == TOKEN
        assert tx["data"] == abi.BALANCE_OF.encode_call(OWNER)

    @pytest.mark.asyncio
    async def test_read_reserves_drops_timestamp(self, client: CeloClient) -> None:
        mock_session = _mock_session(
            _result(["uint112", "uint112", "uint32"], [100, 200, 1700000000])
        )

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                reserves = await client.read_reserves(TOKEN)

        assert reserves == (100, 200)

    @pytest.mark.asyncio
    async def test_read_pool_info(self, client: CeloClient) -> None:
        lp = "0xa100000000000000000000000000000000000001"
        rewards = "0xb100000000000000000000000000000000000001"
        mock_session = _mock_session(
            _result(
                ["uint256", "address", "address", "uint256", "uint256"],
                [3, lp, rewards, 50, 7],
            )
        )

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                info = await client.read_pool_info(TOKEN, lp)

        assert info.index == 3
        assert info.staking_token.lower() == lp
        assert info.pool_address.lower() == rewards
        assert info.weight == 50

    @pytest.mark.asyncio
    async def test_empty_result_raises(self, client: CeloClient) -> None:
        mock_session = _mock_session({"jsonrpc": "2.0", "result": "0x"})

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(ChainReadError):
                    await client.read_total_supply(TOKEN)


class TestLockedBalances:
    @pytest.mark.asyncio
    async def test_looks_up_locked_gold_once(self, client: CeloClient) -> None:
        mock_session = _sequence_session(
            _result(["address"], [LOCKED_GOLD.lower()]),
            _result(["uint256"], [500]),
            _result(["uint256"], [100]),
            _result(["uint256"], [600]),
            _result(["uint256"], [0]),
        )

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                first = await client.read_locked_balances(OWNER)
                second = await client.read_locked_balances(OWNER)

        assert first == (500, 100)
        assert second == (600, 0)
        assert mock_session.post.call_count == 5
        registry_tx = mock_session.post.call_args_list[0].kwargs["json"]["params"][0]
        assert registry_tx["to"] == "0x000000000000000000000000000000000000ce10"
        locked_tx = mock_session.post.call_args_list[1].kwargs["json"]["params"][0]
        assert locked_tx["to"].lower() == LOCKED_GOLD.lower()

    @pytest.mark.asyncio
    async def test_configured_locked_gold_skips_registry(self) -> None:
        client = CeloClient(
            ChainConfig(rpc_endpoints=("https://rpc1.example.com",)),
            locked_gold_address=LOCKED_GOLD,
        )
        mock_session = _sequence_session(
            _result(["uint256"], [5]), _result(["uint256"], [2])
        )

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                assert await client.read_locked_balances(OWNER) == (5, 2)

        assert mock_session.post.call_count == 2


class TestMalformedArguments:
    @pytest.mark.asyncio
    async def test_bad_owner_is_a_chain_read_error(self, client: CeloClient) -> None:
        mock_session = _mock_session(_result(["uint256"], [1]))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(ChainReadError, match="Cannot encode"):
                    await client.read_balance(TOKEN, "0x1234")

        mock_session.post.assert_not_called()
