"""Contract function descriptors with ABI encoding for ``eth_call``."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from ...errors import ChainReadError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class ContractFunction:
    """A view function: name plus ABI input and output types."""

    name: str
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ("uint256",)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode_call(self, *args: Any) -> str:
        """Return the hex calldata for this function applied to ``args``.

        Raises:
            ChainReadError: an argument does not fit its ABI type.
        """
        try:
            values = [
                to_checksum_address(a) if t == "address" else a
                for t, a in zip(self.inputs, args, strict=True)
            ]
            data = encode(list(self.inputs), values)
        except (EncodingError, ValueError, TypeError) as e:
            raise ChainReadError(f"Cannot encode {self.signature} call: {e}") from e
        return "0x" + (self.selector + data).hex()

    def decode_result(self, result: Any) -> tuple[Any, ...]:
        """Decode hex return data; addresses come back checksummed."""
        if not isinstance(result, str) or result in ("", "0x"):
            raise ChainReadError(f"{self.signature} returned no data")
        try:
            values = decode(list(self.outputs), bytes.fromhex(result.removeprefix("0x")))
        except (DecodingError, ValueError) as e:
            raise ChainReadError(f"Cannot decode {self.signature} result: {e}") from e
        return tuple(
            to_checksum_address(v) if t == "address" else v
            for t, v in zip(self.outputs, values, strict=True)
        )


BALANCE_OF = ContractFunction("balanceOf", ("address",))
TOTAL_SUPPLY = ContractFunction("totalSupply")
GET_RESERVES = ContractFunction("getReserves", (), ("uint112", "uint112", "uint32"))
TOKEN0 = ContractFunction("token0", (), ("address",))
TOKEN1 = ContractFunction("token1", (), ("address",))
GET_PAIR = ContractFunction("getPair", ("address", "address"), ("address",))
POOLS_COUNT = ContractFunction("poolsCount")
POOLS_BY_INDEX = ContractFunction("poolsByIndex", ("uint256",), ("address",))
POOLS = ContractFunction(
    "pools", ("address",), ("uint256", "address", "address", "uint256", "uint256")
)
GET_ADDRESS_FOR_STRING = ContractFunction(
    "getAddressForStringOrDie", ("string",), ("address",)
)
TOTAL_LOCKED_GOLD = ContractFunction("getAccountTotalLockedGold", ("address",))
NONVOTING_LOCKED_GOLD = ContractFunction("getAccountNonvotingLockedGold", ("address",))
