"""
Messaging options (LayerZero "type 3" layout).

Options tell the destination executor how much gas and native value to supply
when calling the receiver. Layout::

    uint16 type (= 3)
    repeated: uint8 worker_id | uint16 size | uint8 option_type | body[size - 1]

Executor options (worker 1):

* ``LZ_RECEIVE``: ``uint128 gas`` optionally followed by ``uint128 value``
* ``NATIVE_DROP``: ``uint128 amount`` followed by ``bytes32 receiver``
"""

from dataclasses import dataclass, field
from typing import List, Union

from eth_utils import to_bytes

from ..chain import from_bytes32, to_bytes32
from ..errors import InvalidOptions, ValidationError

TYPE_3 = 3
EXECUTOR_WORKER_ID = 1
OPTION_TYPE_LZRECEIVE = 1
OPTION_TYPE_NATIVE_DROP = 2

_UINT128_MAX = 2**128 - 1


def _uint128(value: int, field_name: str) -> bytes:
    if not isinstance(value, int) or value < 0 or value > _UINT128_MAX:
        raise InvalidOptions(f"{field_name} must fit in uint128", field=field_name, value=value)
    return value.to_bytes(16, "big")


def to_option_bytes(options: Union[bytes, bytearray, str, None]) -> bytes:
    """Accept raw bytes or a 0x-prefixed hex string."""
    if options is None:
        return b""
    if isinstance(options, (bytes, bytearray)):
        return bytes(options)
    if isinstance(options, str):
        if options in ("", "0x"):
            return b""
        try:
            return to_bytes(hexstr=options)
        except ValueError as e:
            raise InvalidOptions(f"Options are not valid hex: {options!r}", cause=e) from e
    raise InvalidOptions(f"Unsupported options type {type(options).__name__}")


@dataclass(frozen=True)
class NativeDrop:
    """Native currency the executor hands to ``receiver`` on delivery."""

    amount: int
    receiver: str


@dataclass
class ExecutorOptions:
    """Decoded executor instructions."""

    lz_receive_gas: int = 0
    lz_receive_value: int = 0
    native_drops: List[NativeDrop] = field(default_factory=list)

    @property
    def native_drop_total(self) -> int:
        return sum(drop.amount for drop in self.native_drops)

    @property
    def total_native_value(self) -> int:
        """Native value the executor must front at the destination."""
        return self.lz_receive_value + self.native_drop_total


class Options:
    """Builder for type 3 options.

    >>> Options.new_options().add_executor_lz_receive_option(200000, 0).to_hex()
    '0x00030100110100000000000000000000000000030d40'
    """

    def __init__(self):
        self._buffer = bytearray(TYPE_3.to_bytes(2, "big"))

    @classmethod
    def new_options(cls) -> "Options":
        return cls()

    def add_executor_lz_receive_option(self, gas: int, value: int = 0) -> "Options":
        body = _uint128(gas, "gas")
        if value:
            body += _uint128(value, "value")
        return self._add_executor_option(OPTION_TYPE_LZRECEIVE, body)

    def add_executor_native_drop_option(self, amount: int, receiver: str) -> "Options":
        try:
            receiver32 = to_bytes32(receiver)
        except ValidationError as e:
            raise InvalidOptions(f"Invalid native drop receiver {receiver!r}", cause=e) from e
        return self._add_executor_option(
            OPTION_TYPE_NATIVE_DROP, _uint128(amount, "amount") + receiver32
        )

    def _add_executor_option(self, option_type: int, body: bytes) -> "Options":
        self._buffer += bytes([EXECUTOR_WORKER_ID])
        self._buffer += (len(body) + 1).to_bytes(2, "big")
        self._buffer += bytes([option_type])
        self._buffer += body
        return self

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def to_hex(self) -> str:
        return "0x" + self._buffer.hex()

    def __repr__(self) -> str:
        return f"Options({self.to_hex()})"


def decode_options(options: Union[bytes, str, None]) -> ExecutorOptions:
    """Parse type 3 options; multiple lzReceive entries are summed."""
    data = to_option_bytes(options)
    result = ExecutorOptions()
    if not data:
        return result
    if len(data) < 2 or int.from_bytes(data[:2], "big") != TYPE_3:
        raise InvalidOptions(f"Unsupported options type 0x{data[:2].hex()}")

    cursor = 2
    while cursor < len(data):
        if cursor + 4 > len(data):
            raise InvalidOptions("Truncated option header", field="options", value="0x" + data.hex())
        worker_id = data[cursor]
        size = int.from_bytes(data[cursor + 1 : cursor + 3], "big")
        option_type = data[cursor + 3]
        body = data[cursor + 4 : cursor + 3 + size]
        if size < 1 or len(body) != size - 1:
            raise InvalidOptions("Truncated option body", field="options", value="0x" + data.hex())
        cursor += 3 + size

        if worker_id != EXECUTOR_WORKER_ID:
            raise InvalidOptions(f"Unsupported worker id {worker_id}", field="worker_id", value=worker_id)

        if option_type == OPTION_TYPE_LZRECEIVE:
            if len(body) not in (16, 32):
                raise InvalidOptions("Malformed lzReceive option", field="lz_receive", value=body.hex())
            result.lz_receive_gas += int.from_bytes(body[:16], "big")
            if len(body) == 32:
                result.lz_receive_value += int.from_bytes(body[16:], "big")
        elif option_type == OPTION_TYPE_NATIVE_DROP:
            if len(body) != 48:
                raise InvalidOptions("Malformed native drop option", field="native_drop", value=body.hex())
            try:
                receiver = from_bytes32(body[16:])
            except ValidationError as e:
                raise InvalidOptions("Native drop receiver is not an address", cause=e) from e
            result.native_drops.append(NativeDrop(int.from_bytes(body[:16], "big"), receiver))
        else:
            raise InvalidOptions(
                f"Unsupported executor option type {option_type}",
                field="option_type",
                value=option_type,
            )
    return result


def combine_options(enforced: Union[bytes, str, None], extra: Union[bytes, str, None]) -> bytes:
    """Append caller options to the owner-enforced ones.

    Both sides must be type 3; the caller's header is dropped so the result is
    a single type 3 option list.
    """
    enforced = to_option_bytes(enforced)
    extra = to_option_bytes(extra)
    if not enforced:
        return extra
    if not extra:
        return enforced
    if len(extra) < 2 or int.from_bytes(extra[:2], "big") != TYPE_3:
        raise InvalidOptions(f"Cannot combine options of type 0x{extra[:2].hex()}")
    return enforced + extra[2:]
