"""
Account identities and address helpers.

Addresses are EIP-55 checksum strings. Cross-chain identities (peers, packet
senders and receivers) are the same addresses left-padded to 32 bytes.
"""

from dataclasses import dataclass, field
from typing import Any, List, Union

from eth_utils import to_bytes
from web3 import Web3

from ..errors import ValidationError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = bytes(32)


def normalize_address(value: Any, field_name: str = "address") -> str:
    """Return the checksum form of ``value`` or raise :class:`ValidationError`."""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValidationError(
            f"Invalid {field_name}: {value!r}",
            field=field_name,
            value=value,
            expected="20-byte hex address",
        )
    return Web3.to_checksum_address(value)


def address_from_digest(digest: bytes) -> str:
    """Checksum address made of the last 20 bytes of a hash."""
    return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())


def make_address(seed: Union[str, bytes]) -> str:
    """Deterministic address for a label or raw seed."""
    if isinstance(seed, str):
        digest = Web3.keccak(text=seed)
    else:
        digest = Web3.keccak(seed)
    return address_from_digest(digest)


def contract_address(deployer: str, nonce: int, eid: int) -> str:
    """Address of the ``nonce``-th contract ``deployer`` creates on chain ``eid``."""
    seed = (
        bytes.fromhex(normalize_address(deployer)[2:])
        + nonce.to_bytes(8, "big")
        + eid.to_bytes(4, "big")
    )
    return make_address(seed)


def to_bytes32(value: Union[str, bytes]) -> bytes:
    """Left-pad an address to 32 bytes; 32-byte input passes through."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
        if len(raw) == 32:
            return raw
        if len(raw) == 20:
            return raw.rjust(32, b"\x00")
        raise ValidationError(
            f"Expected 20 or 32 bytes, got {len(raw)}", field="bytes32", value=raw.hex()
        )
    if isinstance(value, str) and value.startswith("0x") and len(value) == 66:
        return to_bytes(hexstr=value)
    address = normalize_address(value)
    return to_bytes(hexstr=address).rjust(32, b"\x00")


def from_bytes32(data: bytes) -> str:
    """Recover the checksum address held in a left-padded 32-byte word."""
    if len(data) != 32:
        raise ValidationError(
            f"Expected 32 bytes, got {len(data)}", field="bytes32", value=data.hex()
        )
    if any(data[:12]):
        raise ValidationError(
            "Upper 12 bytes of an address word must be zero",
            field="bytes32",
            value="0x" + data.hex(),
        )
    return address_from_digest(data)


def format_bytes32_string(text: str) -> bytes:
    """UTF-8 encode ``text`` into a zero-padded bytes32 label (max 31 bytes)."""
    encoded = text.encode("utf-8")
    if len(encoded) > 31:
        raise ValidationError(
            "bytes32 string must be at most 31 bytes",
            field="label",
            value=text,
            expected="<= 31 bytes",
        )
    return encoded.ljust(32, b"\x00")


def parse_bytes32_string(data: bytes) -> str:
    """Inverse of :func:`format_bytes32_string`."""
    return bytes(data).rstrip(b"\x00").decode("utf-8")


@dataclass(frozen=True)
class Account:
    """A named signer whose address is derived from its label."""

    label: str
    address: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "address", make_address(f"dfgbridge:account:{self.label}"))

    def __str__(self) -> str:
        return self.address


def make_signers(count: int, prefix: str = "signer") -> List[Account]:
    """``count`` deterministic accounts, like a local dev node's signer list."""
    return [Account(f"{prefix}{index}") for index in range(count)]
