"""
Messaging transport types.

This module defines the packets, fees and receipts exchanged between bridge
adapters and messaging endpoints.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from web3 import Web3


class DeliveryStatus(Enum):
    """Delivery states of a packet."""

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Origin:
    """Where an inbound message came from."""

    src_eid: int
    sender: bytes
    nonce: int


@dataclass(frozen=True)
class MessagingParams:
    """What an adapter asks its endpoint to send."""

    dst_eid: int
    receiver: bytes
    message: bytes
    options: bytes = b""
    pay_in_lz_token: bool = False


@dataclass(frozen=True)
class MessagingFee:
    """Fee for one message; unpacks as ``native_fee, lz_token_fee``."""

    native_fee: int
    lz_token_fee: int = 0

    def __iter__(self) -> Iterator[int]:
        yield self.native_fee
        yield self.lz_token_fee


@dataclass(frozen=True)
class MessagingReceipt:
    """Returned by the endpoint once a packet is accepted."""

    guid: bytes
    nonce: int
    fee: MessagingFee


@dataclass(frozen=True)
class Packet:
    """A message in flight between two endpoints."""

    nonce: int
    src_eid: int
    sender: bytes
    dst_eid: int
    receiver: bytes
    guid: bytes
    message: bytes
    options: bytes = b""

    def origin(self) -> Origin:
        return Origin(src_eid=self.src_eid, sender=self.sender, nonce=self.nonce)

    @property
    def guid_hex(self) -> str:
        return guid_hex(self.guid)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "nonce": self.nonce,
            "src_eid": self.src_eid,
            "sender": "0x" + self.sender.hex(),
            "dst_eid": self.dst_eid,
            "receiver": "0x" + self.receiver.hex(),
            "guid": self.guid_hex,
            "message": "0x" + self.message.hex(),
            "options": "0x" + self.options.hex(),
        }


@dataclass
class DeliveryReport:
    """Outcome of a delivery attempt, reported back to the source endpoint."""

    guid: bytes
    status: DeliveryStatus
    error: Optional[str] = None
    reported_at: float = field(default_factory=time.time)

    @property
    def guid_hex(self) -> str:
        return guid_hex(self.guid)


def compute_guid(nonce: int, src_eid: int, sender: bytes, dst_eid: int, receiver: bytes) -> bytes:
    """Globally unique packet id: keccak over the packed path and nonce."""
    return bytes(
        Web3.solidity_keccak(
            ["uint64", "uint32", "bytes32", "uint32", "bytes32"],
            [nonce, src_eid, sender, dst_eid, receiver],
        )
    )


def guid_hex(guid: bytes) -> str:
    return "0x" + bytes(guid).hex()
