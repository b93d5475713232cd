"""
Bridge message codec.

Payload layout, ABI-encoded::

    (uint8 version, uint32 dst_eid, bytes32 recipient, uint256 amount, uint256 asset_id)

``amount`` is expressed in shared decimals. Options are not part of the
payload; they travel in the transport packet.
"""

from dataclasses import dataclass
from typing import Any, Dict

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError

from ..chain import from_bytes32, to_bytes32
from ..errors import MessageDecodeError, ValidationError

MESSAGE_VERSION = 1
MESSAGE_TYPES = ["uint8", "uint32", "bytes32", "uint256", "uint256"]


@dataclass(frozen=True)
class BridgeMessage:
    """Transfer instruction carried from the source adapter to its peer."""

    dst_eid: int
    recipient: str
    amount: int
    asset_id: int = 0
    version: int = MESSAGE_VERSION

    def encode(self) -> bytes:
        try:
            return encode(
                MESSAGE_TYPES,
                [self.version, self.dst_eid, to_bytes32(self.recipient), self.amount, self.asset_id],
            )
        except (EncodingError, OverflowError, TypeError) as e:
            raise ValidationError(f"Cannot encode bridge message: {e}", cause=e) from e

    @classmethod
    def decode(cls, payload: bytes) -> "BridgeMessage":
        try:
            version, dst_eid, recipient, amount, asset_id = decode(MESSAGE_TYPES, bytes(payload))
        except (DecodingError, TypeError, ValueError) as e:
            raise MessageDecodeError(f"Malformed bridge message: {e}", cause=e) from e
        if version != MESSAGE_VERSION:
            raise MessageDecodeError(
                f"Unsupported message version {version}",
                field="version",
                value=version,
                expected=MESSAGE_VERSION,
            )
        try:
            recipient_address = from_bytes32(recipient)
        except ValidationError as e:
            raise MessageDecodeError("Recipient is not an address", cause=e) from e
        return cls(
            dst_eid=dst_eid,
            recipient=recipient_address,
            amount=amount,
            asset_id=asset_id,
            version=version,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "version": self.version,
            "dst_eid": self.dst_eid,
            "recipient": self.recipient,
            "amount": self.amount,
            "asset_id": self.asset_id,
        }
