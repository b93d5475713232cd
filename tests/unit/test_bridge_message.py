"""
Unit tests for the bridge message codec.
"""

import pytest
from eth_abi import encode

from dfgbridge.bridge import MESSAGE_TYPES, MESSAGE_VERSION, BridgeMessage
from dfgbridge.chain import make_address, to_bytes32
from dfgbridge.errors import MessageDecodeError, ValidationError


class TestBridgeMessage:
    """Test encoding and decoding transfer instructions."""

    def test_encode_layout(self):
        """Test that the payload is five ABI words."""
        message = BridgeMessage(dst_eid=40245, recipient=make_address("user"), amount=1000)
        payload = message.encode()

        assert len(payload) == 5 * 32
        assert payload[31] == MESSAGE_VERSION
        assert int.from_bytes(payload[32:64], "big") == 40245
        assert payload[64:96] == to_bytes32(make_address("user"))
        assert int.from_bytes(payload[96:128], "big") == 1000

    def test_decode(self):
        """Test decoding an encoded message."""
        message = BridgeMessage(dst_eid=2, recipient=make_address("user"), amount=7, asset_id=3)
        assert BridgeMessage.decode(message.encode()) == message

    def test_decode_garbage(self):
        """Test a payload that is too short."""
        with pytest.raises(MessageDecodeError):
            BridgeMessage.decode(b"\x01\x02\x03")

    def test_decode_wrong_version(self):
        """Test an unknown version byte."""
        payload = encode(MESSAGE_TYPES, [2, 1, to_bytes32(make_address("user")), 1, 0])
        with pytest.raises(MessageDecodeError) as exc_info:
            BridgeMessage.decode(payload)
        assert exc_info.value.field == "version"

    def test_decode_dirty_recipient(self):
        """Test a recipient word that is not an address."""
        payload = encode(MESSAGE_TYPES, [MESSAGE_VERSION, 1, b"\xff" * 32, 1, 0])
        with pytest.raises(MessageDecodeError):
            BridgeMessage.decode(payload)

    def test_encode_out_of_range(self):
        """Test values that do not fit their ABI types."""
        with pytest.raises(ValidationError):
            BridgeMessage(dst_eid=2**32, recipient=make_address("user"), amount=1).encode()
        with pytest.raises(ValidationError):
            BridgeMessage(dst_eid=1, recipient=make_address("user"), amount=-1).encode()

    def test_to_dict(self):
        """Test dictionary form."""
        message = BridgeMessage(dst_eid=2, recipient=make_address("user"), amount=7)
        assert message.to_dict() == {
            "version": 1,
            "dst_eid": 2,
            "recipient": make_address("user"),
            "amount": 7,
            "asset_id": 0,
        }
