"""
Unit tests for the peer table.
"""

import pytest

from dfgbridge.bridge import PeerTable
from dfgbridge.chain import ZERO_ADDRESS, make_address, to_bytes32
from dfgbridge.errors import UnknownPeer, ValidationError


@pytest.fixture
def table():
    return PeerTable()


class TestPeerTable:
    """Test PeerTable."""

    def test_set_and_get(self, table):
        """Test registering a peer."""
        peer = make_address("peer")

        assert table.set(2, peer)
        assert table.get(2) == to_bytes32(peer)
        assert table.require(2) == to_bytes32(peer)
        assert 2 in table
        assert len(table) == 1

    def test_set_is_idempotent(self, table):
        """Test that repeating a set changes nothing."""
        peer = make_address("peer")
        table.set(2, peer)
        version = table.version

        assert not table.set(2, to_bytes32(peer))
        assert table.version == version
        assert len(table.history) == 1

    def test_overwrite(self, table):
        """Test replacing a peer."""
        table.set(2, make_address("old"))
        assert table.set(2, make_address("new"))

        assert table.get(2) == to_bytes32(make_address("new"))
        assert table.version == 2
        assert table.history[-1].previous == to_bytes32(make_address("old"))

    def test_zero_peer_removes(self, table):
        """Test clearing a peer with the zero address."""
        table.set(2, make_address("peer"))

        assert table.set(2, ZERO_ADDRESS)
        assert table.get(2) is None
        assert not table.set(2, ZERO_ADDRESS)

    def test_require_missing(self, table):
        """Test requiring an unset peer."""
        with pytest.raises(UnknownPeer) as exc_info:
            table.require(9)
        assert exc_info.value.eid == 9

    def test_invalid_eid(self, table):
        """Test non-positive eids."""
        with pytest.raises(ValidationError):
            table.set(0, make_address("peer"))

    def test_is_peer(self, table):
        """Test matching an inbound sender."""
        peer = make_address("peer")
        table.set(2, peer)

        assert table.is_peer(2, to_bytes32(peer))
        assert not table.is_peer(2, to_bytes32(make_address("other")))
        assert not table.is_peer(3, to_bytes32(peer))

    def test_iteration_is_sorted(self, table):
        """Test iteration order and dictionary form."""
        table.set(5, make_address("five"))
        table.set(1, make_address("one"))

        assert [eid for eid, _ in table] == [1, 5]
        assert table.to_dict()[5] == "0x" + to_bytes32(make_address("five")).hex()
