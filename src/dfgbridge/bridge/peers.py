"""
Versioned peer routing table owned by an adapter.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..chain import ZERO_BYTES32, Tracked, to_bytes32
from ..errors import UnknownPeer, ValidationError


@dataclass(frozen=True)
class PeerChange:
    """One applied change to the table."""

    version: int
    eid: int
    previous: Optional[bytes]
    peer: Optional[bytes]
    changed_at: float = field(default_factory=time.time)


class PeerTable(Tracked):
    """Remote eid → trusted peer (bytes32).

    ``version`` increases only when a record actually changes, so repeating a
    ``set`` with the same value leaves the table untouched. A zero peer removes
    the record.
    """

    def __init__(self):
        self._peers: Dict[int, bytes] = {}
        self.version = 0
        self.history: List[PeerChange] = []

    def __len__(self) -> int:
        return len(self._peers)

    def __contains__(self, eid: int) -> bool:
        return eid in self._peers

    def __iter__(self) -> Iterator[Tuple[int, bytes]]:
        return iter(sorted(self._peers.items()))

    def set(self, eid: int, peer) -> bool:
        """Record ``peer`` for ``eid``; return True when the table changed."""
        if not isinstance(eid, int) or eid <= 0:
            raise ValidationError("Remote eid must be a positive integer", field="eid", value=eid)
        peer32 = to_bytes32(peer)
        previous = self._peers.get(eid)

        if peer32 == ZERO_BYTES32:
            if previous is None:
                return False
            del self._peers[eid]
            new_value = None
        else:
            if previous == peer32:
                return False
            self._peers[eid] = peer32
            new_value = peer32

        self.version += 1
        self.history.append(PeerChange(self.version, eid, previous, new_value))
        return True

    def get(self, eid: int) -> Optional[bytes]:
        return self._peers.get(eid)

    def require(self, eid: int) -> bytes:
        peer = self._peers.get(eid)
        if peer is None:
            raise UnknownPeer(f"No peer for eid {eid}", eid=eid)
        return peer

    def is_peer(self, eid: int, sender: bytes) -> bool:
        peer = self._peers.get(eid)
        return peer is not None and peer == bytes(sender)

    def to_dict(self) -> Dict[int, str]:
        """Convert to dictionary."""
        return {eid: "0x" + peer.hex() for eid, peer in self}
