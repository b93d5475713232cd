"""Peer topology declaration and wiring."""

from .config import (
    BASE_SEPOLIA_CONTRACT,
    DEFAULT_TOPOLOGY,
    SEPOLIA_CONTRACT,
    Connection,
    EndpointId,
    OmniGraph,
    OmniPoint,
    load_topology,
    parse_eid,
)
from .wiring import PeerAssignment, WiringIssue, check_wiring, wire

__all__ = [
    "EndpointId",
    "OmniPoint",
    "Connection",
    "OmniGraph",
    "load_topology",
    "parse_eid",
    "DEFAULT_TOPOLOGY",
    "SEPOLIA_CONTRACT",
    "BASE_SEPOLIA_CONTRACT",
    "PeerAssignment",
    "WiringIssue",
    "wire",
    "check_wiring",
]
