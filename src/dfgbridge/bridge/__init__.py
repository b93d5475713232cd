"""
Bridge adapters for DFG.

This module provides the bridge contracts and their supporting types:
- Locking (home chain) and minting (remote chain) adapters
- Bridge message codec
- Versioned peer tables
- Transfer records and configuration
"""

from .adapter import (
    BaseBridge,
    BridgeAdapter,
    EthBridge,
    LockingBridge,
    MintingBridge,
)
from .bridge_types import (
    TRANSFER_TRANSITIONS,
    BridgeConfig,
    BridgeMetrics,
    BridgeReceipt,
    BridgeTransfer,
    BridgeType,
    InboundTransfer,
    TransferStatus,
    can_transition,
)
from .message import MESSAGE_TYPES, MESSAGE_VERSION, BridgeMessage
from .peers import PeerChange, PeerTable

__all__ = [
    # Adapters
    "BridgeAdapter",
    "LockingBridge",
    "MintingBridge",
    "EthBridge",
    "BaseBridge",
    # Types
    "BridgeType",
    "BridgeConfig",
    "BridgeMetrics",
    "BridgeReceipt",
    "BridgeTransfer",
    "InboundTransfer",
    "TransferStatus",
    "TRANSFER_TRANSITIONS",
    "can_transition",
    # Messages
    "BridgeMessage",
    "MESSAGE_VERSION",
    "MESSAGE_TYPES",
    # Peers
    "PeerTable",
    "PeerChange",
]
