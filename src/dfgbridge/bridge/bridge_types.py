"""
Bridge types and data structures.

This module defines the configuration, transfer records and receipts used by
the bridge adapters.
"""

import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ..chain import Tracked
from ..errors import ConfigurationError, ValidationError


class BridgeType(Enum):
    """How an adapter moves value in and out of its ledger."""

    LOCK_AND_UNLOCK = "lock_and_unlock"
    BURN_AND_MINT = "burn_and_mint"


class TransferStatus(Enum):
    """Lifecycle of an outbound bridge transfer."""

    QUOTED = "quoted"
    SENT = "sent"
    IN_FLIGHT = "in_flight"
    DELIVERED = "delivered"
    MINTED = "minted"
    REVERTED = "reverted"


TRANSFER_TRANSITIONS: Dict[TransferStatus, frozenset] = {
    TransferStatus.QUOTED: frozenset({TransferStatus.SENT}),
    TransferStatus.SENT: frozenset(
        {TransferStatus.IN_FLIGHT, TransferStatus.DELIVERED, TransferStatus.REVERTED}
    ),
    TransferStatus.IN_FLIGHT: frozenset({TransferStatus.DELIVERED, TransferStatus.REVERTED}),
    TransferStatus.DELIVERED: frozenset({TransferStatus.MINTED}),
    TransferStatus.MINTED: frozenset(),
    TransferStatus.REVERTED: frozenset({TransferStatus.DELIVERED}),
}


def can_transition(current: TransferStatus, target: TransferStatus) -> bool:
    return target in TRANSFER_TRANSITIONS[current]


def _parse_int_list(value: str) -> List[int]:
    return [int(part) for part in value.split(",") if part.strip()]


@dataclass
class BridgeConfig:
    """Configuration for a bridge adapter."""

    shared_decimals: int = 0
    supported_assets: List[int] = field(default_factory=lambda: [0])
    default_lz_receive_gas: int = 200000
    min_transfer_amount: int = 1

    ENV_PREFIX = "DFG_BRIDGE_"

    def __post_init__(self):
        if self.shared_decimals < 0:
            raise ConfigurationError(
                "shared_decimals cannot be negative",
                config_key="shared_decimals",
                config_value=self.shared_decimals,
            )
        if self.min_transfer_amount < 1:
            raise ConfigurationError(
                "min_transfer_amount must be at least 1",
                config_key="min_transfer_amount",
                config_value=self.min_transfer_amount,
            )
        if self.default_lz_receive_gas <= 0:
            raise ConfigurationError(
                "default_lz_receive_gas must be positive",
                config_key="default_lz_receive_gas",
                config_value=self.default_lz_receive_gas,
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        """Build a config from ``DFG_BRIDGE_*`` environment variables."""
        environ = os.environ if environ is None else environ
        env_mappings = {
            "SHARED_DECIMALS": ("shared_decimals", int),
            "SUPPORTED_ASSETS": ("supported_assets", _parse_int_list),
            "LZ_RECEIVE_GAS": ("default_lz_receive_gas", int),
            "MIN_AMOUNT": ("min_transfer_amount", int),
        }

        values: Dict[str, Any] = {}
        for suffix, (attr_name, parse) in env_mappings.items():
            env_var = cls.ENV_PREFIX + suffix
            env_value = environ.get(env_var)
            if env_value is None:
                continue
            try:
                values[attr_name] = parse(env_value)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid environment variable {env_var}={env_value}",
                    config_key=env_var,
                    config_value=env_value,
                    cause=e,
                ) from e
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "shared_decimals": self.shared_decimals,
            "supported_assets": list(self.supported_assets),
            "default_lz_receive_gas": self.default_lz_receive_gas,
            "min_transfer_amount": self.min_transfer_amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """Create from dictionary."""
        return cls(
            shared_decimals=data.get("shared_decimals", 0),
            supported_assets=list(data.get("supported_assets", [0])),
            default_lz_receive_gas=data.get("default_lz_receive_gas", 200000),
            min_transfer_amount=data.get("min_transfer_amount", 1),
        )


@dataclass
class BridgeTransfer(Tracked):
    """Outbound transfer as tracked by the source adapter."""

    guid: str
    nonce: int
    src_eid: int
    dst_eid: int
    sender: str
    recipient: str
    asset_id: int
    amount_sent: int
    amount_shared: int
    native_fee: int
    status: TransferStatus = TransferStatus.QUOTED
    error: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    history: List[TransferStatus] = field(default_factory=list)

    def advance(self, status: TransferStatus, error: Optional[str] = None) -> None:
        """Move to ``status``; illegal transitions raise ``ValidationError``."""
        if not can_transition(self.status, status):
            raise ValidationError(
                f"Transfer {self.guid} cannot go from {self.status.value} to {status.value}",
                field="status",
                value=status.value,
                expected=sorted(s.value for s in TRANSFER_TRANSITIONS[self.status]),
            )
        self.history.append(self.status)
        self.status = status
        self.error = error
        self.updated_at = time.time()

    @property
    def is_final(self) -> bool:
        return self.status == TransferStatus.MINTED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "guid": self.guid,
            "nonce": self.nonce,
            "src_eid": self.src_eid,
            "dst_eid": self.dst_eid,
            "sender": self.sender,
            "recipient": self.recipient,
            "asset_id": self.asset_id,
            "amount_sent": self.amount_sent,
            "amount_shared": self.amount_shared,
            "native_fee": self.native_fee,
            "status": self.status.value,
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "history": [s.value for s in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeTransfer":
        """Create from dictionary."""
        return cls(
            guid=data["guid"],
            nonce=data["nonce"],
            src_eid=data["src_eid"],
            dst_eid=data["dst_eid"],
            sender=data["sender"],
            recipient=data["recipient"],
            asset_id=data["asset_id"],
            amount_sent=data["amount_sent"],
            amount_shared=data["amount_shared"],
            native_fee=data["native_fee"],
            status=TransferStatus(data.get("status", "quoted")),
            error=data.get("error"),
            created_at=data.get("created_at", time.time()),
            updated_at=data.get("updated_at", time.time()),
            history=[TransferStatus(s) for s in data.get("history", [])],
        )


@dataclass(frozen=True)
class BridgeReceipt:
    """What ``bridge_token`` returns to the caller."""

    guid: str
    nonce: int
    amount_sent: int
    amount_shared: int
    native_fee: int
    refund: int


@dataclass
class InboundTransfer:
    """A credited inbound transfer, kept by the destination adapter."""

    guid: str
    src_eid: int
    nonce: int
    recipient: str
    asset_id: int
    amount: int
    received_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "guid": self.guid,
            "src_eid": self.src_eid,
            "nonce": self.nonce,
            "recipient": self.recipient,
            "asset_id": self.asset_id,
            "amount": self.amount,
            "received_at": self.received_at,
        }


@dataclass
class BridgeMetrics(Tracked):
    """Running totals for one adapter."""

    transfers_sent: int = 0
    transfers_received: int = 0
    transfers_reverted: int = 0
    volume_sent: int = 0
    volume_received: int = 0
    fees_paid: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "transfers_sent": self.transfers_sent,
            "transfers_received": self.transfers_received,
            "transfers_reverted": self.transfers_reverted,
            "volume_sent": self.volume_sent,
            "volume_received": self.volume_received,
            "fees_paid": self.fees_paid,
        }
