"""
Peer topology declaration.

An :class:`OmniGraph` lists the adapters (one per endpoint id) and the
directed connections between them. A connection ``from -> to`` means the
``from`` adapter trusts ``to`` as its peer for ``to``'s endpoint id. The JSON
form follows the LayerZero OApp config layout::

    {
      "contracts": [{"contract": {"eid": 40161, "contractName": "EthBridge"}}],
      "connections": [{"from": {...}, "to": {...}, "config": {"enforcedOptions": "0x..."}}]
    }
"""

import json
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..errors import ConfigurationError
from ..logging import LogContext, get_logger

logger = get_logger(__name__)


class EndpointId(IntEnum):
    """Well-known LayerZero V2 endpoint ids."""

    ETHEREUM_V2_MAINNET = 30101
    BASE_V2_MAINNET = 30184
    SEPOLIA_V2_TESTNET = 40161
    BASE_V2_TESTNET = 40245


def parse_eid(value: Union[int, str]) -> int:
    """Accept an integer eid or an :class:`EndpointId` member name."""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid endpoint id {value!r}", config_key="eid", config_value=value)
    if isinstance(value, int):
        eid = value
    elif isinstance(value, str) and value in EndpointId.__members__:
        eid = int(EndpointId[value])
    elif isinstance(value, str) and value.isdigit():
        eid = int(value)
    else:
        raise ConfigurationError(f"Invalid endpoint id {value!r}", config_key="eid", config_value=value)
    if eid <= 0:
        raise ConfigurationError("Endpoint id must be positive", config_key="eid", config_value=value)
    return eid


@dataclass(frozen=True)
class OmniPoint:
    """An adapter identified by endpoint id and contract name."""

    eid: int
    contract_name: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"eid": self.eid, "contractName": self.contract_name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OmniPoint":
        """Create from dictionary."""
        if "contract" in data:
            data = data["contract"]
        name = data.get("contractName", data.get("contract_name"))
        if not name:
            raise ConfigurationError("Contract entry has no contractName", config_key="contractName")
        return cls(eid=parse_eid(data.get("eid")), contract_name=name)

    def __str__(self) -> str:
        return f"{self.contract_name}@{self.eid}"


@dataclass(frozen=True)
class Connection:
    """Directed trust edge; ``enforced_options`` applies to sends along it."""

    source: OmniPoint
    target: OmniPoint
    enforced_options: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {"from": self.source.to_dict(), "to": self.target.to_dict()}
        if self.enforced_options:
            data["config"] = {"enforcedOptions": self.enforced_options}
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        """Create from dictionary."""
        try:
            source, target = data["from"], data["to"]
        except KeyError as e:
            raise ConfigurationError(f"Connection is missing {e.args[0]!r}", config_key=e.args[0]) from e
        config = data.get("config") or {}
        return cls(
            source=OmniPoint.from_dict(source),
            target=OmniPoint.from_dict(target),
            enforced_options=config.get("enforcedOptions"),
        )


@dataclass
class OmniGraph:
    """Adapters and the connections between them."""

    contracts: List[OmniPoint] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)

    @classmethod
    def bidirectional(
        cls, a: OmniPoint, b: OmniPoint, enforced_options: Optional[str] = None
    ) -> "OmniGraph":
        """Two adapters that trust each other."""
        return cls(
            contracts=[a, b],
            connections=[Connection(a, b, enforced_options), Connection(b, a, enforced_options)],
        )

    def point(self, eid: int) -> Optional[OmniPoint]:
        for point in self.contracts:
            if point.eid == eid:
                return point
        return None

    def validate(self, strict: bool = False) -> List[str]:
        """Raise :class:`ConfigurationError` on errors; return warnings.

        A connection without its reverse is an error when ``strict`` and a
        warning otherwise.
        """
        seen: Dict[int, OmniPoint] = {}
        for point in self.contracts:
            if point.eid in seen:
                raise ConfigurationError(
                    f"Endpoint id {point.eid} is declared twice ({seen[point.eid]}, {point})",
                    config_key="contracts",
                    config_value=point.eid,
                )
            seen[point.eid] = point

        edges = set()
        for connection in self.connections:
            for end in (connection.source, connection.target):
                if seen.get(end.eid) != end:
                    raise ConfigurationError(
                        f"Connection references undeclared contract {end}",
                        config_key="connections",
                        config_value=str(end),
                    )
            if connection.source == connection.target:
                raise ConfigurationError(
                    f"Connection from {connection.source} to itself",
                    config_key="connections",
                    config_value=str(connection.source),
                )
            edges.add((connection.source, connection.target))

        warnings = []
        for source, target in sorted(edges, key=lambda e: (e[0].eid, e[1].eid)):
            if (target, source) not in edges:
                message = f"{source} -> {target} has no reverse connection"
                if strict:
                    raise ConfigurationError(message, config_key="connections", config_value=str(source))
                warnings.append(message)
                logger.warning(message, context=LogContext(component="topology", operation="validate"))
        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "contracts": [{"contract": point.to_dict()} for point in self.contracts],
            "connections": [connection.to_dict() for connection in self.connections],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OmniGraph":
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise ConfigurationError("Topology must be a mapping", config_key="topology")
        return cls(
            contracts=[OmniPoint.from_dict(entry) for entry in data.get("contracts", [])],
            connections=[Connection.from_dict(entry) for entry in data.get("connections", [])],
        )


def load_topology(path: Union[str, Path], strict: bool = False) -> OmniGraph:
    """Read and validate a topology JSON file."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Topology file {path} not found", config_key="path", cause=e) from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Topology file {path} is not valid JSON: {e}", cause=e) from e
    graph = OmniGraph.from_dict(data)
    graph.validate(strict=strict)
    return graph


SEPOLIA_CONTRACT = OmniPoint(eid=int(EndpointId.SEPOLIA_V2_TESTNET), contract_name="EthBridge")
BASE_SEPOLIA_CONTRACT = OmniPoint(eid=int(EndpointId.BASE_V2_TESTNET), contract_name="BaseBridge")

DEFAULT_TOPOLOGY = OmniGraph.bidirectional(SEPOLIA_CONTRACT, BASE_SEPOLIA_CONTRACT)
