"""
Apply a topology to deployed adapters.

``wire`` issues the ``set_peer`` (and ``set_enforced_options``) calls a graph
implies, skipping anything already in place. ``check_wiring`` reports what
is missing or one-sided without changing state.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from ..bridge import BridgeAdapter
from ..chain import to_bytes32
from ..errors import ConfigurationError
from ..logging import LogContext, get_logger
from ..transport import to_option_bytes
from .config import OmniGraph, OmniPoint

logger = get_logger(__name__)

Deployments = Mapping[OmniPoint, BridgeAdapter]


@dataclass(frozen=True)
class PeerAssignment:
    """A ``set_peer`` call made by :func:`wire`."""

    point: OmniPoint
    remote_eid: int
    peer: bytes

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary."""
        return {
            "contract": self.point.to_dict(),
            "remote_eid": self.remote_eid,
            "peer": "0x" + self.peer.hex(),
        }


@dataclass(frozen=True)
class WiringIssue:
    """A connection whose peer is not configured as declared."""

    point: OmniPoint
    remote: OmniPoint
    problem: str

    def __str__(self) -> str:
        return f"{self.point} -> {self.remote}: {self.problem}"


def _adapter(deployments: Deployments, point: OmniPoint) -> BridgeAdapter:
    adapter = deployments.get(point)
    if adapter is None:
        raise ConfigurationError(
            f"No deployment for {point}", config_key="deployments", config_value=str(point)
        )
    if adapter.eid != point.eid:
        raise ConfigurationError(
            f"{point} is deployed on eid {adapter.eid}",
            config_key="deployments",
            config_value=str(point),
        )
    return adapter


def wire(
    graph: OmniGraph,
    deployments: Deployments,
    owners: Optional[Mapping[OmniPoint, str]] = None,
    strict: bool = False,
) -> List[PeerAssignment]:
    """Set every declared peer that is not already correct.

    ``owners`` maps points to the account signing for them and defaults to
    each adapter's current owner. Returns the assignments actually made, so
    wiring an already wired graph returns an empty list.
    """
    graph.validate(strict=strict)
    owners = owners or {}
    applied: List[PeerAssignment] = []

    for connection in graph.connections:
        adapter = _adapter(deployments, connection.source)
        remote = _adapter(deployments, connection.target)
        signer = owners.get(connection.source, adapter.owner)
        context = LogContext(eid=adapter.eid, component="wiring", operation="wire")

        peer = to_bytes32(remote.address)
        if adapter.peers(remote.eid) != peer:
            adapter.set_peer(remote.eid, peer, sender=signer)
            applied.append(PeerAssignment(connection.source, remote.eid, peer))
            logger.info(f"{connection.source} now trusts {connection.target}", context=context)

        if connection.enforced_options is not None:
            options = to_option_bytes(connection.enforced_options)
            if adapter.enforced_options.get(remote.eid, b"") != options:
                adapter.set_enforced_options(remote.eid, options, sender=signer)
                logger.info(
                    f"enforced options for {connection.source} -> {connection.target} updated",
                    context=context,
                )

    if not applied:
        logger.debug("topology already wired", context=LogContext(component="wiring", operation="wire"))
    return applied


def check_wiring(graph: OmniGraph, deployments: Deployments) -> List[WiringIssue]:
    """List declared connections whose peers are missing, wrong or one-sided."""
    issues: List[WiringIssue] = []
    for connection in graph.connections:
        adapter = _adapter(deployments, connection.source)
        remote = _adapter(deployments, connection.target)

        current = adapter.peer_table.get(remote.eid)
        if current is None:
            issues.append(WiringIssue(connection.source, connection.target, "peer not set"))
            continue
        if current != to_bytes32(remote.address):
            issues.append(
                WiringIssue(connection.source, connection.target, f"peer is 0x{current.hex()}")
            )
            continue
        if not remote.is_peer(adapter.eid, to_bytes32(adapter.address)):
            issues.append(
                WiringIssue(connection.source, connection.target, "remote does not trust back")
            )
    return issues
