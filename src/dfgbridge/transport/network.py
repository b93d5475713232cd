"""
Asynchronous messaging network.

:class:`AsyncEndpoint` hands committed packets to a :class:`MessagingNetwork`,
which queues them on an :class:`asyncio.Queue` and delivers them later,
possibly out of order and possibly more than once. Destination endpoints
reject replays by guid. Packets the destination rejects are stored on the
destination endpoint and can be retried with :meth:`MessagingNetwork.retry_payload`.
"""

import asyncio
import random
from typing import Dict, List, Optional

from ..chain import Chain
from ..errors import BridgeError, ConfigurationError, DuplicateMessage, ValidationError
from ..logging import LogContext, get_logger
from .endpoint import BaseEndpoint
from .fees import FeeConfig
from .transport_types import DeliveryReport, DeliveryStatus, Packet, guid_hex

logger = get_logger(__name__)


class AsyncEndpoint(BaseEndpoint):
    """Endpoint whose packets travel through a :class:`MessagingNetwork`."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        network: "MessagingNetwork",
        eid: Optional[int] = None,
        fee_config: Optional[FeeConfig] = None,
    ):
        super().__init__(chain, address, deployer, eid, fee_config)
        self.network = network
        network.register(self)

    def _dispatch(self, packet: Packet) -> None:
        self.network.require_endpoint(packet.dst_eid)
        self.chain.call_on_commit(lambda: self._hand_off(packet))

    def _hand_off(self, packet: Packet) -> None:
        self.network.submit(packet)
        self.notify(DeliveryReport(guid=packet.guid, status=DeliveryStatus.PENDING))

    def retry_payload(self, guid: bytes) -> DeliveryStatus:
        """Retry a stored inbound payload on this endpoint."""
        return self.network.retry_payload(guid, dst_eid=self.eid)


class MessagingNetwork:
    """In-process stand-in for the messaging network between endpoints.

    ``shuffle`` delivers every drained batch in a random order; pass ``seed``
    for reproducible runs.
    """

    def __init__(self, shuffle: bool = False, seed: Optional[int] = None):
        self.shuffle = shuffle
        self.endpoints: Dict[int, BaseEndpoint] = {}
        self.packets: Dict[str, Packet] = {}
        self.reports: List[DeliveryReport] = []
        self._random = random.Random(seed)
        self._queue: "asyncio.Queue[Packet]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None

    # Registry

    def register(self, endpoint: BaseEndpoint) -> None:
        existing = self.endpoints.get(endpoint.eid)
        if existing is not None and existing is not endpoint:
            raise ConfigurationError(
                f"Endpoint id {endpoint.eid} is already registered",
                config_key="eid",
                config_value=endpoint.eid,
            )
        self.endpoints[endpoint.eid] = endpoint
        logger.debug(
            f"registered endpoint {endpoint.address}",
            context=LogContext(eid=endpoint.eid, component="network", operation="register"),
        )

    def require_endpoint(self, eid: int) -> BaseEndpoint:
        endpoint = self.endpoints.get(eid)
        if endpoint is None:
            raise ConfigurationError(
                f"No endpoint registered for eid {eid}",
                config_key="dst_eid",
                config_value=eid,
            )
        return endpoint

    # Queue

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def submit(self, packet: Packet) -> None:
        self.packets[packet.guid_hex] = packet
        self._queue.put_nowait(packet)
        logger.debug(
            f"queued packet {packet.nonce} for eid {packet.dst_eid}",
            context=LogContext(
                eid=packet.src_eid, component="network", operation="submit", guid=packet.guid_hex
            ),
        )

    def redeliver(self, guid: bytes) -> None:
        """Queue another copy of an already submitted packet."""
        packet = self.packets.get(guid_hex(guid))
        if packet is None:
            raise ValidationError(f"Unknown packet {guid_hex(guid)}", field="guid")
        self._queue.put_nowait(packet)

    def _drain(self, batch: Optional[List[Packet]] = None) -> List[Packet]:
        batch = list(batch or [])
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                break
        if self.shuffle:
            self._random.shuffle(batch)
        return batch

    # Delivery

    def deliver_pending(self) -> List[DeliveryReport]:
        """Deliver everything currently queued and return one report per packet."""
        return self._process(self._drain())

    def _process(self, batch: List[Packet]) -> List[DeliveryReport]:
        reports = []
        for packet in batch:
            try:
                reports.append(self._deliver(packet))
            except Exception as e:
                logger.exception(
                    f"could not deliver packet: {e}",
                    context=LogContext(
                        eid=packet.dst_eid, component="network", operation="deliver", guid=packet.guid_hex
                    ),
                )
                report = DeliveryReport(packet.guid, DeliveryStatus.FAILED, error=str(e))
                self._report_to_source(packet, report)
                reports.append(self._record(report))
            finally:
                self._queue.task_done()
        return reports

    def _deliver(self, packet: Packet) -> DeliveryReport:
        destination = self.require_endpoint(packet.dst_eid)
        context = LogContext(
            eid=packet.dst_eid, component="network", operation="deliver", guid=packet.guid_hex
        )
        try:
            destination.deliver(packet)
        except DuplicateMessage as e:
            logger.warning(f"dropped duplicate packet: {e.message}", context=context)
            return self._record(DeliveryReport(packet.guid, DeliveryStatus.DUPLICATE, error=e.message))
        except BridgeError as e:
            logger.error(
                f"delivery failed: {e.message}",
                context=context,
                extra={"error_code": e.error_code},
            )
            return self._fail(destination, packet, e.message)
        except Exception as e:
            logger.exception(f"delivery raised {type(e).__name__}: {e}", context=context)
            return self._fail(destination, packet, f"{type(e).__name__}: {e}")

        report = DeliveryReport(packet.guid, DeliveryStatus.DELIVERED)
        self._report_to_source(packet, report)
        return self._record(report)

    def _fail(self, destination: BaseEndpoint, packet: Packet, reason: str) -> DeliveryReport:
        destination.store_payload(packet, reason)
        report = DeliveryReport(packet.guid, DeliveryStatus.FAILED, error=reason)
        self._report_to_source(packet, report)
        return self._record(report)

    def _report_to_source(self, packet: Packet, report: DeliveryReport) -> None:
        source = self.endpoints.get(packet.src_eid)
        if source is not None:
            source.notify(report)

    def _record(self, report: DeliveryReport) -> DeliveryReport:
        self.reports.append(report)
        return report

    def retry_payload(self, guid: bytes, dst_eid: Optional[int] = None) -> DeliveryStatus:
        """Deliver a stored payload again, typically after fixing peers."""
        endpoints = [self.require_endpoint(dst_eid)] if dst_eid is not None else self.endpoints.values()
        for endpoint in endpoints:
            packet = endpoint.get_stored_payload(guid)
            if packet is not None:
                logger.info(
                    "retrying stored payload",
                    context=LogContext(
                        eid=endpoint.eid, component="network", operation="retry", guid=packet.guid_hex
                    ),
                )
                return self._deliver(packet).status
        raise ValidationError(f"No stored payload for {guid_hex(guid)}", field="guid")

    # Background delivery

    async def run(self) -> None:
        """Deliver packets as they arrive until cancelled."""
        while True:
            first = await self._queue.get()
            self._process(self._drain([first]))
            await asyncio.sleep(0)

    async def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
            logger.info("messaging network started")

    async def join(self) -> None:
        """Wait until every queued packet has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("messaging network stopped")
