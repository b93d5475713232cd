"""
Messaging endpoints.

An endpoint is deployed on every chain. Adapters hand it outbound messages
(``send``) and it hands inbound packets to the receiving adapter
(``deliver`` → ``lz_receive``). :class:`BaseEndpoint` owns nonces, guids, fee
collection and inbound replay protection; subclasses decide how a packet
travels to the destination.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from ..chain import Chain, Contract, from_bytes32, normalize_address, to_bytes32, transactional
from ..errors import (
    ConfigurationError,
    DuplicateMessage,
    ErrorContext,
    FeeTokenUnavailable,
    InsufficientFee,
    ValidationError,
)
from ..logging import LogContext, get_logger
from .fees import FeeConfig, FeeModel
from .options import decode_options, to_option_bytes
from .transport_types import (
    DeliveryReport,
    DeliveryStatus,
    MessagingFee,
    MessagingParams,
    MessagingReceipt,
    Origin,
    Packet,
    compute_guid,
    guid_hex,
)

logger = get_logger(__name__)

DeliveryListener = Callable[[DeliveryReport], None]


class MessageReceiver(ABC):
    """Contract side of the transport: something an endpoint can deliver to."""

    @abstractmethod
    def lz_receive(
        self,
        origin: Origin,
        guid: bytes,
        message: bytes,
        executor: str,
        extra_data: bytes,
        *,
        sender: str,
    ) -> None:
        """Handle an inbound message; ``sender`` is the calling endpoint."""


class BaseEndpoint(Contract, ABC):
    """Shared endpoint behaviour."""

    state_fields = Contract.state_fields + (
        "outbound_nonces",
        "inbound",
        "stored_payloads",
        "failure_reasons",
        "fees_collected",
    )

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        eid: Optional[int] = None,
        fee_config: Optional[FeeConfig] = None,
    ):
        super().__init__(chain, address, deployer)
        eid = chain.eid if eid is None else eid
        if eid != chain.eid:
            raise ConfigurationError(
                f"Endpoint eid {eid} does not match chain eid {chain.eid}",
                config_key="eid",
                config_value=eid,
            )
        self.eid = eid
        self.fee_model = FeeModel(fee_config)
        self.outbound_nonces: Dict[Tuple[str, int, bytes], int] = {}
        self.inbound: Dict[str, int] = {}
        self.stored_payloads: Dict[str, Packet] = {}
        self.failure_reasons: Dict[str, str] = {}
        self.fees_collected = 0
        self._listeners: List[DeliveryListener] = []

    def _context(self, operation: str, guid: Optional[bytes] = None) -> LogContext:
        return LogContext(
            eid=self.eid,
            component="endpoint",
            operation=operation,
            guid=guid_hex(guid) if guid is not None else None,
        )

    def _error_context(self, operation: str, guid: Optional[bytes] = None) -> ErrorContext:
        return ErrorContext(
            eid=self.eid,
            contract=self.address,
            operation=operation,
            guid=guid_hex(guid) if guid is not None else None,
        )

    # Delivery reports

    def add_delivery_listener(self, listener: DeliveryListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_delivery_listener(self, listener: DeliveryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, report: DeliveryReport) -> None:
        """Pass a delivery report for one of our outbound packets to listeners."""
        for listener in list(self._listeners):
            listener(report)

    # Outbound

    def next_nonce(self, sender: str, dst_eid: int, receiver: bytes) -> int:
        key = (normalize_address(sender, "sender"), dst_eid, bytes(receiver))
        return self.outbound_nonces.get(key, 0) + 1

    def quote(self, params: MessagingParams, sender: str) -> MessagingFee:
        """Fee for sending ``params``; has no side effects."""
        options = decode_options(params.options)
        return self.fee_model.quote(params.message, options, params.pay_in_lz_token)

    @transactional
    def send(
        self,
        params: MessagingParams,
        refund_address: str,
        *,
        sender: str,
        value: int = 0,
    ) -> MessagingReceipt:
        """Charge the fee, refund any excess and dispatch the packet."""
        sender = normalize_address(sender, "sender")
        refund_address = normalize_address(refund_address, "refund_address")
        if params.pay_in_lz_token:
            raise FeeTokenUnavailable("Fees can only be paid in native currency here")
        if len(params.receiver) != 32:
            raise ValidationError("Receiver must be 32 bytes", field="receiver")

        fee = self.quote(params, sender)
        if value < fee.native_fee:
            raise InsufficientFee(
                f"Fee is {fee.native_fee}, got {value}",
                required=fee.native_fee,
                supplied=value,
                context=self._error_context("send"),
            )
        self.chain.transfer_native(sender, self.address, fee.native_fee)
        self.fees_collected += fee.native_fee
        if value > fee.native_fee:
            self.chain.transfer_native(sender, refund_address, value - fee.native_fee)

        nonce = self.next_nonce(sender, params.dst_eid, params.receiver)
        self.outbound_nonces[(sender, params.dst_eid, bytes(params.receiver))] = nonce
        sender32 = to_bytes32(sender)
        guid = compute_guid(nonce, self.eid, sender32, params.dst_eid, params.receiver)
        packet = Packet(
            nonce=nonce,
            src_eid=self.eid,
            sender=sender32,
            dst_eid=params.dst_eid,
            receiver=bytes(params.receiver),
            guid=guid,
            message=bytes(params.message),
            options=to_option_bytes(params.options),
        )
        self.emit("PacketSent", guid=guid, nonce=nonce, dst_eid=params.dst_eid, fee=fee.native_fee)
        logger.info(
            f"packet {nonce} sent to eid {params.dst_eid}",
            context=self._context("send", guid),
            extra={"fee": fee.native_fee, "refund": value - fee.native_fee},
        )

        self._dispatch(packet)
        return MessagingReceipt(guid=guid, nonce=nonce, fee=fee)

    @abstractmethod
    def _dispatch(self, packet: Packet) -> None:
        """Move ``packet`` towards its destination endpoint."""

    # Inbound

    def is_delivered(self, guid: bytes) -> bool:
        return guid_hex(guid) in self.inbound

    @transactional
    def deliver(self, packet: Packet) -> None:
        """Execute ``packet`` on this chain by calling the receiver's ``lz_receive``."""
        key = packet.guid_hex
        context = self._error_context("deliver", packet.guid)
        if key in self.inbound:
            raise DuplicateMessage(f"Packet {key} already delivered", guid=key, context=context)
        if packet.dst_eid != self.eid:
            raise ValidationError(
                f"Packet addressed to eid {packet.dst_eid}, this is eid {self.eid}",
                field="dst_eid",
                value=packet.dst_eid,
                expected=self.eid,
                context=context,
            )
        receiver_address = from_bytes32(packet.receiver)
        receiver = self.chain.get_contract(receiver_address)
        if not isinstance(receiver, MessageReceiver):
            raise ConfigurationError(
                f"No message receiver deployed at {receiver_address}",
                config_key="receiver",
                config_value=receiver_address,
                context=context,
            )

        options = decode_options(packet.options)
        self.inbound[key] = packet.nonce
        self.stored_payloads.pop(key, None)
        self.failure_reasons.pop(key, None)

        for drop in options.native_drops:
            self.chain.fund(drop.receiver, drop.amount)
        if options.lz_receive_value:
            self.chain.fund(receiver_address, options.lz_receive_value)

        receiver.lz_receive(
            packet.origin(),
            packet.guid,
            packet.message,
            self.address,
            b"",
            sender=self.address,
        )
        self.emit("PacketDelivered", guid=packet.guid, src_eid=packet.src_eid, nonce=packet.nonce)
        logger.info(
            f"packet {packet.nonce} from eid {packet.src_eid} delivered",
            context=self._context("deliver", packet.guid),
        )

    @transactional
    def store_payload(self, packet: Packet, reason: str) -> None:
        """Keep a packet whose delivery failed so it can be retried later."""
        self.stored_payloads[packet.guid_hex] = packet
        self.failure_reasons[packet.guid_hex] = reason
        self.emit("PayloadStored", guid=packet.guid, reason=reason)
        logger.warning(
            f"payload stored after failed delivery: {reason}",
            context=self._context("store_payload", packet.guid),
        )

    def get_stored_payload(self, guid: bytes) -> Optional[Packet]:
        return self.stored_payloads.get(guid_hex(guid))


class EndpointMock(BaseEndpoint):
    """Synchronous in-process endpoint.

    ``send`` delivers the packet on the destination chain before returning:
    no latency, no reordering, no loss. A rejection on the destination side
    propagates to the sender, so the whole source transaction is undone.
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        eid: Optional[int] = None,
        fee_config: Optional[FeeConfig] = None,
    ):
        super().__init__(chain, address, deployer, eid, fee_config)
        self.lz_endpoint_lookup: Dict[str, BaseEndpoint] = {}

    def set_dest_lz_endpoint(self, dest_address: str, endpoint: BaseEndpoint) -> None:
        """Route packets for receiver ``dest_address`` to ``endpoint``.

        Delivery runs inside the sending transaction, so both chains are put
        on one transaction lock.
        """
        self.chain.share_lock(endpoint.chain)
        self.lz_endpoint_lookup[normalize_address(dest_address, "dest_address")] = endpoint

    def _dispatch(self, packet: Packet) -> None:
        receiver = from_bytes32(packet.receiver)
        destination = self.lz_endpoint_lookup.get(receiver)
        if destination is None:
            raise ConfigurationError(
                f"No destination endpoint registered for {receiver}",
                config_key="lz_endpoint_lookup",
                config_value=receiver,
            )
        destination.deliver(packet)
        report = DeliveryReport(guid=packet.guid, status=DeliveryStatus.DELIVERED)
        self.chain.call_on_commit(lambda: self.notify(report))
