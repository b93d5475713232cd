"""
Bridge endpoint adapters.

This module provides the per-chain bridge contracts:
- Peer management and enforced options (owner only)
- Fee quotes for a bridge transfer
- Outbound transfers: debit the ledger, encode, pay the endpoint
- Inbound delivery: verify the origin peer, decode, credit the ledger
- Outbound transfer tracking driven by endpoint delivery reports

Two flavours differ only in how value leaves and enters the ledger:
:class:`LockingBridge` keeps tokens in custody and releases them, while
:class:`MintingBridge` burns on send and mints on receive.
"""

from abc import abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from ..chain import (
    ZERO_BYTES32,
    Chain,
    Contract,
    normalize_address,
    transactional,
)
from ..errors import (
    ConfigurationError,
    ErrorContext,
    InsufficientFee,
    MessageDecodeError,
    UnsupportedAsset,
    UntrustedSender,
    ValidationError,
    create_unauthorized_error,
    create_validation_error,
)
from ..ledger import DFGToken
from ..logging import LogContext, get_logger
from ..transport import (
    BaseEndpoint,
    DeliveryReport,
    DeliveryStatus,
    MessageReceiver,
    MessagingFee,
    MessagingParams,
    Options,
    Origin,
    combine_options,
    decode_options,
    guid_hex,
    to_option_bytes,
)
from .bridge_types import (
    BridgeConfig,
    BridgeMetrics,
    BridgeReceipt,
    BridgeTransfer,
    BridgeType,
    InboundTransfer,
    TransferStatus,
    can_transition,
)
from .message import BridgeMessage
from .peers import PeerTable

logger = get_logger(__name__)

OptionsLike = Union[bytes, str, None]


@dataclass
class _SendPlan:
    peer: bytes
    ledger: DFGToken
    message: BridgeMessage
    params: MessagingParams
    amount_sent: int


class BridgeAdapter(Contract, MessageReceiver):
    """Bridge contract bound to one endpoint and one or more ledgers."""

    bridge_type: BridgeType

    state_fields = Contract.state_fields + (
        "peer_table",
        "enforced_options",
        "assets",
        "transfers",
        "inbound",
        "metrics",
    )

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        endpoint: str,
        owner: str,
        token: str,
        config: Optional[BridgeConfig] = None,
    ):
        super().__init__(chain, address, deployer)
        self.owner = normalize_address(owner, "owner")
        self.config = config or BridgeConfig()

        endpoint_contract = chain.get_contract(endpoint)
        if not isinstance(endpoint_contract, BaseEndpoint):
            raise ConfigurationError(
                f"No endpoint deployed at {endpoint}",
                config_key="endpoint",
                config_value=endpoint,
            )
        self.endpoint = endpoint_contract

        self.peer_table = PeerTable()
        self.enforced_options: Dict[int, bytes] = {}
        self.assets: Dict[int, str] = {}
        self.transfers: Dict[str, BridgeTransfer] = {}
        self.inbound: Dict[str, InboundTransfer] = {}
        self.metrics = BridgeMetrics()

        for asset_id in self.config.supported_assets:
            self._register_asset(asset_id, token)
        self.endpoint.add_delivery_listener(self._on_delivery_report)

    @property
    def eid(self) -> int:
        return self.chain.eid

    def _context(self, operation: str, guid: Optional[str] = None) -> LogContext:
        return LogContext(
            eid=self.eid,
            component=self.__class__.__name__,
            operation=operation,
            guid=guid,
        )

    def _error_context(
        self, operation: str, guid: Optional[str] = None, caller: Optional[str] = None
    ) -> ErrorContext:
        return ErrorContext(
            eid=self.eid, contract=self.address, operation=operation, guid=guid, caller=caller
        )

    # Peers

    @transactional
    def set_peer(self, eid: int, peer: Union[bytes, str], *, sender: str) -> bool:
        """Trust ``peer`` as the adapter on ``eid``; return True if the table changed."""
        self.only_owner(sender)
        changed = self.peer_table.set(eid, peer)
        stored = self.peer_table.get(eid) or ZERO_BYTES32
        self.emit("PeerSet", eid=eid, peer=stored)
        if changed:
            logger.info(
                f"peer for eid {eid} set to 0x{stored.hex()}",
                context=self._context("set_peer"),
                extra={"version": self.peer_table.version},
            )
        return changed

    def peers(self, eid: int) -> bytes:
        """Peer registered for ``eid``, or 32 zero bytes."""
        return self.peer_table.get(eid) or ZERO_BYTES32

    def is_peer(self, eid: int, sender: bytes) -> bool:
        """True if ``sender`` is the registered peer for ``eid``."""
        return self.peer_table.is_peer(eid, sender)

    # Options

    @transactional
    def set_enforced_options(self, eid: int, options: OptionsLike, *, sender: str) -> None:
        """Options merged into every send to ``eid``; empty options clear them."""
        self.only_owner(sender)
        raw = to_option_bytes(options)
        if raw:
            decode_options(raw)
            self.enforced_options[eid] = raw
        else:
            self.enforced_options.pop(eid, None)
        self.emit("EnforcedOptionSet", eid=eid, options=raw)

    def combine_options(self, eid: int, extra: OptionsLike) -> bytes:
        """Enforced options for ``eid`` merged with the caller's ``extra`` options."""
        return combine_options(self.enforced_options.get(eid), extra)

    # Assets

    @transactional
    def register_asset(self, asset_id: int, ledger: str, *, sender: str) -> None:
        """Accept ``ledger`` as the token for ``asset_id``; owner only."""
        self.only_owner(sender)
        self._register_asset(asset_id, ledger)
        self.emit("AssetRegistered", asset_id=asset_id, ledger=self.assets[asset_id])

    def _register_asset(self, asset_id: int, ledger: str) -> None:
        if not isinstance(asset_id, int) or asset_id < 0:
            raise ValidationError("Invalid asset id", field="asset_id", value=asset_id)
        contract = self.chain.get_contract(ledger)
        if not isinstance(contract, DFGToken):
            raise ConfigurationError(
                f"No ledger deployed at {ledger}", config_key="ledger", config_value=ledger
            )
        if contract.decimals < self.config.shared_decimals:
            raise ConfigurationError(
                f"{contract.symbol} has {contract.decimals} decimals, "
                f"fewer than the {self.config.shared_decimals} shared decimals",
                config_key="shared_decimals",
                config_value=self.config.shared_decimals,
            )
        self.assets[asset_id] = contract.address

    def ledger_for(self, asset_id: int) -> DFGToken:
        """Ledger registered for ``asset_id``; raises ``UnsupportedAsset`` otherwise."""
        address = self.assets.get(asset_id)
        if address is None:
            raise UnsupportedAsset(
                f"Asset {asset_id} is not supported",
                field="asset_id",
                value=asset_id,
                expected=sorted(self.assets),
            )
        return self.chain.get_contract(address)

    # Decimal conversion

    def conversion_rate(self, asset_id: int) -> int:
        """Local units per shared unit for ``asset_id``."""
        return 10 ** (self.ledger_for(asset_id).decimals - self.config.shared_decimals)

    def remove_dust(self, amount: int, asset_id: int = 0) -> int:
        """Round ``amount`` down to a whole number of shared units."""
        rate = self.conversion_rate(asset_id)
        return amount // rate * rate

    def to_shared(self, amount: int, asset_id: int = 0) -> int:
        """Convert a local amount to shared decimals."""
        return amount // self.conversion_rate(asset_id)

    def to_local(self, amount_shared: int, asset_id: int = 0) -> int:
        """Convert a shared amount to local decimals."""
        return amount_shared * self.conversion_rate(asset_id)

    # Outbound

    def _plan(
        self,
        dst_eid: int,
        recipient: str,
        amount: int,
        asset_id: int,
        options: OptionsLike,
        pay_in_lz_token: bool,
        operation: str = "quote",
    ) -> _SendPlan:
        context = self._error_context(operation)
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < self.config.min_transfer_amount:
            raise create_validation_error(
                "amount",
                amount,
                f">= {self.config.min_transfer_amount}",
                message=f"Invalid amount: {amount!r}",
                context=context,
            )
        recipient = normalize_address(recipient, "recipient")
        ledger = self.ledger_for(asset_id)
        peer = self.peer_table.require(dst_eid)

        amount_sent = self.remove_dust(amount, asset_id)
        if amount_sent == 0:
            raise create_validation_error(
                "amount",
                amount,
                f">= {self.conversion_rate(asset_id)}",
                message=f"Amount {amount} is below the shared precision",
                context=context,
            )
        combined = self.combine_options(dst_eid, options)
        if not combined:
            combined = (
                Options.new_options()
                .add_executor_lz_receive_option(self.config.default_lz_receive_gas)
                .to_bytes()
            )
        message = BridgeMessage(
            dst_eid=dst_eid,
            recipient=recipient,
            amount=self.to_shared(amount_sent, asset_id),
            asset_id=asset_id,
        )
        params = MessagingParams(
            dst_eid=dst_eid,
            receiver=peer,
            message=message.encode(),
            options=combined,
            pay_in_lz_token=pay_in_lz_token,
        )
        return _SendPlan(peer, ledger, message, params, amount_sent)

    def quote(
        self,
        dst_eid: int,
        recipient: str,
        amount: int,
        asset_id: int = 0,
        options: OptionsLike = b"",
        pay_in_lz_token: bool = False,
    ) -> MessagingFee:
        """Fee ``bridge_token`` needs for these exact arguments; no side effects."""
        plan = self._plan(dst_eid, recipient, amount, asset_id, options, pay_in_lz_token)
        return self.endpoint.quote(plan.params, self.address)

    @transactional
    def bridge_token(
        self,
        dst_eid: int,
        recipient: str,
        amount: int,
        asset_id: int = 0,
        options: OptionsLike = b"",
        *,
        sender: str,
        value: int = 0,
    ) -> BridgeReceipt:
        """Move ``amount`` of ``sender``'s tokens to ``recipient`` on ``dst_eid``.

        Debit, fee payment and dispatch form one transaction: any failure
        leaves balances untouched. Dust below the shared precision stays with
        the sender. Native value above the fee is refunded to the sender.
        """
        sender = normalize_address(sender, "sender")
        plan = self._plan(dst_eid, recipient, amount, asset_id, options, False, "bridge_token")
        fee = self.endpoint.quote(plan.params, self.address)

        self._debit(plan.ledger, sender, plan.amount_sent)
        if value < fee.native_fee:
            raise InsufficientFee(
                f"Fee is {fee.native_fee}, got {value}",
                required=fee.native_fee,
                supplied=value,
                context=self._error_context("bridge_token", caller=sender),
            )
        self.chain.transfer_native(sender, self.address, value)
        receipt = self.endpoint.send(plan.params, sender, sender=self.address, value=value)

        guid = guid_hex(receipt.guid)
        transfer = BridgeTransfer(
            guid=guid,
            nonce=receipt.nonce,
            src_eid=self.eid,
            dst_eid=dst_eid,
            sender=sender,
            recipient=plan.message.recipient,
            asset_id=asset_id,
            amount_sent=plan.amount_sent,
            amount_shared=plan.message.amount,
            native_fee=receipt.fee.native_fee,
        )
        transfer.advance(TransferStatus.SENT)
        self.transfers[guid] = transfer

        self.metrics.transfers_sent += 1
        self.metrics.volume_sent += plan.amount_sent
        self.metrics.fees_paid += receipt.fee.native_fee

        self.emit(
            "BridgeSent",
            guid=receipt.guid,
            dst_eid=dst_eid,
            sender=sender,
            recipient=plan.message.recipient,
            asset_id=asset_id,
            amount=plan.amount_sent,
        )
        logger.info(
            f"bridged {plan.amount_sent} of asset {asset_id} to eid {dst_eid}",
            context=self._context("bridge_token", guid),
            extra={"sender": sender, "fee": receipt.fee.native_fee},
        )
        return BridgeReceipt(
            guid=guid,
            nonce=receipt.nonce,
            amount_sent=plan.amount_sent,
            amount_shared=plan.message.amount,
            native_fee=receipt.fee.native_fee,
            refund=value - receipt.fee.native_fee,
        )

    # Inbound

    @transactional
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
        """Credit an inbound transfer; only the bound endpoint may call this."""
        sender = normalize_address(sender, "sender")
        context = self._error_context("lz_receive", guid_hex(guid), sender)
        if sender != self.endpoint.address:
            raise create_unauthorized_error(sender, "endpoint", context=context)
        if not self.peer_table.is_peer(origin.src_eid, origin.sender):
            raise UntrustedSender(
                f"0x{bytes(origin.sender).hex()} is not the peer for eid {origin.src_eid}",
                src_eid=origin.src_eid,
                sender="0x" + bytes(origin.sender).hex(),
                context=context,
            )

        decoded = BridgeMessage.decode(message)
        if decoded.dst_eid != self.eid:
            raise MessageDecodeError(
                f"Message is addressed to eid {decoded.dst_eid}",
                field="dst_eid",
                value=decoded.dst_eid,
                expected=self.eid,
                context=context,
            )
        ledger = self.ledger_for(decoded.asset_id)
        amount = self.to_local(decoded.amount, decoded.asset_id)
        self._credit(ledger, decoded.recipient, amount)

        key = guid_hex(guid)
        self.inbound[key] = InboundTransfer(
            guid=key,
            src_eid=origin.src_eid,
            nonce=origin.nonce,
            recipient=decoded.recipient,
            asset_id=decoded.asset_id,
            amount=amount,
        )
        self.metrics.transfers_received += 1
        self.metrics.volume_received += amount

        self.emit(
            "BridgeReceived",
            guid=bytes(guid),
            src_eid=origin.src_eid,
            recipient=decoded.recipient,
            asset_id=decoded.asset_id,
            amount=amount,
        )
        logger.info(
            f"credited {amount} of asset {decoded.asset_id} from eid {origin.src_eid}",
            context=self._context("lz_receive", key),
            extra={"recipient": decoded.recipient},
        )

    # Transfer tracking

    def get_transfer(self, guid: Union[bytes, str]) -> Optional[BridgeTransfer]:
        """Outbound transfer for ``guid``, as bytes or hex, or None."""
        key = guid if isinstance(guid, str) else guid_hex(guid)
        return self.transfers.get(key)

    def transfers_by_status(self, status: TransferStatus) -> List[BridgeTransfer]:
        """Outbound transfers currently in ``status``."""
        return [t for t in self.transfers.values() if t.status == status]

    def _on_delivery_report(self, report: DeliveryReport) -> None:
        transfer = self.transfers.get(report.guid_hex)
        if transfer is None:
            return

        if report.status == DeliveryStatus.PENDING:
            targets = [TransferStatus.IN_FLIGHT]
        elif report.status == DeliveryStatus.DELIVERED:
            targets = [TransferStatus.DELIVERED, TransferStatus.MINTED]
        elif report.status == DeliveryStatus.FAILED:
            targets = [TransferStatus.REVERTED]
        else:
            return

        with self.chain.transaction():
            for target in targets:
                if not can_transition(transfer.status, target):
                    logger.warning(
                        f"ignoring {report.status.value} report in state {transfer.status.value}",
                        context=self._context("delivery_report", transfer.guid),
                    )
                    return
                transfer.advance(target, error=report.error)
            if transfer.status == TransferStatus.REVERTED:
                self.metrics.transfers_reverted += 1
                logger.error(
                    f"transfer reverted at destination: {report.error}",
                    context=self._context("delivery_report", transfer.guid),
                )

    # Ledger hooks

    @abstractmethod
    def _debit(self, ledger: DFGToken, holder: str, amount: int) -> None:
        """Take ``amount`` from ``holder`` on the source side."""

    @abstractmethod
    def _credit(self, ledger: DFGToken, recipient: str, amount: int) -> None:
        """Give ``amount`` to ``recipient`` on the destination side."""


class LockingBridge(BridgeAdapter):
    """Lock on send, unlock on receive.

    The sender must ``approve`` the bridge first. On a restricted ledger the
    bridge itself has to be a verified holder.
    """

    bridge_type = BridgeType.LOCK_AND_UNLOCK

    def locked(self, asset_id: int = 0) -> int:
        """Tokens held in custody for ``asset_id``."""
        return self.ledger_for(asset_id).balance_of(self.address)

    def _debit(self, ledger: DFGToken, holder: str, amount: int) -> None:
        ledger.transfer_from(holder, self.address, amount, sender=self.address)

    def _credit(self, ledger: DFGToken, recipient: str, amount: int) -> None:
        ledger.transfer(recipient, amount, sender=self.address)


class MintingBridge(BridgeAdapter):
    """Burn on send, mint on receive; the bridge must be a minter of its ledger."""

    bridge_type = BridgeType.BURN_AND_MINT

    def _debit(self, ledger: DFGToken, holder: str, amount: int) -> None:
        ledger.burn(holder, amount, sender=self.address)

    def _credit(self, ledger: DFGToken, recipient: str, amount: int) -> None:
        ledger.mint(recipient, amount, sender=self.address)


class EthBridge(LockingBridge):
    """Home-chain bridge holding EthDFG in custody."""


class BaseBridge(MintingBridge):
    """Remote-chain bridge minting and burning BaseDFG."""
