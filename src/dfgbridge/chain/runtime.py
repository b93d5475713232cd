"""
In-process chain runtime.

A :class:`Chain` hosts contracts, native balances and an event log for one
messaging endpoint id. Every state change happens inside
:meth:`Chain.transaction`, which journals every write to contract storage and
undoes the writes if an exception escapes, so a failing call leaves no
partial effects.
"""

import functools
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type, TypeVar

from ..errors import (
    InsufficientBalanceOrAllowance,
    ValidationError,
    create_unauthorized_error,
)
from .accounts import contract_address, normalize_address
from .journal import Journal

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="Contract")


@dataclass
class Event:
    """A log emitted by a contract."""

    name: str
    address: str
    args: Dict[str, Any]
    block_number: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "address": self.address,
            "args": self.args,
            "block_number": self.block_number,
            "timestamp": self.timestamp,
        }


class Chain:
    """A single chain: contracts, native currency and serialized transactions."""

    def __init__(self, eid: int, name: Optional[str] = None):
        if not isinstance(eid, int) or eid <= 0:
            raise ValidationError(
                "Endpoint id must be a positive integer", field="eid", value=eid
            )
        self.eid = eid
        self.name = name or f"chain-{eid}"
        self._depth = 0
        self.journal = Journal(lambda: self._depth > 0)
        self.contracts: Dict[str, "Contract"] = self.journal.track({})
        self.native_balances: Dict[str, int] = self.journal.track({})
        self.deploy_nonces: Dict[str, int] = self.journal.track({})
        self.events: List[Event] = []
        self.block_number = 0
        self._lock = threading.RLock()
        self._lock_group: List["Chain"] = [self]
        self._on_commit: List[Callable[[], None]] = []

    def __repr__(self) -> str:
        return f"Chain(eid={self.eid}, name={self.name!r})"

    # Transactions

    @contextmanager
    def transaction(self) -> Iterator["Chain"]:
        """Run a unit of work; any escaping exception restores prior state.

        Nested calls get their own savepoint, so a failing inner call that the
        caller catches is still undone.
        """
        with self._lock:
            mark = self.journal.mark()
            events = len(self.events)
            on_commit = len(self._on_commit)
            self._depth += 1
            try:
                yield self
            except BaseException:
                self.journal.rollback(mark)
                del self.events[events:]
                del self._on_commit[on_commit:]
                logger.debug(f"{self.name}: transaction rolled back")
                raise
            finally:
                self._depth -= 1
            if self._depth == 0:
                self.journal.commit()
                self.block_number += 1
                callbacks, self._on_commit = self._on_commit, []
                self._run_callbacks(callbacks)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def call_on_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the outermost transaction commits.

        Callbacks registered inside a rolled back savepoint are discarded.
        Outside a transaction the callback runs immediately.
        """
        if self._depth == 0:
            self._run_callbacks([callback])
        else:
            self._on_commit.append(callback)

    def _run_callbacks(self, callbacks: List[Callable[[], None]]) -> None:
        # The transaction has committed; a failing callback cannot undo it.
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception(f"{self.name}: commit callback failed")

    def share_lock(self, other: "Chain") -> None:
        """Serialize transactions of ``other`` and this chain on one lock.

        Chains that call into each other synchronously must share a lock.
        Lock groups merge transitively.
        """
        if other._lock is self._lock:
            return
        first, second = sorted((self, other), key=lambda c: (c.eid, id(c)))
        with first._lock, second._lock:
            if self.in_transaction or other.in_transaction:
                raise ValidationError(
                    "Cannot merge chain locks inside a transaction",
                    field="chain",
                    value=other.eid,
                )
            group = self._lock_group + other._lock_group
            for chain in group:
                chain._lock = self._lock
                chain._lock_group = group
        logger.debug(f"{self.name}: sharing transaction lock with {other.name}")

    # Contracts

    def deploy(self, contract_cls: Type[C], *args: Any, deployer: str, **kwargs: Any) -> C:
        """Create ``contract_cls`` at the next address of ``deployer``."""
        deployer = normalize_address(deployer, "deployer")
        with self.transaction():
            nonce = self.deploy_nonces.get(deployer, 0)
            self.deploy_nonces[deployer] = nonce + 1
            address = contract_address(deployer, nonce, self.eid)
            contract = contract_cls(self, address, deployer, *args, **kwargs)
            self.contracts[address] = contract
        logger.debug(f"{self.name}: deployed {contract_cls.__name__} at {address}")
        return contract

    def get_contract(self, address: str) -> Optional["Contract"]:
        """Contract at ``address`` or None."""
        return self.contracts.get(normalize_address(address))

    # Native currency

    def native_balance_of(self, address: str) -> int:
        return self.native_balances.get(normalize_address(address), 0)

    def fund(self, address: str, amount: int) -> None:
        """Credit native currency out of thin air (genesis allocation, faucet)."""
        if amount < 0:
            raise ValidationError("Amount cannot be negative", field="amount", value=amount)
        address = normalize_address(address)
        with self.transaction():
            self.native_balances[address] = self.native_balances.get(address, 0) + amount

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        """Move native currency between accounts."""
        if amount < 0:
            raise ValidationError("Amount cannot be negative", field="amount", value=amount)
        sender = normalize_address(sender, "sender")
        to = normalize_address(to, "to")
        with self.transaction():
            available = self.native_balances.get(sender, 0)
            if available < amount:
                raise InsufficientBalanceOrAllowance(
                    f"Native balance of {sender} is {available}, needs {amount}",
                    holder=sender,
                    required=amount,
                    available=available,
                )
            self.native_balances[sender] = available - amount
            self.native_balances[to] = self.native_balances.get(to, 0) + amount

    # Events

    def emit(self, address: str, name: str, **args: Any) -> Event:
        event = Event(name=name, address=address, args=args, block_number=self.block_number)
        self.events.append(event)
        return event

    def get_events(self, name: Optional[str] = None, address: Optional[str] = None) -> List[Event]:
        """Events filtered by name and/or emitting address."""
        return [
            event
            for event in self.events
            if (name is None or event.name == name)
            and (address is None or event.address == address)
        ]


class Contract:
    """Base class for contracts hosted on a :class:`Chain`.

    Subclasses list the attributes that make up their storage in
    ``state_fields``; assignments to them, and mutations of the containers
    they hold, are journaled by chain transactions.
    """

    state_fields: Tuple[str, ...] = ("owner",)

    def __init__(self, chain: Chain, address: str, deployer: str):
        self.chain = chain
        self.address = address
        self.deployer = deployer
        self.owner = deployer

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address}, eid={self.chain.eid})"

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.state_fields:
            self.chain.journal.set_attr(self, name, value)
        else:
            object.__setattr__(self, name, value)

    def emit(self, name: str, **args: Any) -> Event:
        return self.chain.emit(self.address, name, **args)

    def only_owner(self, sender: str) -> str:
        """Return the normalized sender if it is the owner, else raise."""
        sender = normalize_address(sender, "sender")
        if sender != self.owner:
            raise create_unauthorized_error(sender, "owner")
        return sender

    def transfer_ownership(self, new_owner: str, *, sender: str) -> None:
        with self.chain.transaction():
            self.only_owner(sender)
            previous, self.owner = self.owner, normalize_address(new_owner, "new_owner")
            self.emit("OwnershipTransferred", previous_owner=previous, new_owner=self.owner)


def transactional(method: Callable) -> Callable:
    """Run a contract method as one unit of work on its chain."""

    @functools.wraps(method)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        with self.chain.transaction():
            return method(self, *args, **kwargs)

    return wrapper


__all__ = ["Chain", "Contract", "Event", "transactional"]
