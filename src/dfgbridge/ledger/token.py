"""
DFG token ledger.

ERC-20 style fungible token with an owner, a minter set and a verified-holder
allowlist. A restricted ledger only lets verified holders send or receive
tokens; an unrestricted one behaves like a plain mintable token.
"""

import logging
from typing import Dict, Set, Union

from ..chain import Chain, Contract, format_bytes32_string, normalize_address, transactional
from ..errors import (
    InsufficientBalanceOrAllowance,
    Unauthorized,
    ValidationError,
    create_unauthorized_error,
)

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValidationError(
            f"Invalid amount: {amount!r}",
            field="amount",
            value=amount,
            expected="non-negative integer",
        )
    return amount


class DFGToken(Contract):
    """Permissioned fungible token."""

    state_fields = Contract.state_fields + (
        "balances",
        "allowances",
        "total_supply",
        "verified",
        "minters",
    )

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        restricted: bool = False,
    ):
        super().__init__(chain, address, deployer)
        if decimals < 0 or decimals > 77:
            raise ValidationError("Decimals out of range", field="decimals", value=decimals)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.restricted = restricted
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[str, Dict[str, int]] = {}
        self.total_supply = 0
        self.verified: Dict[str, bytes] = {}
        self.minters: Set[str] = {deployer}

    # Views

    def balance_of(self, holder: str) -> int:
        return self.balances.get(normalize_address(holder, "holder"), 0)

    def allowance(self, holder: str, spender: str) -> int:
        holder = normalize_address(holder, "holder")
        spender = normalize_address(spender, "spender")
        return self.allowances.get(holder, {}).get(spender, 0)

    def is_verified(self, holder: str) -> bool:
        return normalize_address(holder, "holder") in self.verified

    def verified_label(self, holder: str) -> bytes:
        return self.verified.get(normalize_address(holder, "holder"), b"")

    def is_minter(self, account: str) -> bool:
        return normalize_address(account) in self.minters

    # Owner administration

    @transactional
    def add_verified(self, holder: str, label: Union[bytes, str], *, sender: str) -> None:
        """Allow ``holder`` to take part in restricted transfers."""
        self.only_owner(sender)
        holder = normalize_address(holder, "holder")
        if isinstance(label, str):
            label = format_bytes32_string(label)
        if len(label) != 32:
            raise ValidationError("Label must be 32 bytes", field="label", value=label)
        self.verified[holder] = bytes(label)
        self.emit("VerifiedAdded", holder=holder, label=bytes(label))
        logger.info(f"{self.symbol}: verified {holder}")

    @transactional
    def remove_verified(self, holder: str, *, sender: str) -> None:
        self.only_owner(sender)
        holder = normalize_address(holder, "holder")
        if self.verified.pop(holder, None) is not None:
            self.emit("VerifiedRemoved", holder=holder)

    @transactional
    def add_minter(self, account: str, *, sender: str) -> None:
        """Grant mint and burn capability to ``account``."""
        self.only_owner(sender)
        account = normalize_address(account)
        self.minters.add(account)
        self.emit("MinterAdded", account=account)
        logger.info(f"{self.symbol}: minter added {account}")

    @transactional
    def remove_minter(self, account: str, *, sender: str) -> None:
        self.only_owner(sender)
        account = normalize_address(account)
        if account in self.minters:
            self.minters.discard(account)
            self.emit("MinterRemoved", account=account)

    # Token operations

    @transactional
    def approve(self, spender: str, amount: int, *, sender: str) -> bool:
        holder = normalize_address(sender, "sender")
        spender = normalize_address(spender, "spender")
        self.allowances.setdefault(holder, {})[spender] = _check_amount(amount)
        self.emit("Approval", owner=holder, spender=spender, value=amount)
        return True

    @transactional
    def transfer(self, to: str, amount: int, *, sender: str) -> bool:
        self._move(normalize_address(sender, "sender"), normalize_address(to, "to"), amount)
        return True

    @transactional
    def transfer_from(self, holder: str, to: str, amount: int, *, sender: str) -> bool:
        """Move tokens out of ``holder`` using the allowance granted to ``sender``."""
        spender = normalize_address(sender, "sender")
        holder = normalize_address(holder, "holder")
        to = normalize_address(to, "to")
        _check_amount(amount)
        self._require_verified(holder, to)
        allowed = self.allowances.get(holder, {}).get(spender, 0)
        if allowed < amount:
            raise InsufficientBalanceOrAllowance(
                f"Allowance of {spender} over {holder} is {allowed}, needs {amount}",
                holder=holder,
                required=amount,
                available=allowed,
            )
        self.allowances[holder][spender] = allowed - amount
        self._move(holder, to, amount)
        return True

    @transactional
    def mint(self, to: str, amount: int, *, sender: str) -> None:
        self._only_minter(sender)
        to = normalize_address(to, "to")
        _check_amount(amount)
        self._require_verified(to)
        self.balances[to] = self.balances.get(to, 0) + amount
        self.total_supply += amount
        self.emit("Transfer", sender=None, to=to, value=amount)

    @transactional
    def burn(self, holder: str, amount: int, *, sender: str) -> None:
        """Destroy ``amount`` of ``holder``'s tokens; minters only."""
        self._only_minter(sender)
        holder = normalize_address(holder, "holder")
        _check_amount(amount)
        self._require_verified(holder)
        self._debit(holder, amount)
        self.total_supply -= amount
        self.emit("Transfer", sender=holder, to=None, value=amount)

    # Internals

    def _only_minter(self, sender: str) -> None:
        sender = normalize_address(sender, "sender")
        if sender not in self.minters:
            raise create_unauthorized_error(sender, "minter")

    def _require_verified(self, *holders: str) -> None:
        if not self.restricted:
            return
        for holder in holders:
            if holder not in self.verified:
                raise Unauthorized(
                    f"{holder} is not a verified holder of {self.symbol}",
                    caller=holder,
                    role="verified",
                )

    def _debit(self, holder: str, amount: int) -> None:
        balance = self.balances.get(holder, 0)
        if balance < amount:
            raise InsufficientBalanceOrAllowance(
                f"Balance of {holder} is {balance}, needs {amount}",
                holder=holder,
                required=amount,
                available=balance,
            )
        self.balances[holder] = balance - amount

    def _move(self, holder: str, to: str, amount: int) -> None:
        _check_amount(amount)
        self._require_verified(holder, to)
        self._debit(holder, amount)
        self.balances[to] = self.balances.get(to, 0) + amount
        self.emit("Transfer", sender=holder, to=to, value=amount)


class EthDFG(DFGToken):
    """Home-chain DFG: whole units, verified holders only."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        name: str = "EthDFG",
        symbol: str = "EDFG",
    ):
        super().__init__(chain, address, deployer, name, symbol, decimals=0, restricted=True)


class BaseDFG(DFGToken):
    """Remote-chain DFG: 18 decimals, minted and burned by the bridge."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        deployer: str,
        name: str = "BaseDFG",
        symbol: str = "BDFG",
    ):
        super().__init__(chain, address, deployer, name, symbol, decimals=18, restricted=False)
