"""
In-process chain runtime for the DFG bridge.

Provides chains with contract registries, native balances, event logs and
rollback-on-failure transactions, plus account and address helpers.
"""

from .accounts import (
    ZERO_ADDRESS,
    ZERO_BYTES32,
    Account,
    contract_address,
    format_bytes32_string,
    from_bytes32,
    make_address,
    make_signers,
    normalize_address,
    parse_bytes32_string,
    to_bytes32,
)
from .journal import Journal, JournaledDict, JournaledList, JournaledSet, Tracked
from .runtime import Chain, Contract, Event, transactional

__all__ = [
    "Chain",
    "Contract",
    "Event",
    "transactional",
    "Journal",
    "JournaledDict",
    "JournaledList",
    "JournaledSet",
    "Tracked",
    "Account",
    "make_signers",
    "make_address",
    "contract_address",
    "normalize_address",
    "to_bytes32",
    "from_bytes32",
    "format_bytes32_string",
    "parse_bytes32_string",
    "ZERO_ADDRESS",
    "ZERO_BYTES32",
]
