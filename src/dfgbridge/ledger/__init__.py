"""DFG token ledgers moved by the bridge."""

from .token import BaseDFG, DFGToken, EthDFG

__all__ = ["DFGToken", "EthDFG", "BaseDFG"]
