"""DFG bridge error handling.

Structured exception hierarchy used by the ledger, the bridge adapters, the
messaging transport and the topology tooling.
"""

from .exceptions import (
    BridgeError,
    ConfigurationError,
    DuplicateMessage,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    FeeTokenUnavailable,
    InsufficientBalanceOrAllowance,
    InsufficientFee,
    InvalidOptions,
    MessageDecodeError,
    Unauthorized,
    UnknownPeer,
    UnsupportedAsset,
    UntrustedSender,
    ValidationError,
    create_unauthorized_error,
    create_validation_error,
)

__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "BridgeError",
    "ValidationError",
    "Unauthorized",
    "UnknownPeer",
    "UntrustedSender",
    "InsufficientFee",
    "FeeTokenUnavailable",
    "InsufficientBalanceOrAllowance",
    "MessageDecodeError",
    "InvalidOptions",
    "UnsupportedAsset",
    "DuplicateMessage",
    "ConfigurationError",
    "create_validation_error",
    "create_unauthorized_error",
]
