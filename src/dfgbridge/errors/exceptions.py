"""Exception hierarchy for the DFG bridge.

This module defines the structured error taxonomy shared by the ledger, the
bridge adapters and the messaging transport. Every error carries a category,
a severity and an optional context so failures can be logged and reported
uniformly.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    ROUTING = "routing"
    FEE = "fee"
    LEDGER = "ledger"
    TRANSPORT = "transport"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    eid: Optional[int] = None
    contract: Optional[str] = None
    operation: Optional[str] = None
    caller: Optional[str] = None
    guid: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "eid": self.eid,
            "contract": self.contract,
            "operation": self.operation,
            "caller": self.caller,
            "guid": self.guid,
            "metadata": self.metadata,
        }


class BridgeError(Exception):
    """Base exception for all bridge errors."""

    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        retryable: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.retryable = retryable
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "retryable": self.retryable,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code:
            parts.append(f"Code: {self.error_code}")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        if self.category != ErrorCategory.SYSTEM:
            parts.append(f"Category: {self.category.value}")

        if self.retryable:
            parts.append("Retryable: Yes")

        return " | ".join(parts)


class ValidationError(BridgeError):
    """Invalid argument or illegal state transition."""

    default_code = "INVALID_ARGUMENT"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        kwargs.setdefault("category", ErrorCategory.VALIDATION)
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class Unauthorized(BridgeError):
    """Caller lacks the role required by the operation."""

    default_code = "UNAUTHORIZED"

    def __init__(
        self,
        message: str,
        caller: Optional[str] = None,
        role: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.caller = caller
        self.role = role

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"caller": self.caller, "role": self.role})
        return data


class UnknownPeer(BridgeError):
    """No peer is registered for the requested destination."""

    default_code = "NO_PEER"

    def __init__(self, message: str, eid: Optional[int] = None, **kwargs):
        super().__init__(message, category=ErrorCategory.ROUTING, **kwargs)
        self.eid = eid

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"eid": self.eid})
        return data


class UntrustedSender(BridgeError):
    """Inbound message origin does not match the registered peer."""

    default_code = "ONLY_PEER"

    def __init__(
        self,
        message: str,
        src_eid: Optional[int] = None,
        sender: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.AUTHORIZATION,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.src_eid = src_eid
        self.sender = sender

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"src_eid": self.src_eid, "sender": self.sender})
        return data


class InsufficientFee(BridgeError):
    """Attached native value is below the quoted fee."""

    default_code = "INSUFFICIENT_FEE"

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        supplied: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.FEE, **kwargs)
        self.required = required
        self.supplied = supplied

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"required": self.required, "supplied": self.supplied})
        return data


class FeeTokenUnavailable(BridgeError):
    """Alternate-token fee requested but the endpoint has none configured."""

    default_code = "LZ_TOKEN_UNAVAILABLE"

    def __init__(self, message: str, **kwargs):
        super().__init__(message, category=ErrorCategory.FEE, **kwargs)


class InsufficientBalanceOrAllowance(BridgeError):
    """A debit found too little balance or allowance."""

    default_code = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        message: str,
        holder: Optional[str] = None,
        required: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.LEDGER, **kwargs)
        self.holder = holder
        self.required = required
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "holder": self.holder,
                "required": self.required,
                "available": self.available,
            }
        )
        return data


class MessageDecodeError(ValidationError):
    """Inbound payload could not be decoded or is addressed elsewhere."""

    default_code = "DECODE_FAILED"


class InvalidOptions(ValidationError):
    """Messaging options are malformed or carry no executor gas."""

    default_code = "INVALID_OPTIONS"


class UnsupportedAsset(ValidationError):
    """Asset id is not registered on the adapter."""

    default_code = "UNSUPPORTED_ASSET"


class DuplicateMessage(BridgeError):
    """A packet with this guid was already delivered."""

    default_code = "DUPLICATE_PACKET"

    def __init__(self, message: str, guid: Optional[str] = None, **kwargs):
        super().__init__(message, category=ErrorCategory.TRANSPORT, **kwargs)
        self.guid = guid


class ConfigurationError(BridgeError):
    """Invalid topology or configuration."""

    default_code = "BAD_CONFIG"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": str(self.config_value)
                if self.config_value is not None
                else None,
            }
        )
        return data


# Convenience functions for common error patterns
def create_validation_error(
    field: str,
    value: Any,
    expected: Any,
    message: Optional[str] = None,
    context: Optional[ErrorContext] = None,
) -> ValidationError:
    """Create a validation error."""
    if message is None:
        message = f"Invalid value for field '{field}': expected {expected}, got {value}"

    return ValidationError(
        message=message, field=field, value=value, expected=expected, context=context
    )


def create_unauthorized_error(
    caller: str, role: str, context: Optional[ErrorContext] = None
) -> Unauthorized:
    """Create an authorization error for a missing role."""
    return Unauthorized(f"{caller} is not {role}", caller=caller, role=role, context=context)
