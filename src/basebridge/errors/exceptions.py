"""Exception hierarchy for the bridge relayer.

Every relay error records the step that failed and, where known, the
message hash it was working on. Subclasses list their extra attributes in
``details`` so ``to_dict`` can serialize them without overriding it.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    VALIDATION = "validation"
    CRYPTOGRAPHIC = "cryptographic"
    NETWORK = "network"
    TRANSACTION = "transaction"
    CHAIN = "chain"
    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    SYSTEM = "system"


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


@dataclass
class ErrorContext:
    """Where an error happened: the relay step and the message it concerned."""

    component: Optional[str] = None
    operation: Optional[str] = None
    message_hash: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "operation": self.operation,
            "message_hash": self.message_hash,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


class BridgeRelayError(Exception):
    """Base exception for all relayer errors."""

    details: Tuple[str, ...] = ()

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        retryable: bool = False,
        step: Optional[str] = None,
        message_hash: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.category = category
        self.cause = cause
        self.retryable = retryable
        self.metadata = metadata or {}
        self.context = replace(context) if context is not None else ErrorContext()
        if step is not None:
            self.context.operation = step
        if message_hash is not None:
            self.context.message_hash = message_hash

    @property
    def step(self) -> Optional[str]:
        return self.context.operation

    @property
    def message_hash(self) -> Optional[str]:
        return self.context.message_hash

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "category": self.category.value,
            "retryable": self.retryable,
            "cause": str(self.cause) if self.cause is not None else None,
            "context": self.context.to_dict(),
            "metadata": self.metadata,
        }
        for name in self.details:
            data[name] = _plain(getattr(self, name))
        return data

    def __str__(self) -> str:
        tags = [
            f"{label}={value}"
            for label, value in (
                ("code", self.error_code),
                ("step", self.step),
                ("message_hash", self.message_hash),
            )
            if value
        ]
        if self.retryable:
            tags.append("retryable")
        return f"{self.message} [{', '.join(tags)}]" if tags else self.message


class ValidationError(BridgeRelayError):
    """Validation error."""

    details = ("field", "value", "expected")

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


class CryptographicError(BridgeRelayError):
    """Cryptographic error."""

    details = ("algorithm",)

    def __init__(self, message: str, algorithm: Optional[str] = None, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, category=ErrorCategory.CRYPTOGRAPHIC, **kwargs)
        self.algorithm = algorithm


class NetworkError(BridgeRelayError):
    """RPC or transport error."""

    details = ("endpoint", "status_code")

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("retryable", True)
        super().__init__(message, category=ErrorCategory.NETWORK, **kwargs)
        self.endpoint = endpoint
        self.status_code = status_code


class TransactionError(BridgeRelayError):
    """Transaction submission or confirmation error."""

    details = ("transaction_id", "transaction_type")

    def __init__(
        self,
        message: str,
        transaction_id: Optional[str] = None,
        transaction_type: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, category=ErrorCategory.TRANSACTION, **kwargs)
        self.transaction_id = transaction_id
        self.transaction_type = transaction_type


class ConfigurationError(BridgeRelayError):
    """Bad RPC endpoint, unknown deploy environment or missing setting."""

    details = ("config_key", "config_value")

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)
        self.config_key = config_key
        self.config_value = config_value


class TimeoutError(BridgeRelayError):
    """A bounded wait ran out."""

    details = ("timeout_duration",)

    def __init__(self, message: str, timeout_duration: Optional[float] = None, **kwargs):
        kwargs.setdefault("retryable", True)
        super().__init__(message, category=ErrorCategory.TIMEOUT, **kwargs)
        self.timeout_duration = timeout_duration


class RetryableError(BridgeRelayError):
    """Condition expected to clear by itself; safe to retry the step."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, retryable=True, **kwargs)


class AmbiguousEventError(BridgeRelayError):
    """Zero or several message events in one source transaction."""

    details = ("event_count",)

    def __init__(self, message: str, event_count: int = 0, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message, category=ErrorCategory.CHAIN, **kwargs)
        self.event_count = event_count


class NotFinalizedError(RetryableError):
    """Source event is above the checkpoint mirrored on the destination."""

    details = ("block_number", "checkpoint")

    def __init__(
        self,
        message: str,
        block_number: Optional[int] = None,
        checkpoint: Optional[int] = None,
        **kwargs,
    ):
        kwargs.setdefault("category", ErrorCategory.CHAIN)
        super().__init__(message, **kwargs)
        self.block_number = block_number
        self.checkpoint = checkpoint


class HashMismatchError(CryptographicError):
    """Locally computed message hash disagrees with the destination."""

    details = ("algorithm", "expected", "actual")

    def __init__(
        self,
        message: str,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, algorithm="keccak256", **kwargs)
        self.expected = expected
        self.actual = actual


class ApprovalTimeoutError(TimeoutError):
    """Validator approval did not arrive before the timeout."""


class EmptyCallPayloadError(ValidationError):
    """Call payload without any instruction."""


class UnsupportedMessageKindError(ValidationError):
    """Payload variant the relayer does not know how to handle."""


class AccountNotFoundError(ValidationError):
    """Required on-chain account does not exist."""


class RelayCancelledError(BridgeRelayError):
    """Polling loop stopped by an external cancellation signal."""


def create_timeout_error(
    operation: str, timeout_duration: float, message: Optional[str] = None, **kwargs
) -> TimeoutError:
    """Create a timeout error for ``operation``."""
    if message is None:
        message = f"{operation} timed out after {timeout_duration} seconds"
    return TimeoutError(message, step=operation, timeout_duration=timeout_duration, **kwargs)
