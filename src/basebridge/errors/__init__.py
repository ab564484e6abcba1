"""Relayer error handling.

This module provides the exception hierarchy shared by every relay step
and the retry helpers used for recoverable conditions.
"""

from .exceptions import (
    AccountNotFoundError,
    AmbiguousEventError,
    ApprovalTimeoutError,
    BridgeRelayError,
    ConfigurationError,
    CryptographicError,
    EmptyCallPayloadError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    HashMismatchError,
    NetworkError,
    NotFinalizedError,
    RelayCancelledError,
    RetryableError,
    TimeoutError,
    TransactionError,
    UnsupportedMessageKindError,
    ValidationError,
    create_timeout_error,
)
from .recovery import RetryPolicy, finalization_policy, retry_async

__all__ = [
    # Exceptions
    "BridgeRelayError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "ValidationError",
    "CryptographicError",
    "NetworkError",
    "TransactionError",
    "ConfigurationError",
    "TimeoutError",
    "RetryableError",
    "AmbiguousEventError",
    "NotFinalizedError",
    "HashMismatchError",
    "ApprovalTimeoutError",
    "EmptyCallPayloadError",
    "UnsupportedMessageKindError",
    "AccountNotFoundError",
    "RelayCancelledError",
    "create_timeout_error",
    # Recovery
    "RetryPolicy",
    "finalization_policy",
    "retry_async",
]
