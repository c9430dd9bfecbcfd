"""Error taxonomy, classification and retry policy."""

from .taxonomy import (
    PERMANENT_KINDS,
    RECOVERY_HINTS,
    STATUS_BY_KIND,
    TRANSIENT_KINDS,
    ErrorKind,
    HuefyError,
    is_error_code,
    is_huefy_error,
    is_retryable_error,
)
from .classifier import ErrorClassifier, classify
from .strategies import RetryDecision, RetryPolicy, RetryState, backoff_delay_ms, should_retry

__all__ = [
    "PERMANENT_KINDS",
    "RECOVERY_HINTS",
    "STATUS_BY_KIND",
    "TRANSIENT_KINDS",
    "ErrorKind",
    "HuefyError",
    "is_error_code",
    "is_huefy_error",
    "is_retryable_error",
    "ErrorClassifier",
    "classify",
    "RetryDecision",
    "RetryPolicy",
    "RetryState",
    "backoff_delay_ms",
    "should_retry",
]
