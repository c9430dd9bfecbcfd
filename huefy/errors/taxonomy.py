"""Closed error taxonomy shared by every transport."""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Categories of failures a caller can observe.

    Values are the stable error codes exposed on ``HuefyError.code`` when no
    finer code applies.
    """

    AUTHENTICATION = "INVALID_API_KEY"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    INVALID_TEMPLATE_DATA = "INVALID_TEMPLATE_DATA"
    INVALID_RECIPIENT = "INVALID_RECIPIENT"
    PROVIDER = "PROVIDER_ERROR"
    RATE_LIMIT = "RATE_LIMIT_EXCEEDED"
    NETWORK = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    INTERNAL = "INTERNAL_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


STATUS_BY_KIND: dict[ErrorKind, Optional[int]] = {
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.TEMPLATE_NOT_FOUND: 404,
    ErrorKind.INVALID_TEMPLATE_DATA: 400,
    ErrorKind.INVALID_RECIPIENT: 400,
    ErrorKind.PROVIDER: 500,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.NETWORK: None,
    ErrorKind.TIMEOUT: None,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INTERNAL: 500,
    ErrorKind.UNKNOWN: None,
}

# Retrying a malformed or unauthorized request cannot succeed.
PERMANENT_KINDS = frozenset({
    ErrorKind.AUTHENTICATION,
    ErrorKind.TEMPLATE_NOT_FOUND,
    ErrorKind.INVALID_TEMPLATE_DATA,
    ErrorKind.INVALID_RECIPIENT,
    ErrorKind.VALIDATION,
})

TRANSIENT_KINDS = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMIT,
})

# Remote error codes (HTTP error bodies, kernel error objects) to kinds.
REMOTE_CODE_KINDS: dict[str, ErrorKind] = {
    "INVALID_API_KEY": ErrorKind.AUTHENTICATION,
    "UNAUTHORIZED": ErrorKind.AUTHENTICATION,
    "TEMPLATE_NOT_FOUND": ErrorKind.TEMPLATE_NOT_FOUND,
    "INVALID_TEMPLATE_DATA": ErrorKind.INVALID_TEMPLATE_DATA,
    "INVALID_RECIPIENT": ErrorKind.INVALID_RECIPIENT,
    "PROVIDER_ERROR": ErrorKind.PROVIDER,
    "RATE_LIMIT_EXCEEDED": ErrorKind.RATE_LIMIT,
    "NETWORK_ERROR": ErrorKind.NETWORK,
    "TIMEOUT_ERROR": ErrorKind.TIMEOUT,
    "VALIDATION_ERROR": ErrorKind.VALIDATION,
    "INTERNAL_ERROR": ErrorKind.INTERNAL,
}

RECOVERY_HINTS: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION: "Check that the API key is set and still active.",
    ErrorKind.TEMPLATE_NOT_FOUND: "The template key does not exist. Check it in the Huefy dashboard.",
    ErrorKind.INVALID_TEMPLATE_DATA: "The template variables do not match the template. Review the data.",
    ErrorKind.INVALID_RECIPIENT: "The recipient address was rejected. Check the email address.",
    ErrorKind.PROVIDER: "The email provider failed. Try again later or choose another provider.",
    ErrorKind.RATE_LIMIT: "Rate limit exceeded. Slow down before sending more email.",
    ErrorKind.NETWORK: "Network connection issue. Check connectivity to the Huefy service.",
    ErrorKind.TIMEOUT: "The request timed out. The service may be slow or unreachable.",
    ErrorKind.VALIDATION: "Invalid input or configuration. Check the values and try again.",
}


class HuefyError(Exception):
    """The only error type raised across the public boundary.

    ``status_code`` is derived from ``kind`` so the two can never disagree.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message or _default_message(kind))
        self.kind = kind
        self.message = message or _default_message(kind)
        self.code = code or kind.value
        self.details = dict(details) if details else None

    @property
    def status_code(self) -> Optional[int]:
        return STATUS_BY_KIND[self.kind]

    @property
    def retryable(self) -> bool:
        """Retryability ignoring attempt budget and per-client policy."""
        return is_retryable_error(self)

    @property
    def hint(self) -> Optional[str]:
        return RECOVERY_HINTS.get(self.kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.name,
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"HuefyError(kind={self.kind.name}, code={self.code!r}, message={self.message!r})"

    @classmethod
    def from_error_response(
        cls,
        code: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
        http_status: Optional[int] = None,
    ) -> "HuefyError":
        """Build an error from a remote ``{error, code, details}`` payload.

        Unknown codes fall back on the HTTP status when there is one.
        """
        kind = REMOTE_CODE_KINDS.get((code or "").upper())
        if kind is None:
            kind = _kind_for_http_status(http_status)
        merged = dict(details or {})
        if http_status is not None:
            merged.setdefault("http_status", http_status)
        return cls(kind, message, code=code or None, details=merged or None)

    @classmethod
    def authentication(cls, message: str = "Invalid or missing API key", **details: Any) -> "HuefyError":
        return cls(ErrorKind.AUTHENTICATION, message, details=details)

    @classmethod
    def template_not_found(cls, template_key: str, **details: Any) -> "HuefyError":
        return cls(
            ErrorKind.TEMPLATE_NOT_FOUND,
            f"Template '{template_key}' not found",
            details={"template_key": template_key, **details},
        )

    @classmethod
    def rate_limit(cls, message: str = "Rate limit exceeded", **details: Any) -> "HuefyError":
        return cls(ErrorKind.RATE_LIMIT, message, details=details)

    @classmethod
    def network(cls, message: str = "Network error", **details: Any) -> "HuefyError":
        return cls(ErrorKind.NETWORK, message, details=details)

    @classmethod
    def timeout(cls, timeout_ms: Optional[float] = None) -> "HuefyError":
        if timeout_ms is None:
            return cls(ErrorKind.TIMEOUT, "Request timed out")
        return cls(
            ErrorKind.TIMEOUT,
            f"Request timed out after {int(timeout_ms)}ms",
            details={"timeout": int(timeout_ms)},
        )

    @classmethod
    def validation(cls, message: str = "Validation error", code: Optional[str] = None, **details: Any) -> "HuefyError":
        return cls(ErrorKind.VALIDATION, message, code=code, details=details)

    @classmethod
    def internal(cls, message: str = "Internal error", code: Optional[str] = None, **details: Any) -> "HuefyError":
        return cls(ErrorKind.INTERNAL, message, code=code, details=details)


def _default_message(kind: ErrorKind) -> str:
    return kind.name.replace("_", " ").capitalize() + " error"


def _kind_for_http_status(status: Optional[int]) -> ErrorKind:
    if status in (401, 403):
        return ErrorKind.AUTHENTICATION
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if status is not None and status >= 500:
        return ErrorKind.INTERNAL
    return ErrorKind.UNKNOWN


def is_huefy_error(error: Any) -> bool:
    return isinstance(error, HuefyError)


def is_error_code(error: Any, code: str) -> bool:
    return isinstance(error, HuefyError) and error.code == code


def is_retryable_error(error: Any) -> bool:
    """Check whether an error is transient by kind or status.

    Args:
        error: Any exception

    Returns:
        True for network, timeout and rate-limit errors and any 5xx kind
    """
    if not isinstance(error, HuefyError):
        return False
    if error.kind in PERMANENT_KINDS:
        return False
    if error.kind in TRANSIENT_KINDS:
        return True
    status = error.status_code
    return status is not None and status >= 500
