"""Classification of transport failures into the error taxonomy."""

import asyncio
import logging
import re
from typing import Optional

import grpc
import httpx

from huefy.errors.taxonomy import RECOVERY_HINTS, ErrorKind, HuefyError
from huefy.transport.base import (
    ProcessExitError,
    RemoteApplicationError,
    RemoteStatusError,
    ResponseDecodeError,
    SpawnError,
    TransportKind,
    TransportTimeout,
)

logger = logging.getLogger(__name__)


class ErrorClassifier:
    """Map raw transport failures onto ``HuefyError``."""

    # Kernel diagnostic patterns, checked in this order
    RATE_LIMIT_PATTERNS = [
        r"rate limit",
        r"too many requests",
        r"quota.*exceeded",
        r"throttled",
    ]

    TIMEOUT_PATTERNS = [
        r"timeout",
        r"timed out",
        r"deadline exceeded",
    ]

    AUTH_PATTERNS = [
        r"api[ _-]?key",
        r"unauthori[sz]ed",
        r"unauthenticated",
        r"forbidden",
    ]

    TEMPLATE_PATTERNS = [
        r"template",
    ]

    NETWORK_PATTERNS = [
        r"network",
        r"connection",
        r"econnrefused",
        r"no such host",
        r"dns.*failed",
        r"could not resolve",
    ]

    GRPC_STATUS_KINDS = {
        grpc.StatusCode.UNAUTHENTICATED: ErrorKind.AUTHENTICATION,
        grpc.StatusCode.PERMISSION_DENIED: ErrorKind.AUTHENTICATION,
        grpc.StatusCode.NOT_FOUND: ErrorKind.TEMPLATE_NOT_FOUND,
        grpc.StatusCode.RESOURCE_EXHAUSTED: ErrorKind.RATE_LIMIT,
        grpc.StatusCode.UNAVAILABLE: ErrorKind.PROVIDER,
        grpc.StatusCode.DEADLINE_EXCEEDED: ErrorKind.TIMEOUT,
        grpc.StatusCode.INVALID_ARGUMENT: ErrorKind.VALIDATION,
        grpc.StatusCode.INTERNAL: ErrorKind.INTERNAL,
    }

    @classmethod
    def classify(cls, raw: BaseException, transport: TransportKind) -> HuefyError:
        """Classify a failure raised by one transport attempt.

        Never raises: anything unrecognized becomes ``UNKNOWN``.

        Args:
            raw: Exception raised by the transport
            transport: Tag of the transport that raised it

        Returns:
            HuefyError classification
        """
        try:
            error = cls._classify(raw, transport)
        except Exception as e:
            logger.debug(f"Classifier failed on {type(raw).__name__}: {e}")
            error = None

        if error is None:
            error = HuefyError(
                ErrorKind.UNKNOWN,
                f"Unexpected error: {raw}",
                code="UNEXPECTED_ERROR",
                details={"transport": transport.value, "error_type": type(raw).__name__},
            )
        return error

    @classmethod
    def _classify(cls, raw: BaseException, transport: TransportKind) -> Optional[HuefyError]:
        if isinstance(raw, HuefyError):
            return raw

        if isinstance(raw, TransportTimeout):
            return HuefyError.timeout(raw.timeout_ms)

        if isinstance(raw, ResponseDecodeError):
            return cls._classify_decode(raw)

        if transport == TransportKind.HTTP:
            error = cls._classify_http(raw)
        elif transport == TransportKind.GRPC:
            error = cls._classify_grpc(raw)
        else:
            error = cls._classify_kernel(raw)
        if error is not None:
            return error

        if isinstance(raw, (asyncio.TimeoutError, TimeoutError)):
            return HuefyError.timeout()
        if isinstance(raw, ConnectionError):
            return HuefyError.network(f"Network error: {raw}")
        return None

    @classmethod
    def _classify_decode(cls, raw: ResponseDecodeError) -> HuefyError:
        details = {"body": raw.body} if raw.body else {}
        if raw.status is not None and not 200 <= raw.status < 300:
            # Unreadable error page: all we know is the status
            return HuefyError.from_error_response("", str(raw), details, http_status=raw.status)
        if raw.status is not None:
            details["http_status"] = raw.status
        return HuefyError.internal(str(raw), code="INVALID_RESPONSE", **details)

    @classmethod
    def _classify_http(cls, raw: BaseException) -> Optional[HuefyError]:
        if isinstance(raw, RemoteStatusError):
            return HuefyError.from_error_response(
                raw.error.code, raw.error.error, raw.error.details, http_status=raw.status
            )
        if isinstance(raw, httpx.TimeoutException):
            return HuefyError.timeout()
        if isinstance(raw, httpx.RequestError):
            return HuefyError.network(f"Network error: {raw}", cause=type(raw).__name__)
        return None

    @classmethod
    def _classify_grpc(cls, raw: BaseException) -> Optional[HuefyError]:
        if not isinstance(raw, grpc.RpcError) or not hasattr(raw, "code"):
            return None

        status = raw.code()
        message = (raw.details() if hasattr(raw, "details") else None) or "Unknown gRPC error"
        kind = cls.GRPC_STATUS_KINDS.get(status)
        status_name = getattr(status, "name", str(status))
        if kind is None:
            return HuefyError.network(f"gRPC error ({status_name}): {message}", grpc_code=status_name)
        return HuefyError(kind, message, details={"grpc_code": status_name})

    @classmethod
    def _classify_kernel(cls, raw: BaseException) -> Optional[HuefyError]:
        if isinstance(raw, RemoteApplicationError):
            return HuefyError.from_error_response(raw.code, raw.message)
        if isinstance(raw, SpawnError):
            return HuefyError.internal(str(raw), code="KERNEL_SPAWN_FAILED")
        if isinstance(raw, ProcessExitError):
            kind = cls.classify_text(raw.stderr)
            details = {"exit_code": raw.returncode, "stderr": raw.stderr.strip()[:1000]}
            if kind is None:
                return HuefyError.internal(str(raw), code="KERNEL_ERROR", **details)
            return HuefyError(kind, str(raw), details=details)
        return None

    @classmethod
    def classify_text(cls, text: str) -> Optional[ErrorKind]:
        """Classify free-form diagnostic text.

        Args:
            text: Diagnostic output

        Returns:
            Matching kind, or None when nothing matches
        """
        if not text:
            return None

        if cls._matches_patterns(text, cls.RATE_LIMIT_PATTERNS):
            return ErrorKind.RATE_LIMIT
        if cls._matches_patterns(text, cls.TIMEOUT_PATTERNS):
            return ErrorKind.TIMEOUT
        if cls._matches_patterns(text, cls.AUTH_PATTERNS):
            return ErrorKind.AUTHENTICATION
        if cls._matches_patterns(text, cls.TEMPLATE_PATTERNS):
            return ErrorKind.TEMPLATE_NOT_FOUND
        if cls._matches_patterns(text, cls.NETWORK_PATTERNS):
            return ErrorKind.NETWORK
        return None

    @classmethod
    def _matches_patterns(cls, text: str, patterns: list[str]) -> bool:
        for pattern in patterns:
            if re.search(pattern, text, re.IGNORECASE):
                return True
        return False

    @classmethod
    def get_recovery_hint(cls, error: HuefyError) -> Optional[str]:
        return RECOVERY_HINTS.get(error.kind)


def classify(raw: BaseException, transport: TransportKind) -> HuefyError:
    """Module-level shortcut for ``ErrorClassifier.classify``."""
    return ErrorClassifier.classify(raw, transport)
