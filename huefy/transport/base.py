"""Base transport interface."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Union

from huefy.models.email import ErrorResponse, HealthCheckRequest, SendEmailRequest

TransportRequest = Union[SendEmailRequest, HealthCheckRequest]


class TransportKind(str, Enum):
    """Tag identifying which transport produced a failure."""

    HTTP = "http"
    GRPC = "grpc"
    KERNEL = "kernel"


class TransportError(Exception):
    """Base class for transport-native failures.

    These never reach callers of ``HuefyClient``; the executor classifies
    them into ``HuefyError``.
    """


class TransportTimeout(TransportError):
    """The per-attempt deadline expired."""

    def __init__(self, timeout_ms: float):
        super().__init__(f"Attempt timed out after {int(timeout_ms)}ms")
        self.timeout_ms = timeout_ms


class ResponseDecodeError(TransportError):
    """The response body could not be decoded into the expected shape."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class RemoteStatusError(TransportError):
    """Non-2xx HTTP response carrying a decoded error body."""

    def __init__(self, status: int, error: ErrorResponse):
        super().__init__(f"HTTP {status}: {error.code}: {error.error}")
        self.status = status
        self.error = error


class ProcessExitError(TransportError):
    """Kernel process exited with a non-zero code."""

    def __init__(self, returncode: int, stderr: str):
        super().__init__(f"Kernel process exited with code {returncode}: {stderr.strip()}")
        self.returncode = returncode
        self.stderr = stderr


class RemoteApplicationError(TransportError):
    """Kernel reported ``success: false`` with an embedded error."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class SpawnError(TransportError):
    """Kernel process could not be started or written to."""


class Transport(ABC):
    """One mechanism for exchanging a request with the Huefy service.

    Implementations make exactly one exchange per ``attempt`` call and never
    retry; retrying belongs to the executor.
    """

    kind: TransportKind

    def __init__(self, timeout_ms: int = 30000):
        self.timeout_ms = timeout_ms

    @abstractmethod
    async def attempt(self, request: TransportRequest, timeout_ms: Optional[int] = None) -> dict[str, Any]:
        """Perform one exchange.

        Args:
            request: Request to send
            timeout_ms: Deadline for this attempt (defaults to ``self.timeout_ms``)

        Returns:
            Decoded response payload

        Raises:
            Exception: A transport-native failure
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the transport handle."""
        pass

    def describe(self) -> dict[str, Any]:
        """Non-secret details for ``HuefyClient.get_config``."""
        return {"transport": self.kind.value, "timeout": self.timeout_ms}

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
