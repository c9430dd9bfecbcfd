"""Huefy Python SDK.

Send templated email through the Huefy service over HTTP, gRPC or the
bundled kernel binary, with one retry and error model across all three.
"""

from typing import Any

from huefy.version import __version__
from huefy.errors import (
    ErrorKind,
    HuefyError,
    RetryPolicy,
    is_error_code,
    is_huefy_error,
    is_retryable_error,
)
from huefy.models import (
    EmailProvider,
    HealthResponse,
    HuefyConfig,
    RetryConfig,
    SendEmailResponse,
    TransportType,
)
from huefy.hooks import HookManager, HookType
from huefy.executor import Executor
from huefy.client import BulkEmailResult, HuefyClient

VERSION = __version__

SDK_INFO = {
    "name": "huefy-sdk",
    "version": __version__,
    "language": "python",
    "transports": [t.value for t in TransportType],
}


def create_client(**options: Any) -> HuefyClient:
    """Create a Huefy client from ``HuefyConfig`` keyword options."""
    return HuefyClient(**options)


__all__ = [
    "__version__",
    "VERSION",
    "SDK_INFO",
    "create_client",
    "HuefyClient",
    "BulkEmailResult",
    "Executor",
    "HookManager",
    "HookType",
    "ErrorKind",
    "HuefyError",
    "RetryPolicy",
    "is_error_code",
    "is_huefy_error",
    "is_retryable_error",
    "EmailProvider",
    "HealthResponse",
    "HuefyConfig",
    "RetryConfig",
    "SendEmailResponse",
    "TransportType",
]
