"""Transports for reaching the Huefy service."""

from .base import (
    ProcessExitError,
    RemoteApplicationError,
    RemoteStatusError,
    ResponseDecodeError,
    SpawnError,
    Transport,
    TransportError,
    TransportKind,
    TransportTimeout,
)
from .http_transport import HttpTransport
from .grpc_transport import GrpcTransport
from .kernel_transport import KernelTransport
from .factory import create_transport

__all__ = [
    "ProcessExitError",
    "RemoteApplicationError",
    "RemoteStatusError",
    "ResponseDecodeError",
    "SpawnError",
    "Transport",
    "TransportError",
    "TransportKind",
    "TransportTimeout",
    "HttpTransport",
    "GrpcTransport",
    "KernelTransport",
    "create_transport",
]
