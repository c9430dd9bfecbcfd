"""Transport selection from client configuration."""

import logging

import httpx

from huefy.errors.taxonomy import HuefyError
from huefy.models.config import HuefyConfig, TransportType
from .base import Transport
from .grpc_transport import GrpcTransport
from .http_transport import HttpTransport
from .kernel_transport import KernelTransport, resolve_kernel_binary

logger = logging.getLogger(__name__)


def _check_base_url(base_url: str) -> str:
    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL as e:
        raise HuefyError.validation(
            f"Invalid base URL '{base_url}': {e}", code="INVALID_CONFIG", base_url=base_url
        ) from e
    if url.scheme not in ("http", "https") or not url.host:
        raise HuefyError.validation(
            f"Invalid base URL '{base_url}': expected an http(s) URL",
            code="INVALID_CONFIG",
            base_url=base_url,
        )
    return base_url


def create_transport(config: HuefyConfig) -> Transport:
    """Create the transport a configuration asks for.

    Setup problems (malformed addresses, missing kernel binary) raise here,
    before any call is attempted.

    Args:
        config: Client configuration

    Returns:
        Ready-to-use transport

    Raises:
        HuefyError: If the transport cannot be set up
    """
    if config.transport == TransportType.HTTP:
        transport: Transport = HttpTransport(
            api_key=config.api_key,
            base_url=_check_base_url(config.resolved_base_url()),
            timeout_ms=config.timeout_ms,
        )
    elif config.transport == TransportType.GRPC:
        transport = GrpcTransport(
            api_key=config.api_key,
            endpoint=config.resolved_endpoint(),
            timeout_ms=config.timeout_ms,
        )
    elif config.transport == TransportType.KERNEL:
        transport = KernelTransport(
            api_key=config.api_key,
            command=resolve_kernel_binary(config.kernel_binary),
            endpoint=config.resolved_endpoint(),
            timeout_ms=config.timeout_ms,
        )
    else:
        raise HuefyError.validation(
            f"Unknown transport type: {config.transport}", code="INVALID_CONFIG"
        )

    logger.debug(f"Created {transport.kind.value} transport")
    return transport
