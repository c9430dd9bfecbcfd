"""gRPC transport for the Huefy API."""

import logging
import re
from typing import Any, Optional

import grpc

from huefy.errors.taxonomy import HuefyError
from huefy.models.email import HealthCheckRequest
from . import proto
from .base import Transport, TransportKind, TransportRequest

logger = logging.getLogger(__name__)

_ENDPOINT_RE = re.compile(r"^(?P<host>\[[0-9A-Fa-f:.]+\]|[A-Za-z0-9._-]+):(?P<port>\d{1,5})$")
_INSECURE_HOSTS = {"localhost", "127.0.0.1", "[::1]"}


def parse_endpoint(endpoint: str) -> tuple[str, int]:
    """Split and check a ``host:port`` endpoint.

    Raises:
        HuefyError: VALIDATION when the endpoint is malformed
    """
    match = _ENDPOINT_RE.match((endpoint or "").strip())
    port = int(match.group("port")) if match else 0
    if not match or not 0 < port < 65536:
        raise HuefyError.validation(
            f"Invalid gRPC endpoint '{endpoint}': expected host:port",
            code="INVALID_CONFIG",
            endpoint=endpoint,
        )
    return match.group("host"), port


class GrpcTransport(Transport):
    """Transport using unary gRPC calls."""

    kind = TransportKind.GRPC

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        timeout_ms: int = 30000,
        channel: Optional[grpc.aio.Channel] = None,
    ):
        super().__init__(timeout_ms)
        self.host, self.port = parse_endpoint(endpoint)
        self.endpoint = f"{self.host}:{self.port}"
        self.secure = self.host not in _INSECURE_HOSTS
        self._metadata = (("x-api-key", api_key),)
        # grpc.aio channels bind to the running loop, so open on first use
        self.channel = channel

    def _get_channel(self) -> grpc.aio.Channel:
        if self.channel is None:
            if self.secure:
                self.channel = grpc.aio.secure_channel(self.endpoint, grpc.ssl_channel_credentials())
            else:
                self.channel = grpc.aio.insecure_channel(self.endpoint)
            logger.debug(f"Opened gRPC channel to {self.endpoint} (secure={self.secure})")
        return self.channel

    async def attempt(self, request: TransportRequest, timeout_ms: Optional[int] = None) -> dict[str, Any]:
        """Issue one unary RPC; status errors propagate as ``grpc.aio.AioRpcError``."""
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms

        if isinstance(request, HealthCheckRequest):
            method = proto.HEALTH_CHECK_METHOD
            message = proto.build_health_check()
            response_class = proto.HealthCheckResponseMessage
        else:
            method = proto.SEND_EMAIL_METHOD
            message = proto.build_send_email(request.to_wire())
            response_class = proto.SendEmailResponseMessage

        call = self._get_channel().unary_unary(
            method,
            request_serializer=type(message).SerializeToString,
            response_deserializer=response_class.FromString,
        )
        logger.debug(f"gRPC {method} -> {self.endpoint} (timeout {timeout_ms}ms)")
        response = await call(message, metadata=self._metadata, timeout=timeout_ms / 1000)
        return proto.to_payload(response)

    async def close(self) -> None:
        """Close the gRPC channel."""
        if self.channel is not None:
            await self.channel.close()
            self.channel = None

    def describe(self) -> dict[str, Any]:
        return {**super().describe(), "endpoint": self.endpoint}
