"""HTTP transport for the Huefy API."""

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from huefy.version import __version__
from huefy.models.email import ErrorResponse, HealthCheckRequest
from .base import (
    RemoteStatusError,
    ResponseDecodeError,
    Transport,
    TransportKind,
    TransportRequest,
    TransportTimeout,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"Huefy-SDK-Python/{__version__}"


class HttpTransport(Transport):
    """Transport using JSON over HTTP."""

    kind = TransportKind.HTTP

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout_ms: int = 30000,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout_ms)
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout_ms / 1000)
        self._headers = {
            "X-API-Key": api_key,
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }

    async def attempt(self, request: TransportRequest, timeout_ms: Optional[int] = None) -> dict[str, Any]:
        """Send one HTTP request and decode its JSON body."""
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms

        if isinstance(request, HealthCheckRequest):
            method, path, body = "GET", "/health", None
        else:
            method, path, body = "POST", "/emails/send", request.to_wire()

        logger.debug(f"HTTP {method} {self.base_url}{path} (timeout {timeout_ms}ms)")
        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                json=body,
                headers=self._headers,
                timeout=timeout_ms / 1000,
            )
        except httpx.TimeoutException as e:
            raise TransportTimeout(timeout_ms) from e

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseDecodeError(
                "Failed to parse response as JSON",
                status=response.status_code,
                body=response.text[:500],
            ) from e

        if not response.is_success:
            raise RemoteStatusError(response.status_code, self._decode_error(response, payload))

        if not isinstance(payload, dict):
            raise ResponseDecodeError(
                "Expected a JSON object in the response", status=response.status_code
            )
        return payload

    def _decode_error(self, response: httpx.Response, payload: Any) -> ErrorResponse:
        try:
            return ErrorResponse.model_validate(payload)
        except ValidationError as e:
            raise ResponseDecodeError(
                f"Unrecognized error body for HTTP {response.status_code}",
                status=response.status_code,
                body=response.text[:500],
            ) from e

    async def close(self) -> None:
        """Close HTTP client."""
        await self.http_client.aclose()

    def describe(self) -> dict[str, Any]:
        return {**super().describe(), "base_url": self.base_url}
