"""Configuration models."""

import os
from enum import Enum
from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "https://api.huefy.com/api/v1/sdk"
PRODUCTION_GRPC_ENDPOINT = "api.huefy.dev:50051"
LOCAL_GRPC_ENDPOINT = "localhost:50051"


class TransportType(str, Enum):
    """Mechanisms for reaching the Huefy service."""

    HTTP = "http"
    GRPC = "grpc"
    KERNEL = "kernel"


class RetryConfig(BaseModel):
    """Retry policy shared by every call made through one client."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1, description="Total attempts per call")
    initial_delay_ms: int = Field(default=1000, ge=0, description="Delay before the first retry")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, description="Growth factor per retry")
    max_delay_ms: int = Field(default=10000, ge=0, description="Upper bound on any single delay")
    retryable_codes: frozenset[Union[int, str]] = Field(
        default=frozenset({429, 500, 502, 503, 504}),
        description="HTTP statuses or error codes that are always worth retrying",
    )
    non_retryable_codes: frozenset[str] = Field(
        default_factory=frozenset,
        description="Error codes that must never be retried (e.g. INVALID_RESPONSE)",
    )
    jitter: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Random extra delay as a fraction of the backoff"
    )


class HuefyConfig(BaseModel):
    """Main Huefy client configuration."""

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1, description="Huefy API key")
    transport: TransportType = Field(default=TransportType.HTTP, description="Transport to use")
    base_url: Optional[str] = Field(default=None, description="HTTP API base URL")
    endpoint: Optional[str] = Field(
        default=None, description="gRPC endpoint (host:port) used by the grpc and kernel transports"
    )
    timeout_ms: int = Field(default=30000, gt=0, description="Per-attempt timeout in milliseconds")
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry policy")
    kernel_binary: Optional[str] = Field(
        default=None, description="Explicit path to the kernel executable"
    )
    bulk_concurrency: int = Field(
        default=10, ge=1, description="Parallel sends during a bulk request"
    )

    @field_validator("api_key")
    @classmethod
    def _strip_api_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("API key is required and must be a non-empty string")
        return value.strip()

    def resolved_base_url(self) -> str:
        """HTTP base URL without a trailing slash."""
        return (self.base_url or DEFAULT_BASE_URL).rstrip("/")

    def resolved_endpoint(self) -> str:
        """gRPC endpoint, falling back on the environment default."""
        if self.endpoint:
            return self.endpoint
        if os.getenv("HUEFY_ENV", "").lower() == "production":
            return PRODUCTION_GRPC_ENDPOINT
        return LOCAL_GRPC_ENDPOINT

    @staticmethod
    def yaml_settings(path: str) -> dict[str, Any]:
        """Read raw configuration values from a YAML file without validating them."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of configuration values")
        return data

    @staticmethod
    def env_settings() -> dict[str, Any]:
        """Read raw configuration values from ``HUEFY_*`` environment variables.

        Only variables that are set appear in the result, so the values can be
        layered with other sources before validation.
        """
        from dotenv import load_dotenv

        load_dotenv()

        def env(name: str) -> Optional[str]:
            return os.getenv(name) or None

        data: dict[str, Any] = {
            "api_key": env("HUEFY_API_KEY"),
            "transport": (env("HUEFY_TRANSPORT") or "").lower() or None,
            "base_url": env("HUEFY_BASE_URL"),
            "endpoint": env("HUEFY_ENDPOINT"),
            "timeout_ms": env("HUEFY_TIMEOUT_MS"),
            "kernel_binary": env("HUEFY_KERNEL_BINARY"),
        }
        retry = {
            "max_attempts": env("HUEFY_RETRY_ATTEMPTS"),
            "initial_delay_ms": env("HUEFY_RETRY_DELAY_MS"),
            "max_delay_ms": env("HUEFY_RETRY_MAX_DELAY_MS"),
        }
        retry = {key: value for key, value in retry.items() if value is not None}
        if retry:
            data["retry"] = retry
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_yaml(cls, path: str) -> "HuefyConfig":
        """Load configuration from YAML file."""
        return cls(**cls.yaml_settings(path))

    @classmethod
    def from_env(cls) -> "HuefyConfig":
        """Load configuration from environment variables."""
        return cls(**cls.env_settings())
