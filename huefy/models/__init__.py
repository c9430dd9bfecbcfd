"""Data models for Huefy."""

from huefy.models.email import (
    DEFAULT_PROVIDER,
    EmailProvider,
    ErrorResponse,
    HealthCheckRequest,
    HealthResponse,
    SendEmailRequest,
    SendEmailResponse,
)
from huefy.models.config import HuefyConfig, RetryConfig, TransportType

__all__ = [
    "DEFAULT_PROVIDER",
    "EmailProvider",
    "ErrorResponse",
    "HealthCheckRequest",
    "HealthResponse",
    "SendEmailRequest",
    "SendEmailResponse",
    "HuefyConfig",
    "RetryConfig",
    "TransportType",
]
