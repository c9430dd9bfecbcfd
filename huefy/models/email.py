"""Email request and response models."""

from enum import Enum
from typing import Any, ClassVar, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EmailProvider(str, Enum):
    """Email providers the service can route through."""

    SES = "ses"
    SENDGRID = "sendgrid"
    MAILGUN = "mailgun"
    MAILCHIMP = "mailchimp"


DEFAULT_PROVIDER = EmailProvider.SES


class SendEmailResponse(BaseModel):
    """Result of sending one email."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    success: bool = Field(description="Whether the email was accepted")
    message: str = Field(default="", description="Human-readable status message")
    message_id: str = Field(
        default="",
        validation_alias=AliasChoices("messageId", "message_id"),
        description="Identifier of the sent email",
    )
    provider: str = Field(default="", description="Provider that sent the email")


class HealthResponse(BaseModel):
    """Service health status."""

    model_config = ConfigDict(extra="ignore")

    status: str = Field(description="Service status")
    timestamp: str = Field(default="", description="Time of the check")
    version: str = Field(default="", description="API version")


class ErrorResponse(BaseModel):
    """Structured error body returned by the API."""

    model_config = ConfigDict(extra="ignore")

    error: str = Field(description="Human-readable error message")
    code: str = Field(description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(default=None, description="Additional details")


class SendEmailRequest(BaseModel):
    """Request to send a templated email.

    Shape checks (non-empty key, string values, address syntax) are done by
    ``HuefyClient`` before a request reaches a transport.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    operation: ClassVar[str] = "send_email"
    response_model: ClassVar[type[BaseModel]] = SendEmailResponse

    template_key: str = Field(alias="templateKey", description="Template identifier")
    data: dict[str, str] = Field(default_factory=dict, description="Template variables")
    recipient: str = Field(description="Recipient email address")
    provider: Optional[EmailProvider] = Field(
        default=None, alias="providerType", description="Provider override"
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON body as the HTTP API and kernel expect it."""
        return {
            "templateKey": self.template_key,
            "data": dict(self.data),
            "recipient": self.recipient,
            "providerType": (self.provider or DEFAULT_PROVIDER).value,
        }


class HealthCheckRequest(BaseModel):
    """Request for the service health endpoint."""

    model_config = ConfigDict(frozen=True)

    operation: ClassVar[str] = "health_check"
    response_model: ClassVar[type[BaseModel]] = HealthResponse

    def to_wire(self) -> dict[str, Any]:
        return {}
