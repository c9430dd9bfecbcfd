"""Huefy client: the public entry point for sending templated email."""

import asyncio
import inspect
import logging
import re
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from huefy.errors.taxonomy import ErrorKind, HuefyError
from huefy.executor import Executor
from huefy.hooks.manager import HookManager, HookType
from huefy.models.config import HuefyConfig
from huefy.models.email import (
    EmailProvider,
    HealthCheckRequest,
    HealthResponse,
    SendEmailRequest,
    SendEmailResponse,
)
from huefy.transport.base import Transport
from huefy.transport.factory import create_transport

logger = logging.getLogger(__name__)

MAX_TEMPLATE_KEY_LENGTH = 100
MAX_EMAIL_LENGTH = 254
MAX_BULK_EMAILS = 100
VALIDATION_RECIPIENT = "test@huefy.com"

EMAIL_RE = re.compile(
    r"^(?!\.)(?!.*\.\.)[A-Za-z0-9._%+'-]+(?<!\.)"
    r"@(?:[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?\.)+[A-Za-z]{2,}$"
)


def is_valid_email(email: Any) -> bool:
    """Check basic email address syntax."""
    return isinstance(email, str) and bool(EMAIL_RE.match(email))


def _positional_hook(callback: Callable, keys: tuple[str, ...]) -> Callable:
    """Adapt a callback taking positional values to a hook taking the context."""

    async def hook(context: dict[str, Any]) -> None:
        result = callback(*(context[key] for key in keys))
        if inspect.isawaitable(result):
            await result

    return hook


class BulkEmailResult(BaseModel):
    """Outcome of one entry in a bulk send."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    email: str = Field(description="Recipient of this entry")
    success: bool = Field(description="Whether this entry was sent")
    result: Optional[SendEmailResponse] = Field(default=None, description="Send result")
    error: Optional[HuefyError] = Field(default=None, description="Failure if not sent")


class HuefyClient:
    """Client for sending templated email through the Huefy service.

    The same calls work over every transport; which one is used comes from
    ``HuefyConfig.transport``.

    Example:
        >>> async with HuefyClient(api_key="your-api-key") as huefy:
        ...     result = await huefy.send_email(
        ...         "welcome-email", {"name": "John"}, "john@example.com"
        ...     )
    """

    def __init__(
        self,
        config: Optional[HuefyConfig] = None,
        *,
        transport_handle: Optional[Transport] = None,
        hooks: Optional[HookManager] = None,
        executor: Optional[Executor] = None,
        on_send_start: Optional[Callable[[SendEmailRequest], Any]] = None,
        on_send_success: Optional[Callable[[SendEmailResponse], Any]] = None,
        on_send_error: Optional[Callable[[HuefyError], Any]] = None,
        on_retry: Optional[Callable[[int, HuefyError], Any]] = None,
        **options: Any,
    ):
        """Initialize Huefy client.

        Args:
            config: Client configuration; built from ``options`` when omitted
            transport_handle: Pre-built transport (skips transport selection)
            hooks: Hook manager for send callbacks
            executor: Executor running the retry loop
            on_send_start: Called with the request before a send
            on_send_success: Called with the response after a send
            on_send_error: Called with the error when a send fails
            on_retry: Called with (failed attempt, error) before each backoff
            **options: ``HuefyConfig`` fields, e.g. ``api_key`` or ``timeout_ms``

        Callbacks that raise are logged and otherwise ignored.

        Raises:
            HuefyError: VALIDATION for bad configuration, or a transport setup failure
        """
        self.config = config or self._build_config(options)
        self.transport = transport_handle or create_transport(self.config)
        self.hooks = hooks or HookManager()
        self.executor = executor or Executor()

        # Callbacks may be sync or async
        for hook_type, callback, keys in (
            (HookType.SEND_START, on_send_start, ("request",)),
            (HookType.SEND_SUCCESS, on_send_success, ("response",)),
            (HookType.SEND_ERROR, on_send_error, ("error",)),
            (HookType.RETRY, on_retry, ("attempt", "error")),
        ):
            if callback is not None:
                self.hooks.register(hook_type, _positional_hook(callback, keys))

    @staticmethod
    def _build_config(options: dict[str, Any]) -> HuefyConfig:
        try:
            return HuefyConfig(**options)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "config"
            raise HuefyError.validation(
                f"Invalid configuration: {location}: {first['msg']}",
                code="INVALID_CONFIG",
                errors=[f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()],
            ) from None

    def on(self, hook_type: HookType, callback: Callable) -> None:
        """Register a send lifecycle callback."""
        self.hooks.register(hook_type, callback)

    async def send_email(
        self,
        template_key: str,
        data: Mapping[str, str],
        recipient: str,
        provider: Optional[Union[EmailProvider, str]] = None,
        timeout_ms: Optional[int] = None,
        deadline_ms: Optional[int] = None,
    ) -> SendEmailResponse:
        """Send an email using a template.

        Args:
            template_key: Template identifier
            data: Template variables
            recipient: Recipient email address
            provider: Email provider (defaults to SES)
            timeout_ms: Per-attempt timeout override
            deadline_ms: Bound on the whole call, retries included

        Returns:
            Send result

        Raises:
            HuefyError: On invalid input or when the send fails
        """
        request = self._build_request(template_key, data, recipient, provider)

        await self.hooks.trigger(HookType.SEND_START, {"request": request})
        try:
            response = await self.executor.execute(
                self.transport,
                request,
                self.config.retry,
                timeout_override_ms=timeout_ms,
                deadline_ms=deadline_ms,
                on_retry=self._on_retry,
            )
        except HuefyError as e:
            await self.hooks.trigger(HookType.SEND_ERROR, {"request": request, "error": e})
            raise

        await self.hooks.trigger(HookType.SEND_SUCCESS, {"request": request, "response": response})
        return response

    async def send_bulk_emails(self, emails: Sequence[Mapping[str, Any]]) -> list[BulkEmailResult]:
        """Send several emails concurrently.

        Each entry is a mapping with ``template_key`` (or ``templateKey``),
        ``data``, ``recipient`` and optional ``provider``. One failed entry
        does not stop the others.

        Args:
            emails: Entries to send (at most 100)

        Returns:
            One result per entry, in input order

        Raises:
            HuefyError: VALIDATION if the list is empty or too long
        """
        if not isinstance(emails, (list, tuple)) or len(emails) == 0:
            raise HuefyError.validation("Emails array is required and must not be empty")
        if len(emails) > MAX_BULK_EMAILS:
            raise HuefyError.validation(
                f"Maximum {MAX_BULK_EMAILS} emails allowed per bulk request"
            )

        semaphore = asyncio.Semaphore(self.config.bulk_concurrency)

        async def send_one(entry: Mapping[str, Any]) -> BulkEmailResult:
            entry = entry if isinstance(entry, Mapping) else {}
            recipient = entry.get("recipient")
            async with semaphore:
                try:
                    result = await self.send_email(
                        entry.get("template_key", entry.get("templateKey")),
                        entry.get("data"),
                        recipient,
                        provider=entry.get("provider"),
                    )
                except HuefyError as e:
                    return BulkEmailResult(email=str(recipient or ""), success=False, error=e)
            return BulkEmailResult(email=recipient, success=True, result=result)

        results = await asyncio.gather(*(send_one(entry) for entry in emails))
        failed = sum(1 for r in results if not r.success)
        logger.info(f"Bulk send finished: {len(results) - failed} sent, {failed} failed")
        return list(results)

    async def health_check(self, timeout_ms: Optional[int] = None) -> HealthResponse:
        """Check the health of the Huefy API.

        Returns:
            Health status
        """
        return await self.executor.execute(
            self.transport,
            HealthCheckRequest(),
            self.config.retry,
            timeout_override_ms=timeout_ms,
        )

    async def validate_template(self, template_key: str, test_data: Mapping[str, str]) -> bool:
        """Check a template by sending it to the service's test recipient.

        Returns:
            False if the template is missing or rejects the data, True otherwise
        """
        try:
            await self.send_email(template_key, test_data, VALIDATION_RECIPIENT)
        except HuefyError as e:
            return e.kind not in (ErrorKind.TEMPLATE_NOT_FOUND, ErrorKind.INVALID_TEMPLATE_DATA)
        return True

    def get_config(self) -> dict[str, Any]:
        """Client configuration details (the API key is not included)."""
        return {
            **self.transport.describe(),
            "retry_config": self.config.retry.model_dump(mode="json"),
        }

    async def close(self) -> None:
        """Release the transport."""
        await self.transport.close()

    async def __aenter__(self) -> "HuefyClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _on_retry(self, attempt: int, error: HuefyError) -> None:
        if self.hooks.has_hooks(HookType.RETRY):
            await self.hooks.trigger(HookType.RETRY, {"attempt": attempt, "error": error})

    def _build_request(
        self,
        template_key: Any,
        data: Any,
        recipient: Any,
        provider: Optional[Union[EmailProvider, str]],
    ) -> SendEmailRequest:
        """Validate send input and build the request."""
        if not isinstance(template_key, str) or not template_key:
            raise HuefyError.validation("Template key is required and must be a string")
        if not template_key.strip():
            raise HuefyError.validation("Template key cannot be empty")
        if len(template_key) > MAX_TEMPLATE_KEY_LENGTH:
            raise HuefyError.validation(
                f"Template key cannot exceed {MAX_TEMPLATE_KEY_LENGTH} characters"
            )

        if not isinstance(data, Mapping):
            raise HuefyError.validation("Data is required and must be a mapping")
        for key, value in data.items():
            if not isinstance(value, str):
                raise HuefyError.validation(
                    f"Data value for key '{key}' must be a string, got {type(value).__name__}",
                    field=str(key),
                )

        if not isinstance(recipient, str) or not recipient:
            raise HuefyError.validation("Recipient is required and must be a string")
        if len(recipient) > MAX_EMAIL_LENGTH:
            raise HuefyError.validation(
                f"Email address cannot exceed {MAX_EMAIL_LENGTH} characters"
            )
        if not is_valid_email(recipient):
            raise HuefyError.validation(f"Invalid email address: {recipient}", recipient=recipient)

        try:
            provider_value = EmailProvider(provider) if provider else None
        except ValueError:
            choices = ", ".join(p.value for p in EmailProvider)
            raise HuefyError.validation(
                f"Unknown provider '{provider}' (expected one of: {choices})"
            ) from None

        return SendEmailRequest(
            template_key=template_key,
            data=dict(data),
            recipient=recipient,
            provider=provider_value,
        )
