"""Tests for the Huefy client."""

import asyncio

import httpx
import pytest

from fakes import SENT, FakeTransport, RecordingSleep
from huefy import HuefyClient, create_client
from huefy.errors import ErrorKind, HuefyError
from huefy.executor import Executor
from huefy.hooks import HookManager, HookType
from huefy.models.config import HuefyConfig, RetryConfig, TransportType
from huefy.models.email import EmailProvider, ErrorResponse
from huefy.transport import GrpcTransport, HttpTransport, KernelTransport
from huefy.transport.base import RemoteStatusError, TransportTimeout

CONFIG = HuefyConfig(api_key="test-key", retry=RetryConfig(max_attempts=3, initial_delay_ms=100))


def make_client(outcomes, config: HuefyConfig = CONFIG, hooks=None) -> HuefyClient:
    return HuefyClient(
        config,
        transport_handle=FakeTransport(outcomes),
        hooks=hooks,
        executor=Executor(sleep=RecordingSleep()),
    )


def test_requires_api_key():
    """Test construction fails without an API key."""
    for options in ({}, {"api_key": ""}, {"api_key": "   "}):
        with pytest.raises(HuefyError) as exc_info:
            HuefyClient(**options)
        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert exc_info.value.code == "INVALID_CONFIG"
        assert "api_key" in exc_info.value.message


def test_transport_selection(tmp_path):
    """Test the configured transport is built."""
    assert isinstance(create_client(api_key="k").transport, HttpTransport)
    assert isinstance(HuefyClient(api_key="k", transport="grpc").transport, GrpcTransport)

    binary = tmp_path / "kernel-cli"
    binary.write_text("")
    client = HuefyClient(api_key="k", transport=TransportType.KERNEL, kernel_binary=str(binary))
    assert isinstance(client.transport, KernelTransport)


def test_setup_errors_raise_at_construction(tmp_path):
    """Test malformed addresses and missing binaries fail before any call."""
    with pytest.raises(HuefyError) as exc_info:
        HuefyClient(api_key="k", base_url="ftp://example.com")
    assert exc_info.value.code == "INVALID_CONFIG"

    with pytest.raises(HuefyError) as exc_info:
        HuefyClient(api_key="k", transport="grpc", endpoint="not an endpoint")
    assert exc_info.value.code == "INVALID_CONFIG"

    with pytest.raises(HuefyError) as exc_info:
        HuefyClient(api_key="k", transport="kernel", kernel_binary=str(tmp_path / "absent"))
    assert exc_info.value.code == "KERNEL_NOT_FOUND"


def test_send_email():
    """Test a successful send."""
    client = make_client([SENT])

    result = asyncio.run(client.send_email("welcome", {"name": "John"}, "john@example.com"))

    assert result.success
    assert result.message_id == "msg_123"
    request, _ = client.transport.calls[0]
    assert request.template_key == "welcome"
    assert request.provider is None


def test_send_email_with_provider():
    """Test provider override, as enum or string."""
    client = make_client([SENT])

    asyncio.run(client.send_email("welcome", {}, "john@example.com", provider="sendgrid"))
    asyncio.run(client.send_email("welcome", {}, "john@example.com", provider=EmailProvider.MAILGUN))

    assert [request.provider for request, _ in client.transport.calls] == [
        EmailProvider.SENDGRID,
        EmailProvider.MAILGUN,
    ]

    with pytest.raises(HuefyError) as exc_info:
        asyncio.run(client.send_email("welcome", {}, "john@example.com", provider="pigeon"))
    assert exc_info.value.kind == ErrorKind.VALIDATION


@pytest.mark.parametrize(
    "template_key,data,recipient",
    [
        ("", {}, "john@example.com"),
        ("   ", {}, "john@example.com"),
        ("x" * 101, {}, "john@example.com"),
        (None, {}, "john@example.com"),
        ("welcome", ["John"], "john@example.com"),
        ("welcome", None, "john@example.com"),
        ("welcome", {"age": 30}, "john@example.com"),
        ("welcome", {}, ""),
        ("welcome", {}, "not-an-email"),
        ("welcome", {}, "user@"),
        ("welcome", {}, "@example.com"),
        ("welcome", {}, "user@example"),
        ("welcome", {}, "user name@example.com"),
        ("welcome", {}, "user..name@example.com"),
        ("welcome", {}, "user@.com"),
        ("welcome", {}, "a" * 250 + "@example.com"),
    ],
)
def test_invalid_input_is_rejected_before_sending(template_key, data, recipient):
    """Test input validation raises VALIDATION without calling the transport."""
    client = make_client([SENT])

    with pytest.raises(HuefyError) as exc_info:
        asyncio.run(client.send_email(template_key, data, recipient))

    assert exc_info.value.kind == ErrorKind.VALIDATION
    assert client.transport.calls == []


@pytest.mark.parametrize(
    "recipient",
    ["user@example.com", "user.name@domain.co.uk", "user+tag@example.org", "x@y.io"],
)
def test_valid_recipients(recipient):
    """Test common address forms are accepted."""
    client = make_client([SENT])

    asyncio.run(client.send_email("welcome", {}, recipient))

    assert len(client.transport.calls) == 1


def test_send_errors_are_huefy_errors():
    """Test transport failures reach the caller classified."""
    client = make_client([
        RemoteStatusError(401, ErrorResponse(error="Invalid API key", code="INVALID_API_KEY")),
    ])

    with pytest.raises(HuefyError) as exc_info:
        asyncio.run(client.send_email("welcome", {}, "john@example.com"))

    assert exc_info.value.kind == ErrorKind.AUTHENTICATION
    assert len(client.transport.calls) == 1


def test_hooks_observe_the_send():
    """Test start, retry, success and error hooks."""
    events = []
    hooks = HookManager()
    hooks.register(HookType.SEND_START, lambda ctx: events.append(("start", ctx["request"].recipient)))
    hooks.register(HookType.RETRY, lambda ctx: events.append(("retry", ctx["attempt"], ctx["error"].kind)))

    async def on_success(ctx):
        events.append(("success", ctx["response"].message_id))

    hooks.register(HookType.SEND_SUCCESS, on_success)
    hooks.register(HookType.SEND_ERROR, lambda ctx: events.append(("error", ctx["error"].kind)))

    client = make_client([TransportTimeout(100), SENT], hooks=hooks)
    asyncio.run(client.send_email("welcome", {}, "john@example.com"))

    assert events == [
        ("start", "john@example.com"),
        ("retry", 1, ErrorKind.TIMEOUT),
        ("success", "msg_123"),
    ]

    events.clear()
    client = make_client([RemoteStatusError(404, ErrorResponse(error="nope", code="TEMPLATE_NOT_FOUND"))], hooks=hooks)
    with pytest.raises(HuefyError):
        asyncio.run(client.send_email("welcome", {}, "john@example.com"))

    assert events == [("start", "john@example.com"), ("error", ErrorKind.TEMPLATE_NOT_FOUND)]


def test_bulk_send_reports_each_entry():
    """Test bulk sends keep going past failed entries."""
    client = make_client([SENT])
    emails = [
        {"template_key": "welcome", "data": {"name": "A"}, "recipient": "a@example.com"},
        {"templateKey": "welcome", "data": {"name": "B"}, "recipient": "not-an-email"},
        {"template_key": "welcome", "data": {}, "recipient": "c@example.com", "provider": "ses"},
    ]

    results = asyncio.run(client.send_bulk_emails(emails))

    assert [r.email for r in results] == ["a@example.com", "not-an-email", "c@example.com"]
    assert [r.success for r in results] == [True, False, True]
    assert results[0].result.message_id == "msg_123"
    assert results[1].error.kind == ErrorKind.VALIDATION
    assert len(client.transport.calls) == 2


def test_bulk_send_limits():
    """Test empty and oversized bulk requests are rejected."""
    client = make_client([SENT])
    entry = {"template_key": "welcome", "data": {}, "recipient": "a@example.com"}

    with pytest.raises(HuefyError) as exc_info:
        asyncio.run(client.send_bulk_emails([]))
    assert exc_info.value.kind == ErrorKind.VALIDATION

    with pytest.raises(HuefyError) as exc_info:
        asyncio.run(client.send_bulk_emails([entry] * 101))
    assert "100" in exc_info.value.message
    assert client.transport.calls == []

    results = asyncio.run(client.send_bulk_emails([entry] * 100))
    assert all(r.success for r in results)


def test_bulk_send_concurrency_is_bounded():
    """Test no more than bulk_concurrency sends run at once."""
    running = 0
    peak = 0

    async def slow_send():
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return SENT

    config = HuefyConfig(api_key="k", bulk_concurrency=3)
    client = make_client([slow_send], config=config)
    entry = {"template_key": "welcome", "data": {}, "recipient": "a@example.com"}

    asyncio.run(client.send_bulk_emails([entry] * 10))

    assert peak == 3


def test_health_check():
    """Test the health check returns the service status."""
    client = make_client([{"status": "healthy", "timestamp": "2024-01-01T00:00:00Z", "version": "1.0.0"}])

    health = asyncio.run(client.health_check())

    assert health.status == "healthy"


def test_validate_template():
    """Test template validation outcomes."""
    missing = make_client([RemoteStatusError(404, ErrorResponse(error="x", code="TEMPLATE_NOT_FOUND"))])
    bad_data = make_client([RemoteStatusError(400, ErrorResponse(error="x", code="INVALID_TEMPLATE_DATA"))])
    rate_limited = make_client([RemoteStatusError(429, ErrorResponse(error="x", code="RATE_LIMIT_EXCEEDED"))])

    assert asyncio.run(make_client([SENT]).validate_template("welcome", {"name": "x"}))
    assert not asyncio.run(missing.validate_template("welcome", {}))
    assert not asyncio.run(bad_data.validate_template("welcome", {}))
    assert asyncio.run(rate_limited.validate_template("welcome", {}))


def test_get_config_hides_api_key():
    """Test configuration details exclude the API key."""
    client = HuefyClient(api_key="secret-key-123", base_url="https://staging.huefy.com/api/v1/sdk/")

    details = client.get_config()

    assert details["transport"] == "http"
    assert details["base_url"] == "https://staging.huefy.com/api/v1/sdk"
    assert details["timeout"] == 30000
    assert details["retry_config"]["max_attempts"] == 3
    assert "secret-key-123" not in str(details)


def test_async_context_manager_closes_transport():
    """Test leaving the context closes the transport."""
    client = make_client([SENT])

    async def run():
        async with client:
            await client.send_email("welcome", {}, "john@example.com")

    asyncio.run(run())

    assert client.transport.closed


def test_http_client_end_to_end():
    """Test a client over the real HTTP transport against a mock server."""
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503, json={"error": "Service unavailable", "code": "SERVICE_UNAVAILABLE"})
        return httpx.Response(200, json=SENT)

    transport = HttpTransport(
        api_key="test-key",
        base_url="https://api.huefy.com/api/v1/sdk",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    sleep = RecordingSleep()
    client = HuefyClient(CONFIG, transport_handle=transport, executor=Executor(sleep=sleep))

    result = asyncio.run(client.send_email("welcome", {"name": "John"}, "john@example.com"))

    assert result.message_id == "msg_123"
    assert len(attempts) == 3
    assert sleep.delays == [0.1, 0.2]


def test_named_callbacks():
    """Test on_send_* and on_retry callbacks receive positional values."""
    seen = []

    async def on_retry(attempt, error):
        seen.append(("retry", attempt, error.code))

    client = HuefyClient(
        CONFIG,
        transport_handle=FakeTransport([TransportTimeout(100), SENT]),
        executor=Executor(sleep=RecordingSleep()),
        on_send_start=lambda request: seen.append(("start", request.template_key)),
        on_send_success=lambda response: seen.append(("success", response.message_id)),
        on_send_error=lambda error: seen.append(("error", error.code)),
        on_retry=on_retry,
    )

    asyncio.run(client.send_email("welcome", {}, "john@example.com"))

    assert seen == [("start", "welcome"), ("retry", 1, "TIMEOUT_ERROR"), ("success", "msg_123")]


def test_failing_callbacks_do_not_change_the_outcome():
    """Test callbacks that raise are skipped without hiding the send result."""

    def broken(*args):
        raise RuntimeError("callback broke")

    seen = []
    client = HuefyClient(
        CONFIG,
        transport_handle=FakeTransport([TransportTimeout(100), SENT]),
        executor=Executor(sleep=RecordingSleep()),
        on_send_start=broken,
        on_send_success=broken,
        on_retry=broken,
    )
    client.on(HookType.SEND_SUCCESS, lambda ctx: seen.append(ctx["response"].message_id))

    result = asyncio.run(client.send_email("welcome", {}, "john@example.com"))

    assert result.message_id == "msg_123"
    assert seen == ["msg_123"]

    client = HuefyClient(
        CONFIG,
        transport_handle=FakeTransport([RemoteStatusError(404, ErrorResponse(error="nope", code="TEMPLATE_NOT_FOUND"))]),
        executor=Executor(sleep=RecordingSleep()),
        on_send_error=broken,
    )
    with pytest.raises(HuefyError) as exc_info:
        asyncio.run(client.send_email("welcome", {}, "john@example.com"))

    assert exc_info.value.kind == ErrorKind.TEMPLATE_NOT_FOUND
