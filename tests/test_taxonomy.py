"""Tests for the error taxonomy and failure classification."""

import asyncio

import grpc
import httpx
import pytest

from huefy.errors import (
    ErrorClassifier,
    ErrorKind,
    HuefyError,
    is_error_code,
    is_huefy_error,
    is_retryable_error,
)
from huefy.models.email import ErrorResponse
from huefy.transport.base import (
    ProcessExitError,
    RemoteApplicationError,
    RemoteStatusError,
    ResponseDecodeError,
    SpawnError,
    TransportKind,
    TransportTimeout,
)


class FakeRpcError(grpc.RpcError):
    """RpcError carrying a status code, like grpc.aio.AioRpcError."""

    def __init__(self, code: grpc.StatusCode, details: str = ""):
        super().__init__(details)
        self._code = code
        self._details = details

    def code(self):
        return self._code

    def details(self):
        return self._details


def test_status_code_follows_kind():
    """Test status codes are derived from the kind."""
    assert HuefyError(ErrorKind.AUTHENTICATION).status_code == 401
    assert HuefyError(ErrorKind.TEMPLATE_NOT_FOUND).status_code == 404
    assert HuefyError(ErrorKind.RATE_LIMIT).status_code == 429
    assert HuefyError(ErrorKind.PROVIDER).status_code == 500
    assert HuefyError(ErrorKind.NETWORK).status_code is None
    assert HuefyError(ErrorKind.TIMEOUT).status_code is None


def test_template_not_found_from_error_body():
    """Test a TEMPLATE_NOT_FOUND body maps to a 404 TemplateNotFound error."""
    error = HuefyError.from_error_response(
        "TEMPLATE_NOT_FOUND", "Template 't' not found", {"template_key": "t"}
    )

    assert error.kind == ErrorKind.TEMPLATE_NOT_FOUND
    assert error.status_code == 404
    assert error.code == "TEMPLATE_NOT_FOUND"
    assert error.details == {"template_key": "t"}
    assert error.message == "Template 't' not found"


def test_unknown_code_falls_back_on_status():
    """Test unknown remote codes use the HTTP status."""
    assert HuefyError.from_error_response("WHAT", "x", http_status=503).kind == ErrorKind.INTERNAL
    assert HuefyError.from_error_response("WHAT", "x", http_status=403).kind == ErrorKind.AUTHENTICATION
    assert HuefyError.from_error_response("WHAT", "x", http_status=429).kind == ErrorKind.RATE_LIMIT
    assert HuefyError.from_error_response("WHAT", "x", http_status=418).kind == ErrorKind.UNKNOWN
    assert HuefyError.from_error_response("WHAT", "x").kind == ErrorKind.UNKNOWN


def test_convenience_constructors():
    """Test per-kind constructors and helpers."""
    error = HuefyError.template_not_found("welcome")
    assert error.kind == ErrorKind.TEMPLATE_NOT_FOUND
    assert error.details["template_key"] == "welcome"

    timeout = HuefyError.timeout(5000)
    assert timeout.kind == ErrorKind.TIMEOUT
    assert timeout.details == {"timeout": 5000}

    validation = HuefyError.validation("bad", code="INVALID_CONFIG")
    assert validation.code == "INVALID_CONFIG"
    assert validation.details is None

    assert is_huefy_error(error)
    assert not is_huefy_error(ValueError("x"))
    assert is_error_code(error, "TEMPLATE_NOT_FOUND")
    assert not is_error_code(ValueError("x"), "TEMPLATE_NOT_FOUND")


def test_is_retryable_error():
    """Test standalone retryability ignores attempt budgets."""
    assert is_retryable_error(HuefyError.network())
    assert is_retryable_error(HuefyError.timeout())
    assert is_retryable_error(HuefyError.rate_limit())
    assert is_retryable_error(HuefyError(ErrorKind.PROVIDER))
    assert not is_retryable_error(HuefyError.authentication())
    assert not is_retryable_error(HuefyError.validation())
    assert not is_retryable_error(RuntimeError("x"))


def test_to_dict():
    """Test serialization of an error."""
    data = HuefyError.rate_limit(retry_after=30).to_dict()

    assert data == {
        "kind": "RATE_LIMIT",
        "message": "Rate limit exceeded",
        "code": "RATE_LIMIT_EXCEEDED",
        "status_code": 429,
        "details": {"retry_after": 30},
    }


def test_classify_http_failures():
    """Test HTTP failure classification."""
    body = ErrorResponse(error="Invalid API key", code="INVALID_API_KEY")
    error = ErrorClassifier.classify(RemoteStatusError(401, body), TransportKind.HTTP)
    assert error.kind == ErrorKind.AUTHENTICATION
    assert error.details == {"http_status": 401}

    request = httpx.Request("POST", "https://api.huefy.com/api/v1/sdk/emails/send")
    refused = httpx.ConnectError("Connection refused", request=request)
    assert ErrorClassifier.classify(refused, TransportKind.HTTP).kind == ErrorKind.NETWORK

    assert ErrorClassifier.classify(TransportTimeout(1000), TransportKind.HTTP).kind == ErrorKind.TIMEOUT


def test_timeout_is_not_network():
    """Test deadline expiry never classifies as a network error."""
    for transport in TransportKind:
        assert ErrorClassifier.classify(TransportTimeout(250), transport).kind == ErrorKind.TIMEOUT
    assert ErrorClassifier.classify(asyncio.TimeoutError(), TransportKind.HTTP).kind == ErrorKind.TIMEOUT


def test_classify_decode_failures():
    """Test decode failures are distinct from application errors."""
    error = ErrorClassifier.classify(
        ResponseDecodeError("Failed to parse response as JSON", status=200, body="<html>"),
        TransportKind.HTTP,
    )
    assert error.kind == ErrorKind.INTERNAL
    assert error.code == "INVALID_RESPONSE"

    unreadable_error_page = ErrorClassifier.classify(
        ResponseDecodeError("Failed to parse response as JSON", status=502), TransportKind.HTTP
    )
    assert unreadable_error_page.kind == ErrorKind.INTERNAL
    assert unreadable_error_page.details["http_status"] == 502


@pytest.mark.parametrize(
    "status,kind",
    [
        (grpc.StatusCode.UNAUTHENTICATED, ErrorKind.AUTHENTICATION),
        (grpc.StatusCode.PERMISSION_DENIED, ErrorKind.AUTHENTICATION),
        (grpc.StatusCode.NOT_FOUND, ErrorKind.TEMPLATE_NOT_FOUND),
        (grpc.StatusCode.RESOURCE_EXHAUSTED, ErrorKind.RATE_LIMIT),
        (grpc.StatusCode.UNAVAILABLE, ErrorKind.PROVIDER),
        (grpc.StatusCode.DEADLINE_EXCEEDED, ErrorKind.TIMEOUT),
        (grpc.StatusCode.INVALID_ARGUMENT, ErrorKind.VALIDATION),
        (grpc.StatusCode.INTERNAL, ErrorKind.INTERNAL),
        (grpc.StatusCode.ABORTED, ErrorKind.NETWORK),
        (grpc.StatusCode.UNKNOWN, ErrorKind.NETWORK),
    ],
)
def test_classify_grpc_status(status, kind):
    """Test the gRPC status code table."""
    error = ErrorClassifier.classify(FakeRpcError(status, "boom"), TransportKind.GRPC)

    assert error.kind == kind
    assert error.details["grpc_code"] == status.name


def test_classify_kernel_failures():
    """Test kernel failure classification."""
    app_error = ErrorClassifier.classify(
        RemoteApplicationError("TEMPLATE_NOT_FOUND", "no such template"), TransportKind.KERNEL
    )
    assert app_error.kind == ErrorKind.TEMPLATE_NOT_FOUND
    assert app_error.message == "no such template"

    crashed = ErrorClassifier.classify(ProcessExitError(2, "panic: nil map"), TransportKind.KERNEL)
    assert crashed.kind == ErrorKind.INTERNAL
    assert crashed.code == "KERNEL_ERROR"
    assert crashed.details["exit_code"] == 2

    refused = ErrorClassifier.classify(
        ProcessExitError(1, "dial tcp: connection refused"), TransportKind.KERNEL
    )
    assert refused.kind == ErrorKind.NETWORK

    spawn = ErrorClassifier.classify(SpawnError("no such file"), TransportKind.KERNEL)
    assert spawn.code == "KERNEL_SPAWN_FAILED"


def test_classify_text():
    """Test kernel diagnostic text patterns."""
    test_cases = [
        ("429 Too Many Requests", ErrorKind.RATE_LIMIT),
        ("rpc error: deadline exceeded", ErrorKind.TIMEOUT),
        ("invalid API key", ErrorKind.AUTHENTICATION),
        ("template welcome not found", ErrorKind.TEMPLATE_NOT_FOUND),
        ("connection reset by peer", ErrorKind.NETWORK),
        ("segmentation fault", None),
        ("", None),
    ]

    for text, expected in test_cases:
        assert ErrorClassifier.classify_text(text) == expected, text


def test_classify_never_raises():
    """Test unrecognized failures become UNKNOWN."""
    error = ErrorClassifier.classify(RuntimeError("weird"), TransportKind.HTTP)

    assert error.kind == ErrorKind.UNKNOWN
    assert error.code == "UNEXPECTED_ERROR"
    assert error.details["error_type"] == "RuntimeError"


def test_huefy_error_passes_through():
    """Test an already classified error is returned as is."""
    original = HuefyError.validation("bad endpoint", code="INVALID_CONFIG")

    assert ErrorClassifier.classify(original, TransportKind.GRPC) is original


def test_recovery_hint():
    """Test recovery hints per kind."""
    assert "API key" in ErrorClassifier.get_recovery_hint(HuefyError.authentication())
    assert HuefyError(ErrorKind.UNKNOWN).hint is None
