"""Test that all modules can be imported successfully."""

import pytest


def test_models_import():
    """Test model imports."""
    from huefy.models import (
        EmailProvider,
        ErrorResponse,
        HealthCheckRequest,
        HealthResponse,
        HuefyConfig,
        RetryConfig,
        SendEmailRequest,
        SendEmailResponse,
        TransportType,
    )
    assert SendEmailRequest is not None
    assert HuefyConfig is not None
    assert TransportType is not None


def test_errors_import():
    """Test error handling imports."""
    from huefy.errors import (
        ErrorClassifier,
        ErrorKind,
        HuefyError,
        RetryPolicy,
        RetryState,
        should_retry,
    )

    assert ErrorClassifier is not None
    assert ErrorKind is not None
    assert RetryPolicy is not None


def test_transport_import():
    """Test transport imports."""
    from huefy.transport import (
        GrpcTransport,
        HttpTransport,
        KernelTransport,
        Transport,
        create_transport,
    )

    assert issubclass(HttpTransport, Transport)
    assert issubclass(GrpcTransport, Transport)
    assert issubclass(KernelTransport, Transport)


def test_client_import():
    """Test client and package-level imports."""
    import huefy
    from huefy import HuefyClient, create_client, SDK_INFO, VERSION

    assert HuefyClient is not None
    assert VERSION == huefy.__version__
    assert SDK_INFO["transports"] == ["http", "grpc", "kernel"]


def test_hooks_import():
    """Test hooks imports."""
    from huefy.hooks import HookManager, HookType

    assert HookManager is not None
    assert HookType is not None


def test_cli_import():
    """Test CLI imports."""
    from huefy.cli import main

    assert main is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
