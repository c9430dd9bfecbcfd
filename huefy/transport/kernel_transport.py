"""Kernel transport: one child process per attempt, JSON over stdio."""

import asyncio
import atexit
import json
import logging
import os
import platform
import signal
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from huefy.errors.taxonomy import HuefyError
from huefy.models.email import HealthCheckRequest
from .base import (
    ProcessExitError,
    RemoteApplicationError,
    ResponseDecodeError,
    SpawnError,
    Transport,
    TransportKind,
    TransportRequest,
    TransportTimeout,
)

logger = logging.getLogger(__name__)

BIN_DIR = Path(__file__).resolve().parent.parent / "bin"

COMMANDS = {
    "send_email": "sendEmail",
    "health_check": "healthCheck",
}

# PIDs of children that have been spawned but not yet reaped
_live_pids: set[int] = set()
_atexit_registered = False


def _kill_survivors() -> None:
    """Last-resort cleanup registered via atexit."""
    sig = getattr(signal, "SIGKILL", signal.SIGTERM)
    for pid in list(_live_pids):
        try:
            os.kill(pid, sig)
        except OSError:
            pass
    _live_pids.clear()


def _track(pid: int) -> None:
    global _atexit_registered
    if not _atexit_registered:
        atexit.register(_kill_survivors)
        _atexit_registered = True
    _live_pids.add(pid)


def kernel_binary_name(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Name of the kernel executable built for a platform.

    Raises:
        HuefyError: INTERNAL (``UNSUPPORTED_PLATFORM``) for unknown platforms
    """
    system = system or sys.platform
    machine = (machine or platform.machine()).lower()
    arch = "arm64" if machine in ("arm64", "aarch64") else "amd64"

    if system == "darwin":
        return f"kernel-cli-darwin-{arch}"
    if system.startswith("linux"):
        return f"kernel-cli-linux-{arch}"
    if system == "win32":
        return "kernel-cli-windows-amd64.exe"
    raise HuefyError.internal(
        f"Unsupported platform: {system}", code="UNSUPPORTED_PLATFORM", platform=system
    )


def resolve_kernel_binary(explicit: Optional[str] = None) -> str:
    """Find the kernel executable, preferring an explicit path.

    Raises:
        HuefyError: INTERNAL (``KERNEL_NOT_FOUND``) when no executable exists
    """
    path = Path(explicit) if explicit else BIN_DIR / kernel_binary_name()
    if not path.is_file():
        raise HuefyError.internal(
            f"Kernel binary not found at {path}", code="KERNEL_NOT_FOUND", path=str(path)
        )
    return str(path)


class KernelTransport(Transport):
    """Transport that runs the kernel CLI for every attempt."""

    kind = TransportKind.KERNEL

    def __init__(
        self,
        api_key: str,
        command: str,
        endpoint: Optional[str] = None,
        args: Optional[list[str]] = None,
        env: Optional[dict[str, str]] = None,
        timeout_ms: int = 30000,
    ):
        super().__init__(timeout_ms)
        self.api_key = api_key
        self.command = command
        self.endpoint = endpoint
        self.args = args or []
        self.env = env or {}

    def _envelope(self, request: TransportRequest, timeout_ms: int) -> dict[str, Any]:
        envelope: dict[str, Any] = {
            "command": COMMANDS[request.operation],
            "config": {
                "apiKey": self.api_key,
                "endpoint": self.endpoint,
                "timeout": timeout_ms,
            },
        }
        if not isinstance(request, HealthCheckRequest):
            envelope["data"] = request.to_wire()
        return envelope

    @asynccontextmanager
    async def _spawn(self) -> AsyncIterator[asyncio.subprocess.Process]:
        """Start the kernel and guarantee it is killed and reaped on exit."""
        env = os.environ.copy()
        env.update(self.env)

        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            raise SpawnError(f"Failed to spawn kernel process: {e}") from e

        _track(process.pid)
        try:
            yield process
        finally:
            try:
                if process.returncode is None:
                    try:
                        process.kill()
                    except ProcessLookupError:
                        pass
                    await process.wait()
                    logger.debug(f"Killed kernel process {process.pid}")
            finally:
                _live_pids.discard(process.pid)

    async def attempt(self, request: TransportRequest, timeout_ms: Optional[int] = None) -> dict[str, Any]:
        """Run the kernel once and decode its single JSON response."""
        timeout_ms = timeout_ms if timeout_ms is not None else self.timeout_ms
        payload = json.dumps(self._envelope(request, timeout_ms)).encode()

        async with self._spawn() as process:
            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(payload), timeout=timeout_ms / 1000
                )
            except asyncio.TimeoutError:
                # Output collected so far is dropped with the process
                raise TransportTimeout(timeout_ms) from None
            returncode = process.returncode

        if returncode != 0:
            raise ProcessExitError(returncode, stderr.decode(errors="replace"))

        return self._decode(stdout)

    def _decode(self, stdout: bytes) -> dict[str, Any]:
        try:
            response = json.loads(stdout.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ResponseDecodeError(
                f"Failed to parse kernel response: {e}",
                body=stdout[:500].decode(errors="replace"),
            ) from e

        if not isinstance(response, dict) or not isinstance(response.get("success"), bool):
            raise ResponseDecodeError("Kernel response is missing the success flag")

        if not response["success"]:
            error = response.get("error")
            if not isinstance(error, dict):
                error = {"message": str(error)} if error else {}
            raise RemoteApplicationError(
                error.get("code") or "KERNEL_ERROR",
                error.get("message") or "Unknown kernel error",
            )

        data = response.get("data")
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ResponseDecodeError("Kernel response data is not an object")
        return data

    async def close(self) -> None:
        """Nothing persistent to release; children live only per attempt."""
        pass

    def describe(self) -> dict[str, Any]:
        return {**super().describe(), "binary": self.command, "endpoint": self.endpoint}
