"""Retrying execution of one request over any transport."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

from huefy.errors.classifier import ErrorClassifier
from huefy.errors.strategies import RetryPolicy, RetryState
from huefy.errors.taxonomy import HuefyError
from huefy.models.config import RetryConfig
from huefy.transport.base import ResponseDecodeError, Transport, TransportRequest

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]
RetryCallback = Callable[[int, HuefyError], Awaitable[Any]]


class Executor:
    """Runs attempts over a transport under a retry policy.

    Holds no per-call state, so one executor can serve concurrent calls.
    """

    def __init__(self, sleep: Optional[SleepFunc] = None):
        """Initialize executor.

        Args:
            sleep: Coroutine used for backoff waits (seconds), ``asyncio.sleep`` by default
        """
        self._sleep = sleep or asyncio.sleep

    async def execute(
        self,
        transport: Transport,
        request: TransportRequest,
        config: RetryConfig,
        timeout_override_ms: Optional[int] = None,
        deadline_ms: Optional[int] = None,
        on_retry: Optional[RetryCallback] = None,
    ) -> BaseModel:
        """Execute a request, retrying transient failures.

        Args:
            transport: Transport to attempt the exchange over
            request: Request to send
            config: Retry policy configuration
            timeout_override_ms: Per-attempt timeout (defaults to the transport's)
            deadline_ms: Bound on the whole call including backoff waits
            on_retry: Awaited with (failed attempt, error) before each backoff

        Returns:
            Decoded response model for the request

        Raises:
            HuefyError: The last classified failure, or VALIDATION for a
                non-positive timeout or deadline
        """
        for name, value in (("timeout_ms", timeout_override_ms), ("deadline_ms", deadline_ms)):
            if value is not None and value <= 0:
                raise HuefyError.validation(f"{name} must be a positive number of milliseconds, got {value}")

        run = self._run(transport, request, config, timeout_override_ms, on_retry)
        if deadline_ms is None:
            return await run

        try:
            return await asyncio.wait_for(run, timeout=deadline_ms / 1000)
        except asyncio.TimeoutError:
            # _run only raises HuefyError, so this is the call deadline
            logger.warning(f"✗ {request.operation} cancelled at deadline of {deadline_ms}ms")
            raise HuefyError.timeout(deadline_ms) from None

    async def _run(
        self,
        transport: Transport,
        request: TransportRequest,
        config: RetryConfig,
        timeout_override_ms: Optional[int],
        on_retry: Optional[RetryCallback],
    ) -> BaseModel:
        policy = RetryPolicy(config)
        state = RetryState()
        timeout_ms = timeout_override_ms if timeout_override_ms is not None else transport.timeout_ms
        operation = f"{request.operation} via {transport.kind.value}"

        while True:
            logger.debug(f"Executing {operation} (attempt {state.attempt}/{policy.max_attempts})")
            try:
                payload = await transport.attempt(request, timeout_ms)
                response = self._decode(request, payload)
            except Exception as e:
                cause = e
                error = ErrorClassifier.classify(e, transport.kind)
            else:
                if state.attempt > 1:
                    logger.info(f"✓ {operation} succeeded after {state.attempt} attempts")
                return response

            state.last_error = error
            logger.debug(f"Error in {operation}: {error.kind.name} - {error.message[:100]}")

            decision = policy.should_retry(state, error)
            if not decision.retry:
                logger.warning(
                    f"✗ {operation} failed after {state.attempt} attempts "
                    f"({decision.reason}): {error.code}: {error.message[:100]}"
                )
                if error is cause:
                    raise error
                raise error from cause

            logger.info(
                f"Retrying {operation} in {decision.delay_ms}ms "
                f"(attempt {state.attempt + 1}/{policy.max_attempts}, {error.code})"
            )
            if on_retry is not None:
                try:
                    await on_retry(state.attempt, error)
                except Exception as e:
                    logger.warning(f"✗ Retry callback for {operation} failed: {e}")
            await self._sleep(decision.delay_ms / 1000)
            state.attempt += 1

    @staticmethod
    def _decode(request: TransportRequest, payload: dict[str, Any]) -> BaseModel:
        try:
            return request.response_model.model_validate(payload)
        except ValidationError as e:
            raise ResponseDecodeError(
                f"Response does not match {request.response_model.__name__}: "
                f"{e.error_count()} validation errors"
            ) from e
