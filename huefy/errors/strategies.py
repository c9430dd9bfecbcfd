"""Retry policy: whether to retry a failed attempt and how long to wait."""

import random
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from huefy.errors.taxonomy import PERMANENT_KINDS, TRANSIENT_KINDS, HuefyError
from huefy.models.config import RetryConfig


class RetryState(BaseModel):
    """Bookkeeping for one call to ``Executor.execute``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    attempt: int = Field(default=1, ge=1, description="Current attempt number (1-indexed)")
    last_error: Optional[HuefyError] = Field(default=None, description="Most recent classified failure")


class RetryDecision(BaseModel):
    """Outcome of consulting the policy after a failed attempt."""

    model_config = ConfigDict(frozen=True)

    retry: bool
    delay_ms: int = 0
    reason: str = ""


def backoff_delay_ms(attempt: int, config: RetryConfig) -> int:
    """Delay before the attempt following ``attempt``.

    ``min(initial * multiplier^(attempt-1), max)``, without jitter.
    """
    try:
        delay = config.initial_delay_ms * (config.backoff_multiplier ** (attempt - 1))
    except OverflowError:
        return config.max_delay_ms
    return int(min(delay, config.max_delay_ms))


class RetryPolicy:
    """Decides retries for every call made through one client.

    The policy only computes; the executor does the waiting.
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig()

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def is_retryable(self, error: HuefyError) -> bool:
        """Check if an error kind or code is worth another attempt.

        Args:
            error: Classified error

        Returns:
            True if the error should be retried
        """
        if error.kind in PERMANENT_KINDS:
            return False
        if error.code in self.config.non_retryable_codes:
            return False
        if error.kind in TRANSIENT_KINDS:
            return True
        if error.status_code is not None and error.status_code >= 500:
            return True

        retryable_codes = self.config.retryable_codes
        http_status = (error.details or {}).get("http_status")
        return error.code in retryable_codes or (
            http_status is not None and http_status in retryable_codes
        )

    def should_retry(self, state: RetryState, error: HuefyError) -> RetryDecision:
        """Decide whether to retry after a failed attempt.

        Args:
            state: Per-call state; ``state.attempt`` is the attempt that failed
            error: Classification of that failure

        Returns:
            Decision with the delay to wait before the next attempt
        """
        if state.attempt >= self.config.max_attempts:
            return RetryDecision(retry=False, reason="exhausted")

        if not self.is_retryable(error):
            return RetryDecision(retry=False, reason="non_retryable")

        delay = backoff_delay_ms(state.attempt, self.config)
        if self.config.jitter > 0:
            delay += int(delay * self.config.jitter * random.random())
            delay = min(delay, self.config.max_delay_ms)
        return RetryDecision(retry=True, delay_ms=delay, reason="retryable")


def should_retry(state: RetryState, error: HuefyError, config: RetryConfig) -> RetryDecision:
    """Functional form of ``RetryPolicy.should_retry``."""
    return RetryPolicy(config).should_retry(state, error)
