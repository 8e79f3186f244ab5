"""
Bounded retry shared by the identity, lookup and association calls.

    policy = RetryPolicy(max_attempts=5, backoff=linear_backoff(2.0, 2.0))
    identity = call_with_retry(source.identify, policy, deadline=deadline)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    stop_never,
    wait_fixed,
    wait_incrementing,
)
from tenacity.stop import stop_base
from tenacity.wait import wait_base

from .errors import is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[BaseException], bool]


def fixed_delay(seconds: float) -> wait_base:
    """Wait the same amount of time after every failed attempt."""
    return wait_fixed(seconds)


def linear_backoff(base: float, step: float) -> wait_base:
    """Wait ``base``, then ``base + step``, ``base + 2 * step``..."""
    return wait_incrementing(start=base, increment=step)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a single step is retried."""

    max_attempts: int = 5
    backoff: wait_base = field(default_factory=lambda: linear_backoff(2.0, 2.0))
    retry_on: RetryPredicate = is_retryable

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class stop_before_deadline(stop_base):
    """Stop when the next wait would end after ``deadline`` (a ``clock()`` value)."""

    def __init__(
        self, deadline: float, backoff: wait_base, clock: Callable[[], float]
    ) -> None:
        self.deadline = deadline
        self.backoff = backoff
        self.clock = clock

    def __call__(self, retry_state: RetryCallState) -> bool:
        return self.clock() + self.backoff(retry_state) > self.deadline


def _log_retry(description: str, max_attempts: int):
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            "%s attempt %d/%d failed with %s: %s. Retrying in %.1fs",
            description,
            retry_state.attempt_number,
            max_attempts,
            type(exc).__name__,
            exc,
            retry_state.next_action.sleep,
        )

    return before_sleep


def call_with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    deadline: Optional[float] = None,
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Call ``operation`` until it succeeds, fails with a non-retryable error,
    runs out of attempts or would sleep past ``deadline``.

    The last error is re-raised unchanged when retrying stops.
    """
    stop = stop_after_attempt(policy.max_attempts) | (
        stop_before_deadline(deadline, policy.backoff, clock)
        if deadline is not None
        else stop_never
    )

    retrying = Retrying(
        stop=stop,
        wait=policy.backoff,
        retry=retry_if_exception(policy.retry_on),
        sleep=sleep,
        before_sleep=_log_retry(description, policy.max_attempts),
        reraise=True,
    )
    return retrying(operation)
