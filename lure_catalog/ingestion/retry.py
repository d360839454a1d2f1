"""
Retry Module
============

One retry-with-backoff policy shared by the image relocator and the
rebuild signal, built on tenacity.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times to try an operation and how long to wait between tries.

    Attributes:
        max_attempts: Total attempts, including the first (1 = no retries)
        delay_seconds: Wait before the first retry
        backoff: "linear" (delay, 2*delay, 3*delay...) or
            "exponential" (delay, 2*delay, 4*delay...)
        max_delay_seconds: Upper bound for a single wait
    """

    max_attempts: int = 1
    delay_seconds: float = 1.0
    backoff: str = "linear"
    max_delay_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.backoff not in ("linear", "exponential"):
            raise ValueError(f"Unknown backoff '{self.backoff}'")

    def _wait(self):
        if self.backoff == "exponential":
            return wait_exponential(multiplier=self.delay_seconds, max=self.max_delay_seconds)
        return wait_incrementing(
            start=self.delay_seconds,
            increment=self.delay_seconds,
            max=self.max_delay_seconds,
        )

    def retrying(
        self,
        retry_on: type[BaseException] | tuple[type[BaseException], ...] | None = None,
        retry_if: Callable[[Any], bool] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> AsyncRetrying:
        """
        Build a tenacity AsyncRetrying for this policy.

        Args:
            retry_on: Exception type(s) that trigger a retry
            retry_if: Predicate on the returned value that triggers a retry
            sleep: Awaitable sleep function (overridable in tests)

        When attempts run out, the last outcome is returned or re-raised
        as-is rather than wrapped in tenacity's RetryError.
        """
        condition = None
        if retry_on is not None:
            condition = retry_if_exception_type(retry_on)
        if retry_if is not None:
            result_condition = retry_if_result(retry_if)
            condition = result_condition if condition is None else condition | result_condition
        if condition is None:
            condition = retry_if_exception_type(())

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait(),
            retry=condition,
            sleep=sleep,
            before_sleep=_log_before_sleep,
            retry_error_callback=_last_outcome,
            reraise=True,
        )

    async def call(
        self,
        fn: Callable[[], Awaitable[T]],
        retry_on: type[BaseException] | tuple[type[BaseException], ...] | None = None,
        retry_if: Callable[[Any], bool] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """
        Run an async callable under this policy and return its result.

        `fn` may be any zero-argument callable returning an awaitable,
        including a lambda; tenacity only awaits true coroutine functions.
        """

        async def attempt() -> T:
            return await fn()

        return await self.retrying(retry_on=retry_on, retry_if=retry_if, sleep=sleep)(attempt)


def _last_outcome(retry_state: RetryCallState) -> Any:
    """Hand back the final attempt's result, or re-raise its exception."""
    outcome = retry_state.outcome
    if outcome is None:
        return None
    return outcome.result()


def _log_before_sleep(retry_state: RetryCallState) -> None:
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.info(
        f"Attempt {retry_state.attempt_number} did not succeed, retrying in {wait:.1f}s"
    )
