"""
Exponential backoff engine shared by all provider adapters.

Per call the engine runs ``Attempting(0..max_retries)`` until the operation
succeeds, or until the adapter's predicate rejects the error or the budget is
exhausted, in which case the classified error propagates unchanged.

    backoff(n) = min(initial_delay * multiplier ** n, max_delay)

Built on tenacity, like the rest of the codebase's HTTP clients.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ai_gateway.config import RetryConfig
from ai_gateway.exceptions import GatewayError, is_retryable

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class RetryPolicy:
    """Backoff policy plus the machinery to run an operation under it.

    Args:
        config: Retry settings (defaults: 3 retries, 1s initial, x2, 10s cap)
        sleep: Awaitable sleep used between attempts (injectable for tests)
        logger: Logger receiving one WARNING per scheduled retry
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: SleepFn | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep
        self._logger = logger or logging.getLogger(__name__)

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    def backoff(self, attempt: int) -> float:
        """Delay in seconds after failed attempt ``attempt`` (0-based)."""
        try:
            delay = self.config.initial_delay * self.config.multiplier**attempt
        except OverflowError:
            return self.config.max_delay
        return min(delay, self.config.max_delay)

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        should_retry: Callable[[BaseException], bool] = is_retryable,
        *,
        provider: str | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or may no longer be retried.

        Args:
            operation: Zero-argument coroutine function performing one attempt
            should_retry: Predicate deciding whether a failure is retryable
            provider: Provider name for log context

        Returns:
            The operation's result

        Raises:
            The last error raised by ``operation`` (never wrapped).
        """

        def _log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            self._logger.warning(
                f"Retrying after {type(error).__name__} "
                f"(attempt {retry_state.attempt_number} of {self.max_retries + 1})",
                extra={
                    "provider": provider,
                    "attempt": retry_state.attempt_number,
                    "delay_seconds": delay,
                    "error_kind": error.kind.value if isinstance(error, GatewayError) else None,
                    "status_code": getattr(error, "status_code", None),
                },
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.config.initial_delay,
                exp_base=self.config.multiplier,
                max=self.config.max_delay,
            ),
            retry=retry_if_exception(should_retry),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        return await retrying(operation)
