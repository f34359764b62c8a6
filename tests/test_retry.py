"""Tests for ai_gateway/providers/retry.py - exponential backoff engine."""

import asyncio
import logging

import pytest
from fakes import SleepRecorder

from ai_gateway.config import RetryConfig
from ai_gateway.exceptions import ConfigError, RateLimitError, ServiceError
from ai_gateway.providers.retry import RetryPolicy


class Flaky:
    """Operation failing with the given errors before succeeding."""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestBackoff:
    """Tests for RetryPolicy.backoff."""

    def test_default_sequence(self):
        """Delays double from 1s and cap at 10s."""
        policy = RetryPolicy()
        assert [policy.backoff(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 10.0, 10.0]

    @pytest.mark.parametrize(
        "config",
        [
            RetryConfig(),
            RetryConfig(initial_delay=0.25, multiplier=3.0, max_delay=7.0),
            RetryConfig(initial_delay=2.0, multiplier=1.0, max_delay=2.0),
            RetryConfig(initial_delay=0.0),
        ],
    )
    def test_monotonic_and_capped(self, config):
        """backoff(n) never decreases and never exceeds max_delay."""
        policy = RetryPolicy(config)
        delays = [policy.backoff(n) for n in range(50)]

        assert all(a <= b for a, b in zip(delays, delays[1:], strict=False))
        assert all(d <= config.max_delay for d in delays)

    def test_huge_attempt_capped(self):
        """Overflowing exponents still return max_delay."""
        assert RetryPolicy().backoff(10_000) == 10.0


class TestCall:
    """Tests for RetryPolicy.call."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, retry_policy, sleep_recorder):
        """No sleeps when the first attempt succeeds."""
        operation = Flaky()
        assert await retry_policy.call(operation) == "ok"
        assert operation.calls == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [1, 2, 3])
    async def test_total_sleep_is_sum_of_backoffs(self, retry_policy, sleep_recorder, failures):
        """Retrying n times sleeps backoff(0) + ... + backoff(n-1)."""
        operation = Flaky(*[RateLimitError() for _ in range(failures)])

        assert await retry_policy.call(operation) == "ok"

        assert operation.calls == failures + 1
        assert sleep_recorder.delays == [retry_policy.backoff(i) for i in range(failures)]
        assert sum(sleep_recorder.delays) == sum(retry_policy.backoff(i) for i in range(failures))

    @pytest.mark.asyncio
    async def test_persistent_retryable_error(self, retry_policy, sleep_recorder):
        """A retryable error on every attempt makes max_retries + 1 calls, then raises it."""
        operation = Flaky(*[ServiceError("down", is_retryable=True, status_code=503) for _ in range(10)])

        with pytest.raises(ServiceError) as exc_info:
            await retry_policy.call(operation)

        assert operation.calls == retry_policy.max_retries + 1
        assert exc_info.value.status_code == 503
        assert len(sleep_recorder.delays) == retry_policy.max_retries

    @pytest.mark.asyncio
    async def test_non_retryable_error_single_call(self, retry_policy, sleep_recorder):
        """A non-retryable error propagates after exactly one call."""
        operation = Flaky(ConfigError("bad key"))

        with pytest.raises(ConfigError):
            await retry_policy.call(operation)

        assert operation.calls == 1
        assert sleep_recorder.delays == []

    @pytest.mark.asyncio
    async def test_unclassified_error_not_retried(self, retry_policy):
        """Errors outside the taxonomy are not retried by the default predicate."""
        operation = Flaky(ConnectionResetError("reset"))

        with pytest.raises(ConnectionResetError):
            await retry_policy.call(operation)

        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_custom_predicate(self, retry_policy):
        """The adapter-supplied predicate decides what is retried."""
        operation = Flaky(ConnectionResetError("reset"))

        result = await retry_policy.call(
            operation, lambda e: isinstance(e, ConnectionResetError)
        )

        assert result == "ok"
        assert operation.calls == 2

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        """max_retries=0 makes a single attempt."""
        sleep = SleepRecorder()
        policy = RetryPolicy(RetryConfig(max_retries=0), sleep=sleep)
        operation = Flaky(RateLimitError())

        with pytest.raises(RateLimitError):
            await policy.call(operation)

        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_cancellation_during_backoff_aborts(self):
        """Cancelling while waiting between attempts stops further attempts."""
        sleeping = asyncio.Event()

        async def blocking_sleep(delay):
            sleeping.set()
            await asyncio.Event().wait()

        policy = RetryPolicy(sleep=blocking_sleep)
        operation = Flaky(*[RateLimitError() for _ in range(5)])

        task = asyncio.create_task(policy.call(operation))
        await sleeping.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_logs_each_retry(self, sleep_recorder, caplog):
        """Every scheduled retry is logged at WARNING with its delay."""
        logger = logging.getLogger("test.retry")
        policy = RetryPolicy(sleep=sleep_recorder, logger=logger)
        operation = Flaky(RateLimitError(status_code=429), RateLimitError(status_code=429))

        with caplog.at_level(logging.WARNING, logger="test.retry"):
            await policy.call(operation, provider="anthropic")

        records = [r for r in caplog.records if r.name == "test.retry"]
        assert len(records) == 2
        assert [r.attempt for r in records] == [1, 2]
        assert [r.delay_seconds for r in records] == [1.0, 2.0]
        assert all(r.provider == "anthropic" for r in records)
        assert all(r.error_kind == "rate_limit" for r in records)
        assert all(r.status_code == 429 for r in records)
