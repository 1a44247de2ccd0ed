"""Tests for the backoff executor and retry policies."""
import asyncio

import pytest
from hypothesis import given, settings as hypothesis_settings, strategies as st

from opshub.services.retry import BackoffExecutor, BackoffStrategy, RetryPolicy


class FlakyOperation:
    """Fails `failures` times, then returns "ok"."""

    def __init__(self, failures: int, error: Exception | None = None):
        self.failures = failures
        self.error = error or RuntimeError("boom")
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def test_exponential_delays():
    policy = RetryPolicy(max_attempts=4, base_delay=1.0, strategy=BackoffStrategy.EXPONENTIAL)
    assert [policy.delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_linear_delays():
    policy = RetryPolicy(max_attempts=4, base_delay=2.0, strategy=BackoffStrategy.LINEAR)
    assert [policy.delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 6.0]


def test_zero_attempts_rejected():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


@pytest.mark.asyncio
async def test_succeeds_after_transient_failures(sleep):
    operation = FlakyOperation(failures=2)
    executor = BackoffExecutor(RetryPolicy(max_attempts=3), sleep=sleep)

    assert await executor.run(operation) == "ok"
    assert operation.calls == 3
    assert executor.attempts == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_final_failure_propagates_without_trailing_sleep(sleep):
    error = RuntimeError("upstream down")
    operation = FlakyOperation(failures=10, error=error)
    executor = BackoffExecutor(RetryPolicy(max_attempts=3), sleep=sleep)

    with pytest.raises(RuntimeError) as exc_info:
        await executor.run(operation)

    assert exc_info.value is error
    assert operation.calls == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_non_retryable_error_stops_immediately(sleep):
    operation = FlakyOperation(failures=5, error=KeyError("nope"))
    policy = RetryPolicy(max_attempts=3, retry_on=(ConnectionError,))
    executor = BackoffExecutor(policy, sleep=sleep)

    with pytest.raises(KeyError):
        await executor.run(operation)

    assert operation.calls == 1
    assert sleep.delays == []


@hypothesis_settings(max_examples=50, deadline=None)
@given(
    max_attempts=st.integers(min_value=1, max_value=8),
    failures=st.integers(min_value=0, max_value=12),
    strategy=st.sampled_from(list(BackoffStrategy)),
)
def test_never_exceeds_attempt_budget(max_attempts, failures, strategy):
    delays: list[float] = []

    async def record(delay: float) -> None:
        delays.append(delay)

    operation = FlakyOperation(failures=failures)
    policy = RetryPolicy(max_attempts=max_attempts, base_delay=0.5, strategy=strategy)
    executor = BackoffExecutor(policy, sleep=record)

    async def scenario():
        try:
            return await executor.run(operation)
        except RuntimeError:
            return None

    result = asyncio.run(scenario())

    assert operation.calls <= max_attempts
    assert len(delays) == operation.calls - 1
    if failures < max_attempts:
        assert result == "ok"
        assert operation.calls == failures + 1
    else:
        assert result is None
        assert operation.calls == max_attempts
