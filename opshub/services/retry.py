"""
Backoff executor for outbound integration calls.

Every adapter wraps its HTTP call in a `BackoffExecutor`. The executor
re-raises the last error unchanged once the attempt budget is spent and never
sleeps after the final attempt.
"""
import asyncio
import enum
from collections.abc import Awaitable, Callable
from typing import TypeVar

from opshub.logging_config import get_logger
from opshub.routes.metrics import track_retry


T = TypeVar("T")


class BackoffStrategy(str, enum.Enum):
    """Delay growth between attempts."""
    EXPONENTIAL = "exponential"
    LINEAR = "linear"


class RetryPolicy:
    """
    Attempt budget and delay schedule.

    Delays are in seconds: exponential waits `base_delay * 2**(attempt-1)`,
    linear waits `base_delay * attempt`, where `attempt` is the 1-based number
    of the attempt that just failed.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.strategy = strategy
        self.retry_on = retry_on

    def should_retry(self, exc: BaseException) -> bool:
        return isinstance(exc, self.retry_on)

    def delay(self, attempt: int, exc: BaseException | None = None) -> float:
        if self.strategy == BackoffStrategy.LINEAR:
            return self.base_delay * attempt
        return self.base_delay * 2 ** (attempt - 1)


class BackoffExecutor:
    """Runs an async operation under a `RetryPolicy`."""

    def __init__(
        self,
        policy: RetryPolicy,
        name: str = "operation",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.policy = policy
        self.name = name
        self._sleep = sleep
        self.attempts = 0
        self.log = get_logger(operation=name)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Invoke `operation` until it succeeds or the budget is spent.

        Returns:
            The operation's result.

        Raises:
            The exception raised by the last attempt.
        """
        self.attempts = 0
        for attempt in range(1, self.policy.max_attempts + 1):
            self.attempts = attempt
            try:
                result = await operation()
            except Exception as exc:
                self.log.warning(
                    "attempt_failed",
                    attempt=attempt,
                    max_attempts=self.policy.max_attempts,
                    error=str(exc),
                )
                if attempt == self.policy.max_attempts or not self.policy.should_retry(exc):
                    raise
                delay = self.policy.delay(attempt, exc)
                self.log.info("retry_scheduled", attempt=attempt, delay_seconds=delay)
                track_retry(self.name)
                await self._sleep(delay)
            else:
                if attempt > 1:
                    self.log.info("attempt_succeeded", attempt=attempt)
                return result
        # unreachable: the loop either returns or raises
        raise RuntimeError(f"{self.name}: retry loop exited without a result")
