"""Retry engine for asynchronous operations.

Architecture:
    RetryHandler wraps any zero-argument coroutine factory with bounded
    attempts, an optional per-attempt timeout and backoff between attempts.
    The handler holds nothing but its configuration, so one instance can be
    shared by concurrent callers.

Backoff:
    - Custom delays: ``retry_delays[k - 1]`` after failed attempt k
      (the last entry is reused when the list runs out)
    - Exponential: ``min(initial_delay * 2 ** (k - 1), max_delay)``

Error surface:
    - Timeouts become FetchTimeoutError and are retried like any failure
    - Failures that are not Exception instances become UnknownFetchError
    - ``should_retry`` returning False re-raises the error immediately
    - Exhaustion raises RetryExhaustedError chained from the last error
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from ..core.constants import DEFAULT_INITIAL_DELAY, DEFAULT_MAX_ATTEMPTS, DEFAULT_MAX_DELAY
from ..core.exceptions import FetchTimeoutError, RetryExhaustedError, UnknownFetchError
from .telemetry import log_fetch_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[Exception], bool]
OnRetry = Callable[[int, Exception], None]

# Never wrapped or retried: cancellation and interpreter shutdown
PASSTHROUGH_ERRORS = (asyncio.CancelledError, KeyboardInterrupt, SystemExit, GeneratorExit)


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy.

    Attributes:
        max_attempts: Total attempts including the first one (must be > 0)
        initial_delay: Delay after the first failure, in seconds
        max_delay: Upper bound for exponential delays, in seconds
        retry_delays: Fixed per-attempt delays, overriding the exponential computation
        timeout: Per-attempt timeout in seconds (None = no timeout)
        should_retry: Predicate deciding whether an error is retryable (None = retry all)

    Examples:
        # 3 attempts, waits 1s then 2s
        RetryConfig()

        # Fixed schedule with a 5s timeout per attempt
        RetryConfig(max_attempts=4, retry_delays=(0.5, 1.0, 5.0), timeout=5.0)
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    retry_delays: Sequence[float] | None = None
    timeout: float | None = None
    should_retry: RetryPredicate | None = None

    def __post_init__(self) -> None:
        """Validate retry configuration."""
        if self.max_attempts <= 0:
            raise ValueError("RetryConfig max_attempts must be greater than 0")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("RetryConfig delays cannot be negative")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("RetryConfig timeout must be positive")
        if self.retry_delays is not None:
            if not self.retry_delays:
                raise ValueError("RetryConfig retry_delays cannot be empty")
            if any(delay < 0 for delay in self.retry_delays):
                raise ValueError("RetryConfig retry_delays cannot be negative")
            # Store as tuple so the frozen config stays hashable
            object.__setattr__(self, "retry_delays", tuple(self.retry_delays))

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt ``attempt`` (1-based).

        Args:
            attempt: Number of the attempt that just failed

        Returns:
            Delay in seconds
        """
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        if self.retry_delays is not None:
            index = min(attempt - 1, len(self.retry_delays) - 1)
            return self.retry_delays[index]
        return min(self.initial_delay * (2 ** (attempt - 1)), self.max_delay)

    def allows_retry(self, error: Exception) -> bool:
        """Whether ``error`` may be retried under this policy."""
        if self.should_retry is None:
            return True
        return bool(self.should_retry(error))


class RetryHandler:
    """Executes operations under a RetryConfig."""

    def __init__(self, config: RetryConfig | None = None, *, name: str | None = None) -> None:
        """Initialize retry handler.

        Args:
            config: Retry policy (defaults to RetryConfig())
            name: Owner name attached to retry log events
        """
        self._config = config or RetryConfig()
        self._name = name

    @property
    def config(self) -> RetryConfig:
        return self._config

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        on_retry: OnRetry | None = None,
    ) -> T:
        """Run ``operation`` until it succeeds or the policy gives up.

        Args:
            operation: Zero-argument callable returning an awaitable
            on_retry: Observation hook called as ``on_retry(attempt, error)``
                before each backoff wait

        Returns:
            The operation's result

        Raises:
            RetryExhaustedError: If every attempt failed
            Exception: The underlying error if ``should_retry`` vetoed a retry
        """
        config = self._config
        last_error: Exception | None = None

        for attempt in range(1, config.max_attempts + 1):
            try:
                return await self._attempt(operation)
            except PASSTHROUGH_ERRORS:
                raise
            except BaseException as raw:
                error = normalize_error(raw)
                last_error = error

            if attempt >= config.max_attempts:
                break

            if not config.allows_retry(error):
                logger.debug(
                    "retry_vetoed",
                    extra={"attempt": attempt, "error_type": type(error).__name__},
                )
                raise error

            delay = config.delay_for(attempt)
            log_fetch_retry(
                engine=self._name,
                attempt=attempt,
                max_attempts=config.max_attempts,
                delay=delay,
                error=error,
            )
            if on_retry is not None:
                _notify(on_retry, attempt, error)
            await asyncio.sleep(delay)

        assert last_error is not None
        raise RetryExhaustedError(
            f"Operation failed after {config.max_attempts} attempts: {last_error}",
            attempts=config.max_attempts,
            last_error=last_error,
        ) from last_error

    async def _attempt(self, operation: Callable[[], Awaitable[T]]) -> T:
        timeout = self._config.timeout
        if timeout is None:
            return await operation()
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except TimeoutError as e:
            raise FetchTimeoutError(
                f"Attempt exceeded timeout of {timeout}s", timeout=timeout
            ) from e


def normalize_error(error: BaseException) -> Exception:
    """Give every failure an Exception shape."""
    if isinstance(error, Exception):
        return error
    wrapped = UnknownFetchError(f"Unknown failure: {error!r}", original=error)
    wrapped.__cause__ = error
    return wrapped


def _notify(on_retry: OnRetry, attempt: int, error: Exception) -> None:
    try:
        on_retry(attempt, error)
    except Exception as e:
        logger.error(f"Error in retry callback: {e}", exc_info=True)
