"""Unit tests for RetryConfig and RetryHandler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from laakhay.paging import (
    FetchTimeoutError,
    RetryConfig,
    RetryExhaustedError,
    RetryHandler,
    UnknownFetchError,
)

SLEEP = "laakhay.paging.runtime.retry.asyncio.sleep"


class Flaky:
    """Fails a fixed number of times, then returns a value."""

    def __init__(self, failures: int, value="ok", error_factory=lambda n: ConnectionError(f"fail {n}")):
        self.failures = failures
        self.value = value
        self.error_factory = error_factory
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error_factory(self.calls)
        return self.value


class TestRetryConfig:
    def test_defaults(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.initial_delay == 1.0
        assert config.max_delay == 10.0
        assert config.retry_delays is None
        assert config.timeout is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"initial_delay": -1.0},
            {"max_delay": -0.5},
            {"timeout": 0},
            {"retry_delays": []},
            {"retry_delays": [1.0, -1.0]},
        ],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)

    def test_exponential_delay_is_capped(self):
        config = RetryConfig(initial_delay=1.0, max_delay=5.0)
        assert [config.delay_for(k) for k in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_custom_delays_reuse_last_entry(self):
        config = RetryConfig(max_attempts=5, retry_delays=[0.1, 0.5])
        assert config.retry_delays == (0.1, 0.5)
        assert [config.delay_for(k) for k in range(1, 5)] == [0.1, 0.5, 0.5, 0.5]

    def test_delay_for_rejects_attempt_zero(self):
        with pytest.raises(ValueError):
            RetryConfig().delay_for(0)


class TestRetryHandler:
    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        operation = Flaky(failures=0, value=42)
        with patch(SLEEP, new_callable=AsyncMock) as sleep:
            result = await RetryHandler(RetryConfig()).execute(operation)

        assert result == 42
        assert operation.calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self):
        operation = Flaky(failures=2, value="done")
        on_retry = MagicMock()

        with patch(SLEEP, new_callable=AsyncMock) as sleep:
            result = await RetryHandler(RetryConfig(max_attempts=3)).execute(operation, on_retry=on_retry)

        assert result == "done"
        assert operation.calls == 3
        assert [c.args[0] for c in on_retry.call_args_list] == [1, 2]
        assert all(isinstance(c.args[1], ConnectionError) for c in on_retry.call_args_list)
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_with_last_error(self):
        operation = Flaky(failures=10)
        on_retry = MagicMock()

        with patch(SLEEP, new_callable=AsyncMock) as sleep:
            with pytest.raises(RetryExhaustedError) as exc_info:
                await RetryHandler(RetryConfig(max_attempts=3, initial_delay=0.5, max_delay=0.8)).execute(
                    operation, on_retry=on_retry
                )

        error = exc_info.value
        assert error.attempts == 3
        assert isinstance(error.last_error, ConnectionError)
        assert str(error.last_error) == "fail 3"
        assert error.__cause__ is error.last_error
        assert operation.calls == 3
        assert on_retry.call_count == 2
        # No wait after the final attempt
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 0.8]

    @pytest.mark.asyncio
    async def test_custom_delays(self):
        operation = Flaky(failures=3)
        config = RetryConfig(max_attempts=4, retry_delays=(0.2, 0.4))

        with patch(SLEEP, new_callable=AsyncMock) as sleep:
            await RetryHandler(config).execute(operation)

        assert [c.args[0] for c in sleep.await_args_list] == [0.2, 0.4, 0.4]

    @pytest.mark.asyncio
    async def test_should_retry_veto_reraises_original(self):
        operation = Flaky(failures=5, error_factory=lambda n: ValueError("not retryable"))
        config = RetryConfig(should_retry=lambda e: not isinstance(e, ValueError))

        with patch(SLEEP, new_callable=AsyncMock) as sleep:
            with pytest.raises(ValueError, match="not retryable"):
                await RetryHandler(config).execute(operation)

        assert operation.calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_on_retry_errors_do_not_break_retry(self):
        operation = Flaky(failures=1, value="ok")
        on_retry = MagicMock(side_effect=RuntimeError("observer broke"))

        with patch(SLEEP, new_callable=AsyncMock):
            result = await RetryHandler(RetryConfig()).execute(operation, on_retry=on_retry)

        assert result == "ok"
        on_retry.assert_called_once()

    @pytest.mark.asyncio
    async def test_timeout_becomes_fetch_timeout_error(self):
        async def hang():
            await asyncio.Event().wait()

        with pytest.raises(RetryExhaustedError) as exc_info:
            await RetryHandler(RetryConfig(max_attempts=1, timeout=0.01)).execute(hang)

        assert isinstance(exc_info.value.last_error, FetchTimeoutError)
        assert exc_info.value.last_error.timeout == 0.01

    @pytest.mark.asyncio
    async def test_timed_out_attempt_is_retried(self):
        calls = {"n": 0}

        async def operation():
            calls["n"] += 1
            if calls["n"] == 1:
                await asyncio.Event().wait()
            return "second try"

        on_retry = MagicMock()
        config = RetryConfig(max_attempts=2, timeout=0.01)

        with patch(SLEEP, new_callable=AsyncMock) as sleep:
            result = await RetryHandler(config).execute(operation, on_retry=on_retry)

        assert result == "second try"
        assert calls["n"] == 2
        on_retry.assert_called_once()
        attempt, error = on_retry.call_args.args
        assert attempt == 1
        assert isinstance(error, FetchTimeoutError)
        assert error.timeout == 0.01
        sleep.assert_awaited_once_with(config.initial_delay)

    @pytest.mark.asyncio
    async def test_non_exception_failures_are_wrapped(self):
        class Odd(BaseException):
            pass

        async def operation():
            raise Odd()

        seen = []
        config = RetryConfig(max_attempts=2, should_retry=lambda e: seen.append(e) or True)

        with patch(SLEEP, new_callable=AsyncMock):
            with pytest.raises(RetryExhaustedError) as exc_info:
                await RetryHandler(config).execute(operation)

        assert isinstance(exc_info.value.last_error, UnknownFetchError)
        assert isinstance(exc_info.value.last_error.original, Odd)
        assert len(seen) == 1
        assert isinstance(seen[0], UnknownFetchError)

    @pytest.mark.asyncio
    async def test_cancellation_propagates_without_retry(self):
        operation = Flaky(failures=5, error_factory=lambda n: asyncio.CancelledError())

        with patch(SLEEP, new_callable=AsyncMock) as sleep:
            with pytest.raises(asyncio.CancelledError):
                await RetryHandler(RetryConfig()).execute(operation)

        assert operation.calls == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_is_shareable(self):
        handler = RetryHandler(RetryConfig(max_attempts=2))
        first, second = Flaky(failures=1, value=1), Flaky(failures=0, value=2)

        with patch(SLEEP, new_callable=AsyncMock):
            results = await asyncio.gather(handler.execute(first), handler.execute(second))

        assert results == [1, 2]
