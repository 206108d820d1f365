"""Custom exception hierarchy."""

from __future__ import annotations


class PagingError(Exception):
    """Base exception for all library errors."""

    pass


class FetchTimeoutError(PagingError):
    """A single fetch attempt exceeded the configured timeout."""

    def __init__(self, message: str, timeout: float | None = None) -> None:
        super().__init__(message)
        self.timeout = timeout


class RetryExhaustedError(PagingError):
    """All retry attempts failed.

    The last underlying error is kept on ``last_error`` and is also chained
    as ``__cause__`` when raised by the retry handler.
    """

    def __init__(self, message: str, attempts: int, last_error: Exception) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class UnknownFetchError(PagingError):
    """Failure that was not raised as an ``Exception`` instance."""

    def __init__(self, message: str, original: BaseException | None = None) -> None:
        super().__init__(message)
        self.original = original


class EngineDisposedError(PagingError):
    """Operation attempted on an engine that has been disposed."""

    pass
