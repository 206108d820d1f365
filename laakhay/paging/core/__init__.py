"""Core components."""

from .constants import (
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_PAGES_IN_MEMORY,
    DEFAULT_PAGE,
)
from .enums import ErrorKind, classify_error
from .exceptions import (
    EngineDisposedError,
    FetchTimeoutError,
    PagingError,
    RetryExhaustedError,
    UnknownFetchError,
)

__all__ = [
    "ErrorKind",
    "classify_error",
    "PagingError",
    "FetchTimeoutError",
    "RetryExhaustedError",
    "UnknownFetchError",
    "EngineDisposedError",
    "DEFAULT_PAGE",
    "DEFAULT_MAX_PAGES_IN_MEMORY",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_INITIAL_DELAY",
    "DEFAULT_MAX_DELAY",
]
