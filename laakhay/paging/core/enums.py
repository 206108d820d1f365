"""Core enumerations.

Key Types:
    - ErrorKind: Taxonomy of terminal fetch failures exposed on error states
"""

from __future__ import annotations

from enum import Enum

from .exceptions import FetchTimeoutError, RetryExhaustedError, UnknownFetchError


class ErrorKind(str, Enum):
    """Classification of a terminal pagination failure.

    String enum so collaborators can serialize it or key error displays on it.
    """

    TIMEOUT = "timeout"
    PROVIDER = "provider"
    RETRY_EXHAUSTED = "retry_exhausted"
    UNKNOWN = "unknown"


def classify_error(error: BaseException) -> ErrorKind:
    """Map an error onto the failure taxonomy.

    Args:
        error: Terminal error surfaced by a fetch or stream

    Returns:
        ErrorKind for the error. Any ordinary exception raised by the
        caller's fetch/stream function is a provider failure.
    """
    if isinstance(error, RetryExhaustedError):
        return ErrorKind.RETRY_EXHAUSTED
    if isinstance(error, FetchTimeoutError | TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, UnknownFetchError) or not isinstance(error, Exception):
        return ErrorKind.UNKNOWN
    return ErrorKind.PROVIDER
