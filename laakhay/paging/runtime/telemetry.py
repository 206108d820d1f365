"""Structured logging for pagination engines.

Every helper emits one event name with its fields in ``extra`` so log
processors can index them without parsing messages.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def log_page_fetched(
    *,
    engine: str,
    page: int,
    items: int,
    total_items: int,
    has_next: bool,
    latency_ms: float | None = None,
) -> None:
    """Log a page that was accepted into the page window.

    Args:
        engine: Engine name
        page: Page number of the request
        items: Number of items on the page
        total_items: Aggregated item count after the page was added
        has_next: Whether another page is expected
        latency_ms: Fetch latency in milliseconds (optional)
    """
    logger.debug(
        "page_fetched",
        extra={
            "engine": engine,
            "page": page,
            "items": items,
            "total_items": total_items,
            "has_next": has_next,
            "latency_ms": latency_ms,
        },
    )


def log_page_evicted(*, engine: str, evicted: int, resident: int) -> None:
    """Log eviction of the oldest pages from the window."""
    logger.debug(
        "page_evicted",
        extra={"engine": engine, "evicted": evicted, "resident": resident},
    )


def log_fetch_discarded(*, engine: str, page: int, token: int, current_token: int) -> None:
    """Log a fetch result dropped because a newer generation exists."""
    logger.debug(
        "fetch_discarded",
        extra={
            "engine": engine,
            "page": page,
            "token": token,
            "current_token": current_token,
        },
    )


def log_fetch_retry(
    *,
    attempt: int,
    max_attempts: int,
    delay: float,
    error: Exception,
    engine: str | None = None,
) -> None:
    """Log a failed attempt that will be retried."""
    logger.warning(
        "fetch_retry",
        extra={
            "engine": engine,
            "attempt": attempt,
            "max_attempts": max_attempts,
            "delay": delay,
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def log_fetch_failed(*, engine: str, page: int | None, error: Exception) -> None:
    """Log a terminal fetch failure (after retries)."""
    logger.error(
        "fetch_failed",
        exc_info=error,
        extra={
            "engine": engine,
            "page": page,
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def log_stream_failed(*, engine: str, source: str, error: Exception) -> None:
    """Log a failure of a live or local stream.

    Args:
        engine: Engine name
        source: "remote" for the request-keyed stream, "local" for the local overlay
        error: Error raised by the stream
    """
    logger.error(
        "stream_failed",
        exc_info=error,
        extra={
            "engine": engine,
            "source": source,
            "error_type": type(error).__name__,
            "error_message": str(error),
        },
    )


def log_filter_applied(*, engine: str, before: int, after: int) -> None:
    """Log a filter narrowing the visible list."""
    logger.debug(
        "filter_applied",
        extra={"engine": engine, "before": before, "after": after},
    )
