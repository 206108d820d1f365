"""Runtime building blocks shared by the pagination engines."""

from .channel import StateChannel
from .retry import RetryConfig, RetryHandler
from .window import PageWindow

__all__ = [
    "RetryConfig",
    "RetryHandler",
    "PageWindow",
    "StateChannel",
]
