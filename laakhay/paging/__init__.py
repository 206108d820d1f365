"""Laakhay Paging - Transport-agnostic async pagination engine."""

from .controller import PaginationController
from .core import (
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_PAGES_IN_MEMORY,
    DEFAULT_PAGE,
    EngineDisposedError,
    ErrorKind,
    FetchTimeoutError,
    PagingError,
    RetryExhaustedError,
    UnknownFetchError,
    classify_error,
)
from .engines import BasePaginator, GroupedPaginator, SmartPaginator, group_by
from .listeners import ChangeListener, FilterListener, OrderListener, RefreshListener
from .models import (
    Error,
    Group,
    Initial,
    Loaded,
    Page,
    PaginationMeta,
    PaginationRequest,
    PaginationState,
)
from .runtime import PageWindow, RetryConfig, RetryHandler, StateChannel

__version__ = "0.1.0"

__all__ = [
    # Engines
    "BasePaginator",
    "SmartPaginator",
    "GroupedPaginator",
    "group_by",
    # Controller and listeners
    "PaginationController",
    "ChangeListener",
    "RefreshListener",
    "FilterListener",
    "OrderListener",
    # Models
    "PaginationRequest",
    "PaginationMeta",
    "Page",
    "Initial",
    "Loaded",
    "Error",
    "Group",
    "PaginationState",
    # Runtime
    "RetryConfig",
    "RetryHandler",
    "PageWindow",
    "StateChannel",
    # Errors
    "ErrorKind",
    "classify_error",
    "PagingError",
    "FetchTimeoutError",
    "RetryExhaustedError",
    "UnknownFetchError",
    "EngineDisposedError",
    # Constants
    "DEFAULT_PAGE",
    "DEFAULT_MAX_PAGES_IN_MEMORY",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_INITIAL_DELAY",
    "DEFAULT_MAX_DELAY",
]
