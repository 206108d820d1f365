"""Data models for requests, metadata and engine state.

Architecture:
    Request and metadata are Pydantic v2 models (frozen, validated).
    Page, Group and the state variants are frozen dataclasses because they
    carry arbitrary caller item types that Pydantic should not validate.

Model Categories:
    - Requests: PaginationRequest
    - Results: PaginationMeta, Page
    - State: Initial, Loaded, Error, Group, PaginationState
"""

from .meta import PaginationMeta
from .page import Page
from .request import PaginationRequest
from .state import Error, Group, Initial, Loaded, PaginationState

__all__ = [
    "PaginationRequest",
    "PaginationMeta",
    "Page",
    "Initial",
    "Loaded",
    "Error",
    "Group",
    "PaginationState",
]
