"""Pagination engines."""

from .base import BasePaginator
from .grouped import GroupedPaginator, group_by
from .single import SmartPaginator

__all__ = ["BasePaginator", "SmartPaginator", "GroupedPaginator", "group_by"]
