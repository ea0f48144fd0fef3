"""Pydantic models for configuration, filters and results."""

from .config import DatabaseConfig
from .query import (
    FilterDescriptor,
    Operator,
    PagedResult,
    ParsedFilters,
    QueryOptions,
)

__all__ = [
    "DatabaseConfig",
    "FilterDescriptor",
    "Operator",
    "PagedResult",
    "ParsedFilters",
    "QueryOptions",
]
