"""
eventsql - SQL composition and execution for event analytics on PostgreSQL

Turns filter sets into parameterized SQL, builds time-bucketed and cohort
queries, paginates results, and resolves the database connection per call.
"""

__version__ = "1.0.0"

from eventsql.core import (
    ConfigurationError,
    ConnectionResolver,
    QueryExecutor,
    get_executor,
    parameterize,
    parse_filters,
    request_credential,
)
from eventsql.models import (
    DatabaseConfig,
    FilterDescriptor,
    Operator,
    PagedResult,
    ParsedFilters,
    QueryOptions,
)

__all__ = [
    "ConfigurationError",
    "ConnectionResolver",
    "DatabaseConfig",
    "FilterDescriptor",
    "Operator",
    "PagedResult",
    "ParsedFilters",
    "QueryExecutor",
    "QueryOptions",
    "get_executor",
    "parameterize",
    "parse_filters",
    "request_credential",
]
