"""Core SQL composition and execution layer."""

from .connection import DatabaseClient, DatabaseConnection
from .dates import (
    get_add_interval_query,
    get_cast_column_query,
    get_date_sql,
    get_date_weekly_sql,
    get_day_diff_query,
    get_search_sql,
    get_timestamp_diff_sql,
    get_timestamp_sql,
)
from .executor import QueryExecutor, get_executor, get_search_parameters
from .filters import (
    get_cohort_query,
    get_date_query,
    get_filter_query,
    get_query_params,
    parse_filters,
)
from .parameterize import parameterize
from .resolver import (
    ConfigurationError,
    ConnectionMode,
    ConnectionResolver,
    get_resolver,
    request_credential,
    reset_resolver,
    sanitize_connection_string,
    set_request_database_url,
)

__all__ = [
    "ConfigurationError",
    "ConnectionMode",
    "ConnectionResolver",
    "DatabaseClient",
    "DatabaseConnection",
    "QueryExecutor",
    "get_add_interval_query",
    "get_cast_column_query",
    "get_cohort_query",
    "get_date_query",
    "get_date_sql",
    "get_date_weekly_sql",
    "get_day_diff_query",
    "get_executor",
    "get_filter_query",
    "get_query_params",
    "get_resolver",
    "get_search_parameters",
    "get_search_sql",
    "get_timestamp_diff_sql",
    "get_timestamp_sql",
    "parameterize",
    "parse_filters",
    "request_credential",
    "reset_resolver",
    "sanitize_connection_string",
    "set_request_database_url",
]
