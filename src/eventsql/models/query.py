"""Filter, query option and paged result models."""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from eventsql.utils.serialization import convert_rows_to_json_safe, dumps


class Operator(str, Enum):
    """Filter operators that translate into SQL predicates."""

    EQUALS = "eq"
    NOT_EQUALS = "neq"
    CONTAINS = "c"
    DOES_NOT_CONTAIN = "dnc"


class FilterDescriptor(BaseModel):
    """A single filter resolved against the column map."""

    name: str = Field(..., description="Filter name as supplied by the caller")
    column: Optional[str] = Field(None, description="Resolved SQL column")
    operator: Union[Operator, str] = Field(
        default=Operator.EQUALS,
        description="Operator; codes outside Operator produce no predicate",
    )
    value: Any = Field(None, description="Filter value with any operator code removed")
    prefix: str = Field(default="", description="Table prefix for the column")


class QueryOptions(BaseModel):
    """Paging, ordering and filter translation options."""

    page: int = Field(default=1, ge=1, description="1-based page number")
    page_size: Optional[int] = Field(
        default=None,
        alias="pageSize",
        description="Rows per page; None for the default, <= 0 for no limit",
    )
    order_by: Optional[str] = Field(None, alias="orderBy", description="Order column")
    sort_descending: bool = Field(default=False, alias="sortDescending")
    search: Optional[str] = Field(None, description="Free-text search term")
    join_session: bool = Field(default=False, alias="joinSession")
    is_cohort: bool = Field(default=False, alias="isCohort")
    prefix: str = Field(default="", description="Table prefix for filter columns")
    columns: Optional[dict[str, str]] = Field(
        None, description="Filter name to column overrides"
    )

    model_config = {"populate_by_name": True}


class ParsedFilters(BaseModel):
    """SQL fragments and parameters derived from a filter set."""

    join_session_query: str = ""
    date_query: str = ""
    filter_query: str = ""
    query_params: dict[str, Any] = Field(default_factory=dict)
    cohort_query: str = ""


class PagedResult(BaseModel):
    """One page of rows plus the total row count."""

    data: list[dict[str, Any]] = Field(..., description="Rows on this page")
    count: int = Field(..., description="Total rows matching the query")
    page: int = Field(..., description="1-based page number")
    page_size: int = Field(..., description="Rows per page (<= 0 when unpaginated)")
    order_by: Optional[str] = Field(None, description="Order column")
    search: Optional[str] = Field(None, description="Search term echoed back")

    @property
    def is_paginated(self) -> bool:
        """Whether a limit was applied."""
        return self.page_size > 0

    @property
    def page_count(self) -> int:
        """Number of pages for the total count."""
        if not self.is_paginated:
            return 1
        return max(1, -(-self.count // self.page_size))

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys for API responses."""
        return {
            "data": convert_rows_to_json_safe(self.data),
            "count": self.count,
            "page": self.page,
            "pageSize": self.page_size,
            "orderBy": self.order_by,
            "search": self.search,
        }

    def to_json(self) -> str:
        return dumps(self.to_dict())
