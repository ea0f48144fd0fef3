"""Translate filter sets into SQL predicates and bind parameters.

Filters are a mapping of filter name to value. A string value may carry an
operator code prefix (``"neq.chrome"``); anything else means equals. Names
with a ``cohort_`` prefix belong to the cohort subquery rather than the main
predicate.

Unknown filter names and unsupported operators are skipped without error.
"""

import logging
import re
from typing import Any, Mapping, Optional, Union

from eventsql.constants import (
    COHORT_PREFIX,
    EVENT_TABLE,
    FILTER_COLUMNS,
    OPERATOR_CODES,
    SESSION_COLUMNS,
    SESSION_TABLE,
)
from eventsql.models.query import (
    FilterDescriptor,
    Operator,
    ParsedFilters,
    QueryOptions,
)

logger = logging.getLogger(__name__)

OPERATOR_VALUE_PATTERN = re.compile(
    r"^(" + "|".join(sorted(OPERATOR_CODES.values(), key=len, reverse=True)) + r")\.(.*)$",
    re.DOTALL,
)

WILDCARD_OPERATORS = (Operator.CONTAINS, Operator.DOES_NOT_CONTAIN)

REFERRER_SELF_EXCLUSION = (
    f"and ({EVENT_TABLE}.referrer_domain != {EVENT_TABLE}.hostname "
    f"or {EVENT_TABLE}.referrer_domain is null)"
)


def to_operator(value: Any) -> Union[Operator, str]:
    """Resolve an operator code or name; unknown values are returned as-is."""
    if isinstance(value, Operator):
        return value

    code = OPERATOR_CODES.get(value, value)
    try:
        return Operator(code)
    except ValueError:
        return code


def parse_parameter_value(value: Any) -> tuple[Union[Operator, str], Any]:
    """Split a raw filter value into (operator, value)."""
    if isinstance(value, Mapping) and "operator" in value:
        return to_operator(value["operator"]), value.get("value")

    if isinstance(value, str):
        match = OPERATOR_VALUE_PATTERN.match(value)
        if match:
            return to_operator(match.group(1)), match.group(2)

    return Operator.EQUALS, value


def filters_to_descriptors(
    filters: Optional[Mapping[str, Any]], options: Optional[QueryOptions] = None
) -> list[FilterDescriptor]:
    """
    Resolve each filter into a descriptor, in mapping order.

    ``None`` values are dropped. Columns come from ``options.columns`` when
    given, else from FILTER_COLUMNS; an unknown name keeps ``column=None``.
    """
    options = options or QueryOptions()
    overrides = options.columns or {}
    descriptors = []

    for name, raw in (filters or {}).items():
        if raw is None:
            continue

        if isinstance(raw, FilterDescriptor):
            descriptors.append(raw)
            continue

        operator, value = parse_parameter_value(raw)
        descriptors.append(
            FilterDescriptor(
                name=name,
                column=overrides.get(name) or FILTER_COLUMNS.get(name),
                operator=operator,
                value=value,
                prefix=options.prefix,
            )
        )

    return descriptors


def map_filter(
    column: str, operator: Union[Operator, str], name: str, type_: str = ""
) -> str:
    """Predicate for one column, or an empty string for unknown operators."""
    value = f"{{{{{name}{f'::{type_}' if type_ else ''}}}}}"

    if operator == Operator.EQUALS:
        return f"{column} = {value}"
    if operator == Operator.NOT_EQUALS:
        return f"{column} != {value}"
    if operator == Operator.CONTAINS:
        return f"{column} ilike {value}"
    if operator == Operator.DOES_NOT_CONTAIN:
        return f"{column} not ilike {value}"
    return ""


def _cohort_column(name: str, options: QueryOptions) -> Optional[str]:
    if not name.startswith(COHORT_PREFIX):
        return None
    base = name[len(COHORT_PREFIX) :]
    return (options.columns or {}).get(base) or FILTER_COLUMNS.get(base)


def get_filter_query(
    filters: Optional[Mapping[str, Any]], options: Optional[QueryOptions] = None
) -> str:
    """
    Build ``and ...`` predicate lines for every filter with a known column.

    In cohort mode the ``cohort_`` prefix is stripped before the column
    lookup, while the placeholder keeps the full name.
    """
    options = options or QueryOptions()
    lines = []

    for descriptor in filters_to_descriptors(filters, options):
        column = descriptor.column
        if options.is_cohort:
            column = _cohort_column(descriptor.name, options)

        if not column:
            continue

        predicate = map_filter(
            f"{descriptor.prefix}{column}", descriptor.operator, descriptor.name
        )
        if predicate:
            lines.append(f"and {predicate}")
        else:
            logger.debug(
                f"No predicate for filter {descriptor.name!r} "
                f"with operator {descriptor.operator!r}"
            )

        if descriptor.name == "referrer":
            lines.append(REFERRER_SELF_EXCLUSION)

    return "\n".join(lines)


def get_query_params(filters: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """
    Placeholder values for a filter set.

    Operator codes are stripped and contains / does-not-contain values are
    wrapped as ``%value%``. Keys that are not filters (dates, ids) pass
    through unchanged.
    """
    params = dict(filters or {})

    for descriptor in filters_to_descriptors(filters):
        value = descriptor.value
        if descriptor.operator in WILDCARD_OPERATORS:
            value = f"%{value}%"
        params[descriptor.name] = value

    return params


def get_date_query(filters: Mapping[str, Any]) -> str:
    start_date = filters.get("startDate")
    end_date = filters.get("endDate")

    if start_date:
        if end_date:
            return f"and {EVENT_TABLE}.created_at between {{{{startDate}}}} and {{{{endDate}}}}"
        return f"and {EVENT_TABLE}.created_at >= {{{{startDate}}}}"

    return ""


def get_cohort_query(filters: Optional[Mapping[str, Any]] = None) -> str:
    """
    Join restricting events to sessions from an independently filtered cohort.

    ``filters`` holds only ``cohort_`` keys, including ``cohort_startDate``
    and ``cohort_endDate``. Returns an empty string when there are none.
    """
    if not filters:
        return ""

    filter_query = get_filter_query(filters, QueryOptions(is_cohort=True))

    return f"""join
    (select distinct {EVENT_TABLE}.session_id
    from {EVENT_TABLE}
    join {SESSION_TABLE} on {SESSION_TABLE}.session_id = {EVENT_TABLE}.session_id
      and {SESSION_TABLE}.website_id = {EVENT_TABLE}.website_id
    where {EVENT_TABLE}.website_id = {{{{websiteId}}}}
      and {EVENT_TABLE}.created_at between {{{{cohort_startDate}}}} and {{{{cohort_endDate}}}}
      {filter_query}
    ) cohort
    on cohort.session_id = {EVENT_TABLE}.session_id
    """


def parse_filters(
    filters: Optional[Mapping[str, Any]], options: Optional[QueryOptions] = None
) -> ParsedFilters:
    """
    Derive every SQL fragment and the parameter map for a filter set.

    Args:
        filters: Filter name to value, including dates and cohort filters
        options: Translation options for the primary predicate

    Returns:
        ParsedFilters with session join, date, filter and cohort fragments
    """
    filters = filters or {}
    options = options or QueryOptions()

    session_keys = {"referrer", *SESSION_COLUMNS}
    join_session = options.join_session or any(key in session_keys for key in filters)

    cohort_filters = {
        key: value for key, value in filters.items() if key.startswith(COHORT_PREFIX)
    }

    join_session_query = ""
    if join_session:
        join_session_query = (
            f"inner join {SESSION_TABLE} "
            f"on {EVENT_TABLE}.session_id = {SESSION_TABLE}.session_id "
            f"and {EVENT_TABLE}.website_id = {SESSION_TABLE}.website_id"
        )

    return ParsedFilters(
        join_session_query=join_session_query,
        date_query=get_date_query(filters),
        filter_query=get_filter_query(filters, options),
        query_params=get_query_params(filters),
        cohort_query=get_cohort_query(cohort_filters),
    )
