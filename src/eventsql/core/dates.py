"""PostgreSQL date and time expression builders.

These functions only build SQL text; nothing is executed. Field and unit
arguments are trusted identifiers, never user input.
"""

from typing import Optional

# Bucket labels in the requested timezone
DATE_FORMATS = {
    "minute": "YYYY-MM-DD HH24:MI:00",
    "hour": "YYYY-MM-DD HH24:00:00",
    "day": "YYYY-MM-DD HH24:00:00",
    "month": "YYYY-MM-01 HH24:00:00",
    "year": "YYYY-01-01 HH24:00:00",
}

# Bucket labels in UTC, ISO 8601 with a Z suffix
DATE_FORMATS_UTC = {
    "minute": 'YYYY-MM-DD"T"HH24:MI:00"Z"',
    "hour": 'YYYY-MM-DD"T"HH24:00:00"Z"',
    "day": 'YYYY-MM-DD"T"HH24:00:00"Z"',
    "month": 'YYYY-MM-01"T"HH24:00:00"Z"',
    "year": 'YYYY-01-01"T"HH24:00:00"Z"',
}


def is_utc(timezone: Optional[str]) -> bool:
    """True when no timezone conversion is needed."""
    return not timezone or timezone.lower() == "utc"


def get_add_interval_query(field: str, interval: str) -> str:
    return f"{field} + interval '{interval}'"


def get_day_diff_query(field1: str, field2: str) -> str:
    return f"{field1}::date - {field2}::date"


def get_cast_column_query(field: str, type_: str) -> str:
    return f"{field}::{type_}"


def get_date_sql(field: str, unit: str, timezone: Optional[str] = None) -> str:
    """
    Truncate ``field`` to ``unit`` and format it as a bucket label.

    With a non-UTC timezone the value is converted first and labelled
    without a zone marker; otherwise the label carries a trailing ``Z``.

    Raises:
        ValueError: If ``unit`` is not minute, hour, day, month or year
    """
    if unit not in DATE_FORMATS:
        raise ValueError(
            f"Unsupported date unit: {unit}. Supported: {', '.join(DATE_FORMATS)}"
        )

    if not is_utc(timezone):
        return (
            f"to_char(date_trunc('{unit}', {field} at time zone '{timezone}'), "
            f"'{DATE_FORMATS[unit]}')"
        )

    return f"to_char(date_trunc('{unit}', {field}), '{DATE_FORMATS_UTC[unit]}')"


def get_date_weekly_sql(field: str, timezone: Optional[str] = None) -> str:
    """Day-of-week and hour bucket ("<dow>:<HH>") for weekly heatmaps."""
    zone = timezone or "utc"
    local = f"({field} at time zone '{zone}')"
    return f"concat(extract(dow from {local}), ':', to_char({local}, 'HH24'))"


def get_timestamp_sql(field: str) -> str:
    return f"floor(extract(epoch from {field}))"


def get_timestamp_diff_sql(field1: str, field2: str) -> str:
    """Whole seconds elapsed from ``field1`` to ``field2``."""
    return f"floor(extract(epoch from ({field2} - {field1})))"


def get_search_sql(column: str, param: str = "search") -> str:
    return f"and {column} ilike {{{{{param}}}}}"
