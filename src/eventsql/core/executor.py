"""Raw and paged query execution."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Mapping, Optional, Sequence

from sqlalchemy import ColumnElement, FromClause, func, or_, select
from sqlalchemy.ext.asyncio import AsyncConnection

from eventsql.constants import DEFAULT_PAGE_SIZE
from eventsql.core.connection import DatabaseClient, DatabaseConnection
from eventsql.core.parameterize import parameterize
from eventsql.core.resolver import ConnectionResolver, get_resolver
from eventsql.models.query import PagedResult, QueryOptions
from eventsql.utils import convert_row_to_json_safe, dumps

logger = logging.getLogger(__name__)


def resolve_page_size(page_size: Optional[int]) -> int:
    """None means the default page size; zero or less means no limit."""
    if page_size is None:
        return DEFAULT_PAGE_SIZE
    return int(page_size)


def get_offset(page: int, page_size: int) -> int:
    return page_size * (page - 1)


def get_search_parameters(
    query: Optional[str], columns: Sequence[ColumnElement[Any]]
) -> Optional[ColumnElement[bool]]:
    """
    Case-insensitive "contains" match of ``query`` against any of ``columns``.

    Returns None when there is nothing to search for.
    """
    if not query or not columns:
        return None

    return or_(*(column.ilike(f"%{query}%") for column in columns))


class QueryExecutor:
    """Runs parameterized SQL through the resolved database client."""

    def __init__(self, resolver: Optional[ConnectionResolver] = None):
        """
        Initialize query executor.

        Args:
            resolver: Connection resolver; the process-wide one by default
        """
        self._resolver = resolver

    @property
    def resolver(self) -> ConnectionResolver:
        return self._resolver or get_resolver()

    @asynccontextmanager
    async def client(self) -> AsyncGenerator[DatabaseClient, None]:
        """Resolve a client for this call, disposing it afterwards if unshared."""
        client = self.resolver.get_client()
        await client.initialize()
        try:
            yield client
        finally:
            if not client.shared:
                await client.dispose()

    async def raw_query(
        self,
        sql: str,
        data: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
        read_only: bool = True,
    ) -> list[dict[str, Any]]:
        """
        Execute a SQL template with ``{{ name }}`` placeholders.

        Args:
            sql: SQL template
            data: Placeholder values
            name: Query name for logging
            read_only: Route to the replica when one is configured

        Returns:
            Rows as dictionaries
        """
        async with self.client() as client:
            connection = client.reader() if read_only else client.primary
            return await self._raw_query(connection, sql, data or {}, name)

    async def _raw_query(
        self,
        connection: DatabaseConnection,
        sql: str,
        data: Mapping[str, Any],
        name: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        if connection.config.log_query:
            logger.debug(f"QUERY:\n{sql}")
            logger.debug(f"PARAMETERS:\n{dumps(convert_row_to_json_safe(dict(data)))}")
            logger.debug(f"NAME:\n{name}")

        query, params = parameterize(sql, data)

        async with connection.get_connection() as conn:
            return await self._fetch(conn, query, params)

    async def _fetch(
        self, conn: AsyncConnection, query: str, params: list[Any]
    ) -> list[dict[str, Any]]:
        if params:
            result = await conn.exec_driver_sql(query, tuple(params))
        else:
            result = await conn.exec_driver_sql(query)
        return [dict(row) for row in result.mappings()]

    async def paged_raw_query(
        self,
        query: str,
        query_params: Optional[Mapping[str, Any]] = None,
        options: Optional[QueryOptions] = None,
        name: Optional[str] = None,
    ) -> PagedResult:
        """
        Count the rows of ``query``, then fetch one page of it.

        The count and the page are separate round trips without a shared
        snapshot, so concurrent writes can make them disagree.
        """
        options = options or QueryOptions()
        page = options.page
        size = resolve_page_size(options.page_size)
        base_query = query.rstrip().rstrip(";")

        statements = []
        if options.order_by:
            direction = "desc" if options.sort_descending else "asc"
            statements.append(f"order by {options.order_by} {direction}")
        if size > 0:
            statements.append(f"limit {size} offset {get_offset(page, size)}")

        params = query_params or {}

        async with self.client() as client:
            connection = client.reader()
            count_rows = await self._raw_query(
                connection, f"select count(*) as num from ({base_query}) t", params
            )
            data = await self._raw_query(
                connection, "\n".join([base_query, *statements]), params, name
            )

        return PagedResult(
            data=data,
            count=int(count_rows[0]["num"]),
            page=page,
            page_size=size,
            order_by=options.order_by,
        )

    async def paged_query(
        self,
        model: FromClause,
        criteria: Optional[ColumnElement[bool]] = None,
        options: Optional[QueryOptions] = None,
    ) -> PagedResult:
        """
        Page through a table with a SQLAlchemy where clause.

        Args:
            model: Table (or other selectable) to read from
            criteria: Where clause, e.g. from get_search_parameters
            options: Paging and ordering options

        Returns:
            One page of rows plus the total count for ``criteria``

        Raises:
            KeyError: If ``options.order_by`` is not a column of ``model``
        """
        options = options or QueryOptions()
        page = options.page
        size = resolve_page_size(options.page_size)

        statement = select(model)
        count_statement = select(func.count()).select_from(model)

        if criteria is not None:
            statement = statement.where(criteria)
            count_statement = count_statement.where(criteria)

        if size > 0:
            statement = statement.limit(size).offset(get_offset(page, size))

        if options.order_by:
            column = model.c[options.order_by]
            statement = statement.order_by(
                column.desc() if options.sort_descending else column.asc()
            )

        async with self.client() as client:
            async with client.reader().get_connection() as conn:
                result = await conn.execute(statement)
                data = [dict(row) for row in result.mappings()]
                count = (await conn.execute(count_statement)).scalar_one()

        return PagedResult(
            data=data,
            count=count,
            page=page,
            page_size=size,
            order_by=options.order_by,
            search=options.search,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncConnection, None]:
        """Connection on the primary inside a single transaction."""
        async with self.client() as client:
            async with client.primary.begin() as conn:
                yield conn


_executor: Optional[QueryExecutor] = None


def get_executor() -> QueryExecutor:
    """Process-wide executor bound to the process-wide resolver."""
    global _executor
    if _executor is None:
        _executor = QueryExecutor()
    return _executor
