"""Module Tests against a live PostgreSQL database

Exercises the full path from filter set to rows:
- Positional parameters, casts and repeated placeholders on asyncpg
- Date bucket labels
- Paged raw queries and paged table queries
- Search path from the ``schema`` URL parameter

Requires PG_TEST_DATABASE_URL; skipped otherwise.
"""

import uuid

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, text

from eventsql.core import (
    ConnectionResolver,
    DatabaseConnection,
    QueryExecutor,
    get_date_sql,
    get_search_parameters,
    parse_filters,
)
from eventsql.models.config import DatabaseConfig
from eventsql.models.query import QueryOptions
from fakes import make_env

pytestmark = [pytest.mark.postgresql, pytest.mark.integration]


class TestRawQuery:
    async def test_positional_parameters(self, pg_executor: QueryExecutor):
        rows = await pg_executor.raw_query(
            "select {{a::int}} + {{b::int}} as total, {{a::int}} as again",
            {"a": 2, "b": 3},
        )

        assert rows == [{"total": 5, "again": 2}]

    async def test_missing_value_is_null(self, pg_executor: QueryExecutor):
        rows = await pg_executor.raw_query("select {{missing::text}} as v", {})
        assert rows == [{"v": None}]

    async def test_date_buckets(self, pg_executor: QueryExecutor):
        field = "timestamp '2024-03-10 23:30:00'"

        rows = await pg_executor.raw_query(
            f"select {get_date_sql(field, 'day')} as day, "
            f"{get_date_sql(field, 'month')} as month"
        )

        assert rows[0]["day"] == "2024-03-10T00:00:00Z"
        assert rows[0]["month"] == "2024-03-01T00:00:00Z"


class TestPagedQueries:
    async def test_paged_raw_query(self, pg_executor: QueryExecutor):
        result = await pg_executor.paged_raw_query(
            "select n from generate_series(1, {{total::int}}) as n",
            {"total": 45},
            QueryOptions(page=3, page_size=10, order_by="n"),
        )

        assert result.count == 45
        assert [row["n"] for row in result.data] == list(range(21, 31))

    async def test_unpaginated_raw_query(self, pg_executor: QueryExecutor):
        result = await pg_executor.paged_raw_query(
            "select n from generate_series(1, 30) as n",
            {},
            QueryOptions(page_size=0),
        )

        assert result.count == 30
        assert len(result.data) == 30

    async def test_paged_table_query(self, pg_executor: QueryExecutor):
        name = f"website_{uuid.uuid4().hex[:8]}"
        website = Table(
            name,
            MetaData(),
            Column("id", Integer, primary_key=True),
            Column("domain", String),
        )

        async with pg_executor.transaction() as conn:
            await conn.execute(
                text(f"create table {name} (id int primary key, domain text)")
            )
            await conn.execute(
                text(f"insert into {name} select n, 'site' || n || '.com' from generate_series(1, 25) n")
            )

        try:
            result = await pg_executor.paged_query(
                website,
                get_search_parameters("SITE1", [website.c.domain]),
                QueryOptions(page=2, page_size=5, order_by="id", sort_descending=True),
            )

            # site1.com and site10..site19.com
            assert result.count == 11
            assert [row["id"] for row in result.data] == [14, 13, 12, 11, 10]
        finally:
            async with pg_executor.transaction() as conn:
                await conn.execute(text(f"drop table {name}"))


class TestFiltersEndToEnd:
    async def test_filters_against_inline_events(self, pg_executor: QueryExecutor):
        parsed = parse_filters({"browser": "neq.chrome", "path": "c./docs"})
        query = f"""
            select count(*) as num from (
                values ('firefox', '/docs/a'), ('chrome', '/docs/b'), ('safari', '/blog')
            ) as website_event(browser, url_path)
            where true
            {parsed.filter_query}
        """

        rows = await pg_executor.raw_query(query, parsed.query_params)

        assert rows[0]["num"] == 1


class TestSearchPath:
    async def test_schema_parameter_sets_search_path(self, pg_database_url):
        if not pg_database_url:
            pytest.skip("PG_TEST_DATABASE_URL not set in environment")

        separator = "&" if "?" in pg_database_url else "?"
        config = DatabaseConfig(url=f"{pg_database_url}{separator}schema=pg_catalog")

        async with DatabaseConnection(config) as connection:
            async with connection.get_connection() as conn:
                result = await conn.execute(text("show search_path"))
                assert result.scalar_one().strip('"') == "pg_catalog"

    async def test_dynamic_credential_gets_own_client(self, pg_database_url):
        if not pg_database_url:
            pytest.skip("PG_TEST_DATABASE_URL not set in environment")

        resolver = ConnectionResolver(
            credential_provider=lambda: pg_database_url, getenv=make_env()
        )
        executor = QueryExecutor(resolver)

        rows = await executor.raw_query("select 1 as one")

        assert rows == [{"one": 1}]
        assert resolver.state.client is None
