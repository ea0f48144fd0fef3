"""Pytest configuration and shared fixtures for eventsql tests"""

import os
import sys
from typing import AsyncGenerator, Optional

import pytest
from dotenv import load_dotenv

from eventsql.core import ConnectionResolver, DatabaseConnection, QueryExecutor
from eventsql.models.config import DatabaseConfig
from fakes import FakeClient, FakeConnection, FakeDatabaseConnection, make_env, make_executor

# Load environment variables
load_dotenv()

# Fix for Windows: asyncpg requires SelectorEventLoop on Windows
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())  # type: ignore[attr-defined]


# ==================== Fake Fixtures ====================


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_client(fake_conn: FakeConnection) -> FakeClient:
    return FakeClient(FakeDatabaseConnection(fake_conn))


@pytest.fixture
def executor(fake_client: FakeClient) -> QueryExecutor:
    return make_executor(fake_client)


# ==================== PostgreSQL Fixtures ====================


@pytest.fixture(scope="session")
def pg_database_url() -> Optional[str]:
    """PostgreSQL test database URL from environment"""
    return os.getenv("PG_TEST_DATABASE_URL")


@pytest.fixture
async def pg_config(pg_database_url: Optional[str]) -> DatabaseConfig:
    """PostgreSQL database configuration"""
    if not pg_database_url:
        pytest.skip("PG_TEST_DATABASE_URL not set in environment")
    return DatabaseConfig(url=pg_database_url)


@pytest.fixture
async def pg_connection(
    pg_config: DatabaseConfig,
) -> AsyncGenerator[DatabaseConnection, None]:
    """PostgreSQL database connection with proper cleanup"""
    connection = DatabaseConnection(pg_config)
    await connection.initialize()
    try:
        yield connection
    finally:
        await connection.dispose()


@pytest.fixture
async def pg_executor(
    pg_database_url: Optional[str],
) -> AsyncGenerator[QueryExecutor, None]:
    """Executor on a static resolver pointed at the test database"""
    if not pg_database_url:
        pytest.skip("PG_TEST_DATABASE_URL not set in environment")

    resolver = ConnectionResolver(
        credential_provider=lambda: None,
        getenv=make_env(DATABASE_URL=pg_database_url),
    )
    try:
        yield QueryExecutor(resolver)
    finally:
        await resolver.dispose()


# ==================== Pytest Configuration ====================


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "postgresql: PostgreSQL-specific tests")
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring database"
    )
