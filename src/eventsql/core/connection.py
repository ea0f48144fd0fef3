"""Database connection management with SQLAlchemy."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from eventsql.models.config import DatabaseConfig

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Manages one SQLAlchemy async engine and its session settings."""

    def __init__(
        self,
        config: DatabaseConfig,
        url: Optional[str] = None,
        pooled: bool = True,
    ):
        """
        Initialize database connection.

        Args:
            config: Database configuration with pool and session settings
            url: Connection URL to use instead of ``config.url`` (replicas)
            pooled: Keep a connection pool; per-request connections don't
        """
        self.config = config
        self.url = url or config.url
        self.pooled = pooled
        self.engine: Optional[AsyncEngine] = None

    async def initialize(self) -> None:
        """Create the async engine. Safe to call more than once."""
        if self.engine is not None:
            return

        engine_url = self.config.engine_url(self.url)
        connect_args = self.config.connect_args(self.url)

        if self.pooled:
            self.engine = create_async_engine(
                engine_url,
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=self.config.pool_timeout,
                pool_pre_ping=True,
                echo=self.config.log_query,
                connect_args=connect_args,
            )
        else:
            self.engine = create_async_engine(
                engine_url,
                poolclass=NullPool,
                echo=self.config.log_query,
                connect_args=connect_args,
            )

    async def dispose(self) -> None:
        """Dispose of the connection pool and cleanup resources."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None

    @asynccontextmanager
    async def get_connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Get a connection as an async context manager.

        Session settings (search path, read-only, timeout) are applied on
        checkout. Work is committed when the block exits cleanly.

        Raises:
            RuntimeError: If engine not initialized
        """
        if self.engine is None:
            raise RuntimeError(
                "DatabaseConnection not initialized. Call initialize() first."
            )

        async with self.engine.connect() as conn:
            await self._prepare(conn)
            yield conn
            if conn.in_transaction():
                await conn.commit()

    @asynccontextmanager
    async def begin(self) -> AsyncGenerator[AsyncConnection, None]:
        """Connection inside a transaction that commits or rolls back on exit."""
        if self.engine is None:
            raise RuntimeError(
                "DatabaseConnection not initialized. Call initialize() first."
            )

        async with self.engine.begin() as conn:
            await self._prepare(conn)
            yield conn

    async def _prepare(self, conn: AsyncConnection) -> None:
        if self.schema:
            await self._set_search_path(conn, self.schema)

        if self.config.read_only:
            await conn.execute(
                text("SET SESSION CHARACTERISTICS AS TRANSACTION READ ONLY")
            )

        if self.config.statement_timeout:
            await self._set_timeout(conn, self.config.statement_timeout)

    async def _set_search_path(self, conn: AsyncConnection, schema: str) -> None:
        """Point unqualified table names at ``schema`` for this session."""
        quoted = schema.replace('"', '""')
        await conn.execute(text(f'SET search_path TO "{quoted}"'))

    async def _set_timeout(self, conn: AsyncConnection, timeout: int) -> None:
        await conn.execute(text(f"SET statement_timeout = {timeout * 1000}"))

    @property
    def schema(self) -> Optional[str]:
        """Schema from the connection URL, if any."""
        return self.config.schema_name

    @property
    def is_initialized(self) -> bool:
        """Check if engine is initialized."""
        return self.engine is not None

    async def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            async with self.get_connection() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.warning("Database connectivity check failed", exc_info=True)
            return False

    async def __aenter__(self) -> "DatabaseConnection":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.dispose()


class DatabaseClient:
    """Primary connection plus an optional read replica."""

    def __init__(self, config: DatabaseConfig, shared: bool = True):
        """
        Initialize the client.

        Args:
            config: Configuration for the primary (and replica) connection
            shared: Whether the client is cached process-wide. Unshared
                clients skip pooling and are disposed after use.
        """
        self.config = config
        self.shared = shared
        self.primary = DatabaseConnection(config, pooled=shared)
        self.replica: Optional[DatabaseConnection] = None

        if config.replica_url:
            self.replica = DatabaseConnection(
                config, url=config.replica_url, pooled=shared
            )

    @property
    def has_replica(self) -> bool:
        return self.replica is not None

    def reader(self) -> DatabaseConnection:
        """Connection for read-only queries: the replica when configured."""
        return self.replica or self.primary

    async def initialize(self) -> None:
        if self.primary.is_initialized:
            return

        await self.primary.initialize()
        if self.replica is not None:
            await self.replica.initialize()
            logger.debug("Database client initialized (with replica)")
        else:
            logger.debug("Database client initialized")

    async def dispose(self) -> None:
        await self.primary.dispose()
        if self.replica is not None:
            await self.replica.dispose()
