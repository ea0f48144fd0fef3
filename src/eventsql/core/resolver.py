"""Resolve the active connection string and database client.

Two credential sources are consulted on every call:

1. A request-scoped connection string, set per inbound request by the
   hosting layer (see ``request_credential``).
2. The static ``DATABASE_URL`` setting.

A static client is built once and shared by the whole process. A
request-scoped credential gets a fresh client on every resolution that is
never published to the shared cache, so one request's credential cannot be
reused by another.
"""

import logging
import os
from contextlib import contextmanager
from contextvars import ContextVar, Token
from enum import Enum
from typing import Callable, Iterator, Optional

from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import ArgumentError

from eventsql.core.connection import DatabaseClient
from eventsql.models.config import DatabaseConfig

logger = logging.getLogger(__name__)

INVALID_CONNECTION_STRING = "[invalid-connection-string]"

request_database_url: ContextVar[Optional[str]] = ContextVar(
    "request_database_url", default=None
)


class ConfigurationError(RuntimeError):
    """No connection string is available from any source."""


class ConnectionMode(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"


def get_request_database_url() -> Optional[str]:
    """Connection string bound to the current request, if any."""
    return request_database_url.get()


def set_request_database_url(url: Optional[str]) -> Token:
    """Bind ``url`` for the current context; pass the token to ``reset``."""
    return request_database_url.set(url)


@contextmanager
def request_credential(url: Optional[str]) -> Iterator[None]:
    """Bind ``url`` as the request-scoped connection string for this block."""
    token = set_request_database_url(url)
    try:
        yield
    finally:
        request_database_url.reset(token)


def normalize_string(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    normalized = value.strip()
    return normalized or None


def sanitize_connection_string(value: str) -> str:
    """Mask credentials in a connection string for logging."""
    try:
        url = make_url(value)
    except (ArgumentError, ValueError):
        return INVALID_CONNECTION_STRING

    if not url.username and not url.password:
        return url.render_as_string(hide_password=False)

    # URL.set would percent-encode the mask
    bare = URL.create(
        url.drivername,
        host=url.host,
        port=url.port,
        database=url.database,
        query=url.query,
    ).render_as_string(hide_password=False)
    scheme, _, rest = bare.partition("://")
    mask = "***:***" if url.password else "***"

    return f"{scheme}://{mask}@{rest}"


class ConnectionState:
    """Process-wide resolution state: current mode and the shared client."""

    def __init__(self) -> None:
        self.mode: Optional[ConnectionMode] = None
        self.static_url: Optional[str] = None
        self.dynamic_url: Optional[str] = None
        self.client: Optional[DatabaseClient] = None

    @property
    def is_resolved(self) -> bool:
        return self.mode is not None


class ConnectionResolver:
    """Decides which connection string and client each call uses."""

    def __init__(
        self,
        credential_provider: Callable[[], Optional[str]] = get_request_database_url,
        getenv: Callable[[str], Optional[str]] = os.getenv,
    ):
        """
        Initialize the resolver.

        Args:
            credential_provider: Returns the request-scoped connection string
                or None outside a request
            getenv: Environment lookup for static settings
        """
        self.credential_provider = credential_provider
        self.getenv = getenv
        self.state = ConnectionState()

    def get_dynamic_connection_string(self) -> Optional[str]:
        return normalize_string(self.credential_provider())

    def get_connection_string(self) -> str:
        """
        Resolve the connection string for the current call.

        Raises:
            ConfigurationError: If neither source provides a value
        """
        url, _ = self._resolve()
        return url

    def _resolve(self) -> tuple[str, ConnectionMode]:
        """Connection string and the mode it was resolved in.

        ``state.mode`` is shared between concurrent callers and only records
        the latest resolution; callers branch on the returned mode.
        """
        dynamic_url = self.get_dynamic_connection_string()

        if dynamic_url:
            self.state.mode = ConnectionMode.DYNAMIC
            if self.state.dynamic_url != dynamic_url:
                logger.info(
                    "Database URL resolved from request context: "
                    f"{sanitize_connection_string(dynamic_url)}"
                )
                self.state.dynamic_url = dynamic_url
            return dynamic_url, ConnectionMode.DYNAMIC

        self.state.mode = ConnectionMode.STATIC

        if self.state.static_url:
            return self.state.static_url, ConnectionMode.STATIC

        static_url = normalize_string(self.getenv("DATABASE_URL"))

        if static_url:
            self.state.static_url = static_url
            logger.info(
                "Database URL resolved from DATABASE_URL: "
                f"{sanitize_connection_string(static_url)}"
            )
            return static_url, ConnectionMode.STATIC

        raise ConfigurationError(
            "DATABASE_URL is not defined and no request-scoped connection "
            "string is available."
        )

    def _build_config(self, url: str) -> DatabaseConfig:
        return DatabaseConfig.from_env(url=url, getenv=self.getenv)

    def get_config(self) -> DatabaseConfig:
        """Configuration for the connection string resolved right now."""
        return self._build_config(self.get_connection_string())

    def get_schema(self) -> Optional[str]:
        return self.get_config().schema_name

    def get_client(self) -> DatabaseClient:
        """
        Client for the current call.

        Static mode returns the shared client, building it on first use.
        Dynamic mode always builds an unshared client.
        """
        url, mode = self._resolve()

        if mode is ConnectionMode.DYNAMIC:
            return DatabaseClient(self._build_config(url), shared=False)

        if self.state.client is None:
            self.state.client = DatabaseClient(self._build_config(url), shared=True)
            logger.debug("Shared database client created")

        return self.state.client

    async def dispose(self) -> None:
        """Dispose of the shared client."""
        if self.state.client is not None:
            await self.state.client.dispose()
            self.state.client = None


_resolver: Optional[ConnectionResolver] = None


def get_resolver() -> ConnectionResolver:
    """Process-wide resolver, created on first use."""
    global _resolver
    if _resolver is None:
        _resolver = ConnectionResolver()
    return _resolver


async def reset_resolver() -> None:
    """Dispose of and forget the process-wide resolver."""
    global _resolver
    if _resolver is not None:
        await _resolver.dispose()
    _resolver = None
