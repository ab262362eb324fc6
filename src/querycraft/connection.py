"""Connections and the connection registry.

A Connection ties a driver to its configuration, the dialect adapter of
its engine and its lifecycle hooks. A ConnectionRegistry holds named
connections and the default used by builders created without one.

Example:
    registry = ConnectionRegistry()
    registry.add("main", Connection(SqliteDriver.connect(config), config))

    builder = QueryBuilder(registry=registry)
"""

from __future__ import annotations

import logging

from .adapters import BaseAdapter, get_adapter
from .backend import DatabaseDriver, DatabaseEngine, DriverError
from .builder import QueryBuilder
from .config import ConnectionConfig
from .events import EventHandler
from .exceptions import SqlConnectionError, from_driver_error
from .query_object import QueryObject

logger = logging.getLogger(__name__)


class Connection:
    """A driver plus the settings and hooks builders need.

    Attributes:
        driver: Open database driver
        config: Connection settings, or None for an unconfigured driver
        event_handler: Lifecycle hooks fired by builders on this connection
        last_query: Most recent statement compiled for execution
    """

    def __init__(
        self,
        driver: DatabaseDriver,
        config: ConnectionConfig | None = None,
        event_handler: EventHandler | None = None,
    ):
        self.driver = driver
        self.config = config
        self.event_handler = event_handler or EventHandler()
        self.last_query: QueryObject | None = None
        self._apply_session_settings()

    @property
    def engine(self) -> DatabaseEngine:
        return self.driver.engine

    @property
    def prefix(self) -> str | None:
        return self.config.prefix if self.config else None

    @property
    def query_overwriting(self) -> bool:
        return self.config.query_overwriting if self.config else False

    def adapter(self) -> BaseAdapter:
        """Create a fresh dialect adapter for this connection's engine."""
        return get_adapter(self)

    def query_builder(self) -> QueryBuilder:
        return QueryBuilder(self)

    def close(self) -> None:
        self.driver.close()

    def _apply_session_settings(self) -> None:
        """Send SET statements for the configured charset and schema."""
        if self.config is None:
            return

        statements = []
        if self.config.charset and self.engine in (DatabaseEngine.MYSQL, DatabaseEngine.POSTGRESQL):
            statements.append(f"SET NAMES '{self.config.charset}'")
        if self.config.search_path and self.engine == DatabaseEngine.POSTGRESQL:
            statements.append(f"SET search_path TO '{self.config.search_path}'")

        for sql in statements:
            try:
                self.driver.execute(sql)
            except DriverError as e:
                raise from_driver_error(e, self.engine, QueryObject(sql, (), self)) from e
            logger.debug(f"Session setting applied: {sql}")


class ConnectionRegistry:
    """Named connections with an explicit default.

    The first connection added becomes the default until another one is
    chosen with ``set_default`` or ``add(..., default=True)``.
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._default: str | None = None

    def add(self, name: str, connection: Connection, default: bool = False) -> Connection:
        self._connections[name] = connection
        if default or self._default is None:
            self._default = name
        return connection

    def get(self, name: str | None = None) -> Connection:
        """Get a connection by name, or the default connection.

        Raises:
            SqlConnectionError: If the connection is not registered
        """
        key = name if name is not None else self._default
        if key is None or key not in self._connections:
            raise SqlConnectionError(f"Connection '{key}' is not registered", 404)
        return self._connections[key]

    def set_default(self, name: str) -> None:
        """Make a registered connection the default.

        Raises:
            SqlConnectionError: If the connection is not registered
        """
        if name not in self._connections:
            raise SqlConnectionError(f"Connection '{name}' is not registered", 404)
        self._default = name

    @property
    def default(self) -> Connection | None:
        return self._connections.get(self._default) if self._default else None

    @property
    def default_name(self) -> str | None:
        return self._default

    def remove(self, name: str) -> Connection | None:
        """Unregister a connection.

        If it was the default, the earliest remaining connection becomes the
        default.
        """
        connection = self._connections.pop(name, None)
        if self._default == name:
            self._default = next(iter(self._connections), None)
        return connection

    def names(self) -> list[str]:
        return list(self._connections)

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def __len__(self) -> int:
        return len(self._connections)
