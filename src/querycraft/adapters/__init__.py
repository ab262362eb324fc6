"""Dialect adapters, selected by DatabaseEngine.

Example:
    adapter_class = ADAPTERS[DatabaseEngine.POSTGRESQL]
    sql, bindings = adapter_class(connection).select(builder.get_statements())
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..backend import DatabaseEngine
from .base import BaseAdapter, concatenate
from .mysql import MysqlAdapter
from .postgres import PostgresAdapter
from .sqlite import SqliteAdapter
from .sqlserver import SqlServerAdapter

if TYPE_CHECKING:
    from ..connection import Connection

ADAPTERS: dict[DatabaseEngine, type[BaseAdapter]] = {
    DatabaseEngine.MYSQL: MysqlAdapter,
    DatabaseEngine.POSTGRESQL: PostgresAdapter,
    DatabaseEngine.SQLITE: SqliteAdapter,
    DatabaseEngine.SQLSERVER: SqlServerAdapter,
}


def get_adapter(connection: Connection) -> BaseAdapter:
    """Create a fresh adapter for the connection's engine."""
    return ADAPTERS[DatabaseEngine(connection.engine)](connection)


__all__ = [
    "ADAPTERS",
    "BaseAdapter",
    "MysqlAdapter",
    "PostgresAdapter",
    "SqlServerAdapter",
    "SqliteAdapter",
    "concatenate",
    "get_adapter",
]
