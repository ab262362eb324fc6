"""Fluent SQL statement builder with multi-dialect compilation.

This package builds SELECT / INSERT / UPDATE / DELETE statements through a
chained API and compiles them for MySQL, PostgreSQL, SQLite or SQL Server.
Execution goes through a pluggable driver.

Features:
    - Nested boolean criteria, joins, unions and sub-queries
    - Dialect adapters selected by DatabaseEngine
    - Lifecycle hooks per table and event kind
    - Transaction scopes with explicit results
    - Driver errors mapped to semantic exceptions

Usage:
    from querycraft import Connection, ConnectionConfig, SqliteDriver

    config = ConnectionConfig(driver="sqlite", database=":memory:")
    connection = Connection(SqliteDriver.connect(config), config)
    builder = connection.query_builder()

    builder.query("CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT)")
    builder.table("people").insert([{"name": "Ada"}, {"name": "Grace"}])
    count = builder.table("people").where("name", "LIKE", "A%").count()
"""

from .adapters import ADAPTERS, BaseAdapter
from .backend import (
    DatabaseDriver,
    DatabaseDriverBase,
    DatabaseEngine,
    DriverError,
    Params,
    QueryResult,
)
from .builder import QueryBuilder
from .config import ConfigLoader, ConnectionConfig, QueryCraftConfig, build_registry
from .connection import Connection, ConnectionRegistry
from .dbapi_backend import DbApiDriver
from .events import TABLE_ANY, EventArguments, EventHandler, EventKind
from .exceptions import (
    ColumnNotFoundError,
    ConfigurationError,
    DuplicateColumnError,
    DuplicateEntryError,
    DuplicateKeyError,
    ForeignKeyError,
    NotNullError,
    SqlConnectionError,
    SqlError,
    SqlQueryError,
    TableNotFoundError,
    TransactionClosedError,
    from_driver_error,
)
from .join_builder import JoinBuilder, NestedCriteria
from .param_converter import ParamConverter, convert_sql_for_paramstyle
from .query_object import QueryObject
from .raw import Raw
from .sqlite_backend import SqliteDriver
from .statements import QueryKind, UnionType
from .transaction import Transaction, TransactionResult, TransactionStatus

__all__ = [
    # Building
    "QueryBuilder",
    "JoinBuilder",
    "NestedCriteria",
    "Raw",
    "QueryObject",
    "QueryKind",
    "UnionType",
    # Connections
    "Connection",
    "ConnectionRegistry",
    "ConnectionConfig",
    "QueryCraftConfig",
    "ConfigLoader",
    "build_registry",
    # Dialects
    "ADAPTERS",
    "BaseAdapter",
    "DatabaseEngine",
    # Drivers
    "DatabaseDriver",
    "DatabaseDriverBase",
    "DbApiDriver",
    "DriverError",
    "Params",
    "QueryResult",
    "SqliteDriver",
    "ParamConverter",
    "convert_sql_for_paramstyle",
    # Events
    "EventArguments",
    "EventHandler",
    "EventKind",
    "TABLE_ANY",
    # Transactions
    "Transaction",
    "TransactionResult",
    "TransactionStatus",
    # Errors
    "SqlError",
    "ConfigurationError",
    "SqlConnectionError",
    "TransactionClosedError",
    "SqlQueryError",
    "DuplicateColumnError",
    "DuplicateKeyError",
    "DuplicateEntryError",
    "ForeignKeyError",
    "NotNullError",
    "TableNotFoundError",
    "ColumnNotFoundError",
    "from_driver_error",
]
