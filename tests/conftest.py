"""Shared test configuration for querycraft tests.

Provides:
- FakeDriver: records every executed statement and transaction call
- A MySQL connection with table prefix ``cb_`` on top of FakeDriver
- An in-memory SQLite connection for integration tests
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from querycraft import (
    Connection,
    ConnectionConfig,
    DatabaseDriverBase,
    DatabaseEngine,
    DriverError,
    Params,
    QueryBuilder,
    QueryResult,
    SqliteDriver,
)


class FakeDriver(DatabaseDriverBase):
    """In-memory driver that records calls instead of talking to a database.

    Attributes:
        executed: (sql, params) pairs in execution order
        rows: Rows returned for SELECT statements
        affected_rows: Affected row count reported for other statements
        fail_with: DriverError raised by the next execute() call
        begin_count / commit_count / rollback_count: Transaction call counters
    """

    def __init__(self, engine: DatabaseEngine = DatabaseEngine.MYSQL):
        self.engine = engine
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.rows: list[dict[str, Any]] = []
        self.affected_rows = 1
        self.fail_with: DriverError | None = None
        self.begin_count = 0
        self.commit_count = 0
        self.rollback_count = 0
        self.closed = False
        self._in_transaction = False
        self._last_insert_id = None
        self._next_id = 0

    def execute(self, sql: str, params: Params = None) -> QueryResult:
        self.executed.append((sql, tuple(params or ())))
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

        if sql.startswith(("SELECT", "(")):
            rows = [dict(row) for row in self.rows]
            return QueryResult(rows=rows, row_count=len(rows), columns=list(rows[0]) if rows else [])

        if sql.startswith(("INSERT", "REPLACE")) and self.affected_rows == 1:
            self._next_id += 1
            self._last_insert_id = self._next_id
        return QueryResult(row_count=self.affected_rows, affected_rows=self.affected_rows)

    def begin_transaction(self) -> None:
        self.begin_count += 1
        self._in_transaction = True

    def commit(self) -> None:
        self.commit_count += 1
        self._in_transaction = False

    def rollback(self) -> None:
        self.rollback_count += 1
        self._in_transaction = False

    def close(self) -> None:
        self.closed = True

    @property
    def statements(self) -> list[str]:
        """Executed SQL without parameters."""
        return [sql for sql, _ in self.executed]


def make_config(engine: DatabaseEngine, prefix: str | None = None) -> ConnectionConfig:
    """Build a valid config for any engine."""
    if engine == DatabaseEngine.SQLITE:
        return ConnectionConfig(driver=engine, database=":memory:", prefix=prefix)
    return ConnectionConfig(driver=engine, host="localhost", prefix=prefix)


@pytest.fixture
def driver() -> FakeDriver:
    """Recording MySQL driver."""
    return FakeDriver()


@pytest.fixture
def connection(driver: FakeDriver) -> Connection:
    """MySQL connection with table prefix cb_."""
    return Connection(driver, make_config(DatabaseEngine.MYSQL, prefix="cb_"))


@pytest.fixture
def builder(connection: Connection) -> QueryBuilder:
    """Empty builder on the prefixed MySQL connection."""
    return QueryBuilder(connection)


@pytest.fixture
def dialect_builder() -> Callable[..., QueryBuilder]:
    """Factory for builders on a FakeDriver speaking the given dialect."""

    def factory(engine: DatabaseEngine, prefix: str | None = None) -> QueryBuilder:
        return QueryBuilder(Connection(FakeDriver(engine), make_config(engine, prefix)))

    return factory


@pytest.fixture
def sqlite_connection() -> Iterator[Connection]:
    """In-memory SQLite connection with an ``animal`` table."""
    config = ConnectionConfig(driver="sqlite", database=":memory:")
    connection = Connection(SqliteDriver.connect(config), config)
    connection.query_builder().query(
        "CREATE TABLE animal (id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "name TEXT NOT NULL UNIQUE, number_of_legs INTEGER NOT NULL)"
    )
    yield connection
    connection.close()
