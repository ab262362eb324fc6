"""Database driver protocol and data classes for the query builder.

This module defines the interface every driver must implement, along with the
shared data structures for query results and structured driver errors. The
query builder never talks to a database module directly; it compiles a
statement and hands the SQL plus bindings to a driver.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class DatabaseEngine(Enum):
    """Supported SQL dialects."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"
    SQLSERVER = "sqlserver"


@dataclass
class QueryResult:
    """Unified statement result across drivers.

    Attributes:
        rows: Result rows as list of dicts (for SELECT queries)
        row_count: Number of rows returned (SELECT) or affected (INSERT/UPDATE/DELETE)
        columns: Column names from result set
        last_insert_id: Last inserted row ID (for INSERT operations)
        affected_rows: Number of rows affected by INSERT/UPDATE/DELETE
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    columns: list[str] = field(default_factory=list)
    last_insert_id: int | str | None = None
    affected_rows: int = 0


# Type alias for positional query parameters
Params = tuple[Any, ...] | list[Any] | None


class DriverError(Exception):
    """Structured error raised by drivers.

    Carries the three pieces of information the exception taxonomy needs to
    pick a semantic error: the SQLSTATE class, the vendor error code and the
    vendor message.

    Attributes:
        sql_state: Five character SQLSTATE (e.g. "23000"), or None
        driver_code: Vendor specific error code, or None
        message: Vendor error message
    """

    def __init__(
        self,
        sql_state: str | None,
        driver_code: int | str | None,
        message: str,
    ):
        self.sql_state = sql_state
        self.driver_code = driver_code
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"DriverError(sql_state={self.sql_state!r}, "
            f"driver_code={self.driver_code!r}, message={self.message!r})"
        )


@runtime_checkable
class DatabaseDriver(Protocol):
    """Protocol defining the interface for database drivers.

    Drivers are stateful (they hold the physical connection) and synchronous.
    Every call blocks until the database answers.

    Example implementation:
        class MemoryDriver:
            engine = DatabaseEngine.SQLITE

            def execute(self, sql: str, params: Params = None) -> QueryResult:
                cursor = self._conn.execute(sql, params or ())
                return QueryResult(rows=[dict(r) for r in cursor.fetchall()])
    """

    engine: DatabaseEngine

    def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a statement with positional "?" parameters.

        Args:
            sql: SQL statement using "?" placeholders
            params: Positional parameters, in placeholder order

        Returns:
            QueryResult with rows (SELECT) or affected_rows (DML)

        Raises:
            DriverError: If the database rejects the statement
        """
        ...

    def last_insert_id(self) -> int | str | None:
        """Return the id generated by the most recent INSERT."""
        ...

    def quote(self, value: Any) -> str:
        """Quote a value as a SQL literal (diagnostics only)."""
        ...

    def begin_transaction(self) -> None:
        """Begin a transaction.

        Raises:
            DriverError: If the transaction cannot be started
        """
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback the current transaction."""
        ...

    def close(self) -> None:
        """Close the underlying connection. Safe to call multiple times."""
        ...

    @property
    def in_transaction(self) -> bool:
        """Check if currently in a transaction."""
        ...


class DatabaseDriverBase(ABC):
    """Abstract base class for database drivers.

    Provides common functionality and enforces the interface.
    Subclasses must implement all abstract methods.
    """

    engine: DatabaseEngine
    _in_transaction: bool = False
    _last_insert_id: int | str | None = None

    @abstractmethod
    def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a statement."""
        pass

    @abstractmethod
    def begin_transaction(self) -> None:
        """Begin transaction."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit transaction."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Rollback transaction."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close connection."""
        pass

    def last_insert_id(self) -> int | str | None:
        """Return the id recorded by the last execute() call."""
        return self._last_insert_id

    def quote(self, value: Any) -> str:
        """Quote a string literal using standard SQL escaping.

        Drivers whose database uses backslash escapes should override this.
        """
        return "'" + str(value).replace("'", "''") + "'"

    @property
    def in_transaction(self) -> bool:
        """Check if in transaction."""
        return self._in_transaction
