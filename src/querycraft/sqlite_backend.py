"""SQLite driver implementation.

This module provides the SQLite driver using the stdlib sqlite3 module.
The query builder compiles "?" placeholders, which is sqlite3's native
paramstyle, so no placeholder conversion is needed.

Features:
    - Foreign key enforcement enabled by default
    - Automatic busy_timeout for lock contention handling
    - Path validation and parent directory creation
    - PRAGMA configuration via options
    - sqlite3 errors translated to structured DriverError values
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .backend import DatabaseDriverBase, DatabaseEngine, DriverError, Params, QueryResult

if TYPE_CHECKING:
    from .config import ConnectionConfig

logger = logging.getLogger(__name__)

# Primary result code for constraint violations (sqlite3.h SQLITE_CONSTRAINT)
SQLITE_CONSTRAINT = 19


def _to_driver_error(exc: sqlite3.Error) -> DriverError:
    """Translate a sqlite3 exception into a DriverError.

    Integrity errors report SQLSTATE 23000 like PDO does; everything else
    is reported as the general error class HY000. The driver code is the
    primary result code (extended codes are masked down).
    """
    code = getattr(exc, "sqlite_errorcode", None)
    if isinstance(exc, sqlite3.IntegrityError):
        primary = (code & 0xFF) if code is not None else SQLITE_CONSTRAINT
        return DriverError("23000", primary, str(exc))
    primary = (code & 0xFF) if code is not None else 1
    return DriverError("HY000", primary, str(exc))


class SqliteDriver(DatabaseDriverBase):
    """SQLite driver using stdlib sqlite3.

    Autocommit is handled by the driver: statements executed outside an
    explicit transaction are committed immediately.

    Attributes:
        engine: DatabaseEngine.SQLITE
        DEFAULT_PRAGMAS: Default PRAGMA settings applied on connection

    Example:
        driver = SqliteDriver.connect(ConnectionConfig(driver="sqlite", database=":memory:"))
        result = driver.execute("SELECT * FROM users WHERE id = ?", (42,))
        driver.close()
    """

    engine = DatabaseEngine.SQLITE

    DEFAULT_PRAGMAS: dict[str, str | int] = {
        "busy_timeout": 30000,
        "foreign_keys": "ON",
    }

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Wrap an open sqlite3 connection."""
        self._conn: sqlite3.Connection | None = conn
        self._conn.row_factory = sqlite3.Row
        self._in_transaction = False
        self._last_insert_id = None

    @classmethod
    def connect(cls, config: ConnectionConfig) -> SqliteDriver:
        """Connect to a SQLite database.

        Creates parent directories for file databases. Applies PRAGMA settings
        from config.options["sqlite_pragmas"] on top of the defaults.

        Args:
            config: Connection configuration; ``database`` is the file path

        Returns:
            Connected driver

        Raises:
            DriverError: If the database file cannot be opened
        """
        path = config.database
        if path is None:
            raise ValueError("SQLite requires 'database' parameter")

        if path != ":memory:" and not path.startswith(":"):
            Path(path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(path, isolation_level=None)
        except sqlite3.Error as e:
            raise _to_driver_error(e) from e

        driver = cls(conn)

        pragmas = {**cls.DEFAULT_PRAGMAS}
        if config.options.get("sqlite_pragmas"):
            pragmas.update(config.options["sqlite_pragmas"])

        for pragma, value in pragmas.items():
            try:
                conn.execute(f"PRAGMA {pragma}={value}")
            except sqlite3.Error as e:
                logger.warning(f"Failed to set PRAGMA {pragma}={value}: {e}")

        logger.debug(f"Connected to SQLite database: {path}")
        return driver

    def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a statement and return rows or affected counts.

        Raises:
            DriverError: If sqlite3 rejects the statement
        """
        conn = self._ensure_connected()
        try:
            cursor = conn.execute(sql, tuple(params or ()))
            rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []
        except sqlite3.Error as e:
            raise _to_driver_error(e) from e

        columns = [desc[0] for desc in cursor.description] if cursor.description else []
        affected = cursor.rowcount if cursor.rowcount > 0 else 0
        if cursor.lastrowid:
            self._last_insert_id = cursor.lastrowid

        return QueryResult(
            rows=rows,
            row_count=len(rows) if cursor.description else affected,
            columns=columns,
            last_insert_id=cursor.lastrowid or None,
            affected_rows=affected,
        )

    def begin_transaction(self) -> None:
        """Begin a deferred transaction."""
        conn = self._ensure_connected()
        try:
            conn.execute("BEGIN")
        except sqlite3.Error as e:
            raise _to_driver_error(e) from e
        self._in_transaction = True
        logger.debug("Started transaction")

    def commit(self) -> None:
        """Commit the current transaction."""
        conn = self._ensure_connected()
        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise _to_driver_error(e) from e
        finally:
            self._in_transaction = conn.in_transaction
        logger.debug("Committed transaction")

    def rollback(self) -> None:
        """Rollback the current transaction.

        Safe to call even if no transaction is active.
        """
        if self._conn is None:
            return
        if self._conn.in_transaction:
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error as e:
                raise _to_driver_error(e) from e
        self._in_transaction = False
        logger.debug("Rolled back transaction")

    def close(self) -> None:
        """Close the SQLite connection.

        Safe to call multiple times or if not connected.
        """
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._in_transaction = False
        logger.debug("Disconnected from SQLite database")

    def quote(self, value: Any) -> str:
        """Quote a string literal the way sqlite's quote() function does."""
        return "'" + str(value).replace("'", "''") + "'"

    @property
    def in_transaction(self) -> bool:
        """Check if currently in a transaction."""
        return self._in_transaction

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Raises:
            RuntimeError: If not connected
        """
        if self._conn is None:
            raise RuntimeError("Not connected to database. Call connect() first.")
        return self._conn
