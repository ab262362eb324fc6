"""Exception taxonomy for the query builder.

Library code raises SqlError subclasses. Errors reported by a driver are
translated by ``from_driver_error`` into the semantic subclass matching the
dialect's error codes, and always carry the QueryObject that was executing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .backend import DatabaseEngine, DriverError

if TYPE_CHECKING:
    from .query_object import QueryObject


class SqlError(Exception):
    """Base class for all query builder errors.

    Attributes:
        message: Human-readable error message
        code: Numeric error code (vendor code, SQLSTATE or library code)
        query: QueryObject being executed, or None if compilation had not finished
    """

    def __init__(self, message: str = "", code: int = 0, query: QueryObject | None = None):
        self.message = message
        self.code = code
        self.query = query
        super().__init__(message)

    def get_query(self) -> QueryObject | None:
        return self.query

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"{type(self).__name__}(message={self.message!r}, code={self.code!r})"


class ConfigurationError(SqlError):
    """Statement cannot be compiled (unknown kind, empty payload, no table)."""


class SqlConnectionError(SqlError):
    """No usable connection, or the server could not be reached."""


class TransactionClosedError(SqlError):
    """A transaction scope was used after commit() or rollback()."""


class SqlQueryError(SqlError):
    """The database rejected a statement."""


class DuplicateColumnError(SqlQueryError):
    pass


class DuplicateKeyError(SqlQueryError):
    pass


class DuplicateEntryError(SqlQueryError):
    pass


class ForeignKeyError(SqlQueryError):
    pass


class NotNullError(SqlQueryError):
    pass


class TableNotFoundError(SqlQueryError):
    pass


class ColumnNotFoundError(SqlQueryError):
    pass


# MySQL (and SQL Server) vendor codes reported under SQLSTATE 23000
MYSQL_INTEGRITY_ERRORS: dict[int, type[SqlQueryError]] = {
    1060: DuplicateColumnError,  # Duplicate column name '%s'
    1061: DuplicateKeyError,  # Duplicate key name '%s'
    1062: DuplicateEntryError,  # Duplicate entry '%s' for key %d
    1451: ForeignKeyError,  # Cannot delete or update a parent row
    1452: ForeignKeyError,  # Cannot add or update a child row
    1048: NotNullError,  # Column '%s' cannot be null
}

MYSQL_CONNECTION_CODES = frozenset({2002, 2005, 2013, 1045})

MYSQL_SERVER_ERRORS: dict[int, type[SqlQueryError]] = {
    1146: TableNotFoundError,  # Table '%s' doesn't exist
    1054: ColumnNotFoundError,  # Unknown column '%s'
}

POSTGRES_ERRORS: dict[str, type[SqlQueryError]] = {
    "42701": DuplicateColumnError,
    "23000": ForeignKeyError,
    "23503": ForeignKeyError,
    "23505": DuplicateEntryError,
    "23502": NotNullError,
    "42P01": TableNotFoundError,
    "42703": ColumnNotFoundError,
}

SQLITE_CONSTRAINT = 19


def _as_int(value: int | str | None) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return 0


def _map_error(error: DriverError, engine: DatabaseEngine | None) -> tuple[type[SqlError], int]:
    """Pick the exception class and code for a driver error."""
    sql_state = error.sql_state or ""
    code = _as_int(error.driver_code)

    if engine in (DatabaseEngine.MYSQL, DatabaseEngine.SQLSERVER):
        if sql_state == "23000" and code in MYSQL_INTEGRITY_ERRORS:
            return MYSQL_INTEGRITY_ERRORS[code], code
        if engine == DatabaseEngine.MYSQL:
            if code in MYSQL_CONNECTION_CODES:
                return SqlConnectionError, code
            if code in MYSQL_SERVER_ERRORS:
                return MYSQL_SERVER_ERRORS[code], code

    elif engine == DatabaseEngine.POSTGRESQL:
        if sql_state in POSTGRES_ERRORS:
            return POSTGRES_ERRORS[sql_state], _as_int(sql_state)

    elif engine == DatabaseEngine.SQLITE:
        if sql_state == "23000" and code == SQLITE_CONSTRAINT:
            return NotNullError, _as_int(sql_state)
        message = error.message.lower()
        if "no such table" in message:
            return TableNotFoundError, code
        if "no such column" in message:
            return ColumnNotFoundError, code

    return SqlQueryError, code


def from_driver_error(
    error: DriverError,
    engine: DatabaseEngine | None = None,
    query: QueryObject | None = None,
) -> SqlError:
    """Translate a DriverError into the matching SqlError subclass.

    The returned exception has ``error`` set as its ``__cause__`` so the
    caller can ``raise`` it directly and keep the driver traceback.

    Args:
        error: Structured error from the driver
        engine: Dialect of the connection that produced the error
        query: Statement that was executing

    Returns:
        Exception instance to raise (unmapped errors become SqlQueryError)
    """
    error_class, code = _map_error(error, engine)
    exc = error_class(error.message, code, query)
    exc.__cause__ = error
    return exc
