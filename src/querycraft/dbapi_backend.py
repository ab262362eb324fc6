"""Generic PEP 249 driver wrapper.

Wraps any DB-API 2.0 connection (pymysql, psycopg, pyodbc, sqlite3, ...)
so the query builder can execute against it. Placeholders are rewritten
from "?" to the module's declared ``paramstyle`` and driver exceptions are
translated into DriverError values.

Transactions follow PEP 249 semantics: connections are opened in manual
commit mode, so statements executed outside an explicit transaction are
committed immediately after they run.

Example:
    import pymysql

    raw = pymysql.connect(host="localhost", user="app", database="shop")
    driver = DbApiDriver(raw, DatabaseEngine.MYSQL)
    result = driver.execute("SELECT * FROM users WHERE id = ?", (42,))
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from .backend import DatabaseDriverBase, DatabaseEngine, DriverError, Params, QueryResult
from .param_converter import ParamConverter

logger = logging.getLogger(__name__)

SQLSTATE_INTEGRITY = "23000"
SQLSTATE_GENERAL = "HY000"

# Session-scoped identity lookups for drivers without cursor.lastrowid.
# @@IDENTITY rather than SCOPE_IDENTITY(): each execute is its own batch,
# so SCOPE_IDENTITY() would always be NULL in a follow-up statement.
IDENTITY_QUERIES = {
    DatabaseEngine.POSTGRESQL: "SELECT lastval()",
    DatabaseEngine.SQLSERVER: "SELECT @@IDENTITY",
}
IDENTITY_SAVEPOINT = "querycraft_identity"
INSERT_VERBS = ("INSERT", "REPLACE")


def _driver_module(connection: Any) -> Any:
    """Get the top-level DB-API module that created ``connection``."""
    return sys.modules.get(type(connection).__module__.split(".")[0])


def _to_driver_error(exc: Exception) -> DriverError:
    """Translate a DB-API exception into a DriverError.

    Drivers expose error details differently:
        - psycopg 3: ``exc.sqlstate``; psycopg2: ``exc.pgcode``
        - pymysql / mysqlclient: ``args == (code, message)``
        - pyodbc: ``args == (sqlstate, message)``
    """
    sql_state = getattr(exc, "sqlstate", None) or getattr(exc, "pgcode", None)
    driver_code: int | str | None = None
    message = str(exc)
    args = exc.args

    if args and isinstance(args[0], int):
        driver_code = args[0]
        if len(args) > 1:
            message = str(args[1])
    elif sql_state is None and len(args) > 1 and isinstance(args[0], str) and len(args[0]) == 5:
        sql_state = args[0]
        message = str(args[1])

    if sql_state is None:
        sql_state = SQLSTATE_INTEGRITY if type(exc).__name__ == "IntegrityError" else SQLSTATE_GENERAL
    if driver_code is None:
        driver_code = sql_state

    return DriverError(sql_state, driver_code, message)


class DbApiDriver(DatabaseDriverBase):
    """Driver over an already-open PEP 249 connection.

    Attributes:
        engine: SQL dialect spoken by the connected database
        converter: Placeholder converter for the module's paramstyle
    """

    def __init__(
        self,
        connection: Any,
        engine: DatabaseEngine,
        paramstyle: str | None = None,
    ):
        """Wrap a DB-API connection.

        Args:
            connection: Open PEP 249 connection
            engine: Dialect of the connected database
            paramstyle: Override for the module's ``paramstyle`` attribute

        Raises:
            ValueError: If the paramstyle is unknown
        """
        module = _driver_module(connection)
        self._conn: Any = connection
        self.engine = engine
        self.converter = ParamConverter(paramstyle or getattr(module, "paramstyle", "qmark"))
        self._error_class: type[Exception] = getattr(module, "Error", Exception)
        self._in_transaction = False
        self._last_insert_id = None
        self._identity_pending = False

    def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Execute a statement and return rows or affected counts.

        Raises:
            DriverError: If the database rejects the statement
        """
        conn = self._ensure_connected()
        converted_sql = self.converter.convert(sql)
        converted_params = self.converter.convert_params(params)

        cursor = conn.cursor()
        try:
            cursor.execute(converted_sql, converted_params)
            columns = [desc[0] for desc in cursor.description] if cursor.description else []
            rows = [dict(zip(columns, row)) for row in cursor.fetchall()] if columns else []
            affected = cursor.rowcount if cursor.rowcount and cursor.rowcount > 0 else 0
            last_id = getattr(cursor, "lastrowid", None) or None
            if not self._in_transaction:
                conn.commit()
        except self._error_class as e:
            if not self._in_transaction:
                conn.rollback()
            raise _to_driver_error(e) from e
        finally:
            cursor.close()

        if last_id:
            self._last_insert_id = last_id
        self._identity_pending = (
            self.engine in IDENTITY_QUERIES
            and not last_id
            and affected == 1
            and sql.lstrip().upper().startswith(INSERT_VERBS)
        )

        return QueryResult(
            rows=rows,
            row_count=len(rows) if columns else affected,
            columns=columns,
            last_insert_id=last_id,
            affected_rows=affected,
        )

    def last_insert_id(self) -> int | str | None:
        """Get the id generated by the last single-row INSERT.

        Drivers such as psycopg and pyodbc leave ``cursor.lastrowid`` empty.
        For those engines the id is read back from the same session.
        """
        if self._identity_pending:
            self._identity_pending = False
            self._last_insert_id = self._fetch_identity()
        return self._last_insert_id

    def _fetch_identity(self) -> int | str | None:
        query = IDENTITY_QUERIES[self.engine]
        conn = self._ensure_connected()
        savepoint = self._in_transaction and self.engine == DatabaseEngine.POSTGRESQL
        cursor = conn.cursor()
        try:
            if savepoint:
                cursor.execute(f"SAVEPOINT {IDENTITY_SAVEPOINT}")
            cursor.execute(query)
            row = cursor.fetchone()
            if savepoint:
                cursor.execute(f"RELEASE SAVEPOINT {IDENTITY_SAVEPOINT}")
            elif not self._in_transaction:
                conn.commit()
        except self._error_class as e:
            logger.warning(f"Failed to read generated id with {query}: {e}")
            if savepoint:
                cursor.execute(f"ROLLBACK TO SAVEPOINT {IDENTITY_SAVEPOINT}")
            elif not self._in_transaction:
                conn.rollback()
            return None
        finally:
            cursor.close()

        if not row or row[0] is None:
            return None
        value = row[0]
        return int(value) if not isinstance(value, str) else value

    def begin_transaction(self) -> None:
        """Begin a transaction.

        DB-API connections are always inside an implicit transaction; this
        only stops the per-statement commit.
        """
        self._ensure_connected()
        self._in_transaction = True
        logger.debug("Started transaction")

    def commit(self) -> None:
        """Commit the current transaction."""
        conn = self._ensure_connected()
        try:
            conn.commit()
        except self._error_class as e:
            raise _to_driver_error(e) from e
        finally:
            self._in_transaction = False
        logger.debug("Committed transaction")

    def rollback(self) -> None:
        """Rollback the current transaction.

        Safe to call even if no transaction is active.
        """
        if self._conn is None:
            return
        try:
            self._conn.rollback()
        except self._error_class as e:
            raise _to_driver_error(e) from e
        finally:
            self._in_transaction = False
        logger.debug("Rolled back transaction")

    def close(self) -> None:
        """Close the wrapped connection. Safe to call multiple times."""
        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
        self._in_transaction = False
        logger.debug("Closed DB-API connection")

    def quote(self, value: Any) -> str:
        """Quote a string literal.

        MySQL treats backslash as an escape character inside literals.
        """
        text = str(value)
        if self.engine == DatabaseEngine.MYSQL:
            text = text.replace("\\", "\\\\")
        return "'" + text.replace("'", "''") + "'"

    def _ensure_connected(self) -> Any:
        """Ensure the connection is open.

        Raises:
            RuntimeError: If the connection was closed
        """
        if self._conn is None:
            raise RuntimeError("Connection is closed.")
        return self._conn
