"""Fluent statement builder.

A QueryBuilder accumulates a statement tree through chained calls and
compiles it with the connection's dialect adapter when executed. Every
execution fires lifecycle hooks and records the compiled statement as the
connection's last query.

Example:
    builder = connection.query_builder()

    rows = (
        builder.table("users")
        .select("id", "name")
        .where("active", True)
        .where_in("role", ["admin", "owner"])
        .order_by("name")
        .limit(10)
        .get()
    )

    user_id = builder.table("users").insert({"name": "Ada", "role": "admin"})
"""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .backend import DriverError, QueryResult
from .events import TABLE_ANY, EventAction, EventKind
from .exceptions import ColumnNotFoundError, ConfigurationError, SqlConnectionError, from_driver_error
from .query_object import QueryObject
from .raw import Raw
from .statements import Criterion, JoinClause, OrderBy, QueryKind, SelectAlias, UnionClause, UnionType

if TYPE_CHECKING:
    from .connection import Connection, ConnectionRegistry
    from .transaction import Transaction, TransactionResult

logger = logging.getLogger(__name__)

# Distinguishes where(key, None) (compare to NULL) from where(key)
_UNSET: Any = object()

# QueryKind -> adapter method
COMPILERS: dict[QueryKind, str] = {
    QueryKind.SELECT: "select",
    QueryKind.INSERT: "insert",
    QueryKind.INSERT_IGNORE: "insert_ignore",
    QueryKind.REPLACE: "replace",
    QueryKind.DELETE: "delete",
    QueryKind.UPDATE: "update",
    QueryKind.CRITERIA_ONLY: "criteria_only",
}

# Statement kinds holding lists that clones must not share
LIST_STATEMENTS = (
    "tables",
    "selects",
    "distincts",
    "distinct_on",
    "wheres",
    "criteria",
    "group_bys",
    "order_bys",
    "havings",
    "unions",
    "for",
)

# Statement kinds that restrict which rows a select returns
PAGINATION_KINDS = ("limit", "offset", "fetch_next")


class QueryBuilder:
    """Mutable statement accumulator with a fluent API.

    Attributes:
        connection: Connection whose driver, adapter and hooks are used
        statements: Statement tree keyed by statement kind
        table_prefix: Prefix added to table names (from connection config)
        overwrite_enabled: Replace instead of append on repeated calls
    """

    def __init__(
        self,
        connection: Connection | None = None,
        registry: ConnectionRegistry | None = None,
    ):
        """Initialize a builder.

        Args:
            connection: Connection to use
            registry: Registry whose default connection is used when no
                connection is given

        Raises:
            SqlConnectionError: If no connection can be resolved
        """
        if connection is None and registry is not None:
            connection = registry.default
        if connection is None:
            raise SqlConnectionError("No database connection found.", 404)

        self.connection = connection
        self.table_prefix: str | None = connection.prefix
        self.overwrite_enabled: bool = connection.query_overwriting
        self.statements: dict[str, Any] = {}
        self._row_factory: Callable[..., Any] | None = None
        self._pending_result: QueryResult | None = None

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def __copy__(self) -> QueryBuilder:
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)

        statements = dict(self.statements)
        for kind in LIST_STATEMENTS:
            if statements.get(kind) is not None:
                statements[kind] = list(statements[kind])
        for kind in ("aliases", "onduplicate"):
            if statements.get(kind) is not None:
                statements[kind] = dict(statements[kind])
        if statements.get("joins"):
            statements["joins"] = [
                JoinClause(join.type, join.table, join.builder.clone() if join.builder else None)
                for join in statements["joins"]
            ]

        clone.statements = statements
        clone._pending_result = None
        return clone

    def clone(self) -> QueryBuilder:
        """Copy this builder, including the ON clauses of declared joins."""
        return copy.copy(self)

    def new_query(self) -> QueryBuilder:
        """Create an empty builder on the same connection."""
        return type(self)(self.connection)

    # ------------------------------------------------------------------
    # Statement access
    # ------------------------------------------------------------------

    def get_statements(self) -> dict[str, Any]:
        return self.statements

    def set_statements(self, statements: dict[str, Any]) -> QueryBuilder:
        self.statements = statements
        return self

    def set_overwrite_enabled(self, enabled: bool) -> QueryBuilder:
        self.overwrite_enabled = enabled
        return self

    def is_overwrite_enabled(self) -> bool:
        return self.overwrite_enabled

    @property
    def last_query(self) -> QueryObject | None:
        """Most recent statement compiled for execution on this connection."""
        return self.connection.last_query

    def get_last_query(self) -> QueryObject | None:
        return self.connection.last_query

    def get_alias(self) -> str | None:
        aliases = self.statements.get("aliases")
        return next(iter(aliases.values())) if aliases else None

    def get_table(self) -> str | None:
        """First declared table, or None if there is none or it is Raw."""
        tables = self.statements.get("tables")
        if tables and not isinstance(tables[0], Raw):
            return tables[0]
        return None

    def get_columns(self) -> dict[str, str]:
        """Map result column names to the selected fields.

        Plain selects map their last dotted part to the field; aliased
        selects map the alias to the field. Wildcards and Raw selects are
        skipped.
        """
        columns: dict[str, str] = {}
        for select in self.statements.get("selects") or []:
            if isinstance(select, SelectAlias):
                if isinstance(select.field, str):
                    columns[select.alias] = select.field
            elif isinstance(select, str):
                parts = select.split(".")
                if "*" not in parts:
                    columns[parts[-1]] = select
        return columns

    # ------------------------------------------------------------------
    # Prefixing
    # ------------------------------------------------------------------

    def add_table_prefix(self, values: Any, table_field_mix: bool = True) -> Any:
        """Add the table prefix to table names and qualified identifiers.

        Args:
            values: Name, list/tuple of names, or mapping whose keys are names
            table_field_mix: True when values may be plain column names; only
                names containing "." are prefixed. False prefixes every name.

        Returns:
            Value(s) of the same shape. Raw, callables and non-strings are
            returned unchanged.
        """
        if not self.table_prefix:
            return values

        if isinstance(values, Mapping):
            return {self._prefix_one(key, table_field_mix): value for key, value in values.items()}
        if isinstance(values, (list, tuple)):
            return type(values)(self._prefix_one(value, table_field_mix) for value in values)
        return self._prefix_one(values, table_field_mix)

    def _prefix_one(self, value: Any, table_field_mix: bool) -> Any:
        if not isinstance(value, str):
            return value
        if not table_field_mix or "." in value:
            return f"{self.table_prefix}{value}"
        return value

    # ------------------------------------------------------------------
    # Tables and projection
    # ------------------------------------------------------------------

    def table(self, *tables: Any) -> QueryBuilder:
        """Start a new builder on the same connection selecting from ``tables``.

        ``table(None)`` clears the tables of this builder instead.
        """
        if not tables or (len(tables) == 1 and tables[0] is None):
            return self.from_(None)
        return self.new_query().from_(*tables)

    def from_(self, *tables: Any) -> QueryBuilder:
        """Set the tables of this builder.

        Accepts names, Raw fragments, lists of those and ``{table: alias}``
        mappings. ``from_(None)`` clears the tables.
        """
        if not tables or (len(tables) == 1 and tables[0] is None):
            self.statements["tables"] = None
            return self

        names: list[Any] = []
        for table in self._flatten(tables):
            if isinstance(table, Mapping):
                for name, alias in table.items():
                    self.alias(alias, name)
                    names.append(name)
            else:
                names.append(table)

        self.statements["tables"] = self.add_table_prefix(names, False)
        return self

    def alias(self, alias: str, table: str | None = None) -> QueryBuilder:
        """Alias a table (the first declared table by default)."""
        if table is None and self.statements.get("tables"):
            table = self.statements["tables"][0]
        else:
            table = f"{self.table_prefix or ''}{table or ''}"
        self.statements.setdefault("aliases", {})[table] = alias.lower()
        return self

    def select(self, *fields: Any) -> QueryBuilder:
        """Add fields to the projection.

        Accepts names, Raw fragments, lists of those and ``{field: alias}``
        mappings.
        """
        selects = self._normalize_fields(fields)
        if self.overwrite_enabled:
            self.statements["selects"] = selects
        else:
            self.statements.setdefault("selects", []).extend(selects)
        return self

    def select_distinct(self, *fields: Any) -> QueryBuilder:
        distincts = self._normalize_fields(fields)
        if self.overwrite_enabled:
            self.statements["distincts"] = distincts
        else:
            self.statements.setdefault("distincts", []).extend(distincts)
        return self

    def distinct_on(self, *fields: Any) -> QueryBuilder:
        """Render ``DISTINCT ON (fields)`` on dialects supporting it.

        Compiling on other dialects raises ConfigurationError.
        """
        self.statements.setdefault("distinct_on", []).extend(self._normalize_fields(fields))
        return self

    def _normalize_fields(self, fields: Sequence[Any]) -> list[Any]:
        normalized: list[Any] = []
        for field in self._flatten(fields):
            if isinstance(field, Mapping):
                normalized.extend(
                    SelectAlias(self.add_table_prefix(name), alias) for name, alias in field.items()
                )
            else:
                normalized.append(self.add_table_prefix(field))
        return normalized

    @staticmethod
    def _flatten(values: Sequence[Any]) -> list[Any]:
        flat: list[Any] = []
        for value in values:
            if isinstance(value, (list, tuple)):
                flat.extend(value)
            else:
                flat.append(value)
        return flat

    # ------------------------------------------------------------------
    # Criteria
    # ------------------------------------------------------------------

    @staticmethod
    def _operator_and_value(operator: Any, value: Any) -> tuple[Any, Any]:
        if value is _UNSET:
            if operator is _UNSET:
                return None, None
            operator, value = "=", operator
        if isinstance(value, bool):
            value = int(value)
        return operator, value

    def where(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET) -> QueryBuilder:
        """Add an AND criterion.

        ``where(key, value)`` compares with "=". ``where(raw)`` and
        ``where(callable)`` add a fragment or a nested group on their own.

        Example:
            builder.where("age", ">", 18).where(lambda q: q.where("a", 1).or_where("b", 2))
        """
        operator, value = self._operator_and_value(operator, value)
        return self._where_handler(key, operator, value, "AND")

    def or_where(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET) -> QueryBuilder:
        operator, value = self._operator_and_value(operator, value)
        return self._where_handler(key, operator, value, "OR")

    def where_not(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET) -> QueryBuilder:
        operator, value = self._operator_and_value(operator, value)
        return self._where_handler(key, operator, value, "AND NOT")

    def or_where_not(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET) -> QueryBuilder:
        operator, value = self._operator_and_value(operator, value)
        return self._where_handler(key, operator, value, "OR NOT")

    def where_in(self, key: Any, values: Any) -> QueryBuilder:
        return self._where_handler(key, "IN", values, "AND")

    def or_where_in(self, key: Any, values: Any) -> QueryBuilder:
        return self._where_handler(key, "IN", values, "OR")

    def where_not_in(self, key: Any, values: Any) -> QueryBuilder:
        return self._where_handler(key, "NOT IN", values, "AND")

    def or_where_not_in(self, key: Any, values: Any) -> QueryBuilder:
        return self._where_handler(key, "NOT IN", values, "OR")

    def where_between(self, key: Any, value_from: Any, value_to: Any) -> QueryBuilder:
        return self._where_handler(key, "BETWEEN", [value_from, value_to], "AND")

    def or_where_between(self, key: Any, value_from: Any, value_to: Any) -> QueryBuilder:
        return self._where_handler(key, "BETWEEN", [value_from, value_to], "OR")

    def where_null(self, key: Any) -> QueryBuilder:
        return self._where_handler(key, "IS", Raw("NULL"), "AND")

    def or_where_null(self, key: Any) -> QueryBuilder:
        return self._where_handler(key, "IS", Raw("NULL"), "OR")

    def where_not_null(self, key: Any) -> QueryBuilder:
        return self._where_handler(key, "IS NOT", Raw("NULL"), "AND")

    def or_where_not_null(self, key: Any) -> QueryBuilder:
        return self._where_handler(key, "IS NOT", Raw("NULL"), "OR")

    def _where_handler(self, key: Any, operator: str | None, value: Any, joiner: str) -> QueryBuilder:
        key = self.add_table_prefix(key)
        self._remove_existing_statement("wheres", "key", key)
        self.statements.setdefault("wheres", []).append(Criterion(key, operator, value, joiner))
        return self

    def having(self, key: Any, operator: str, value: Any, joiner: str = "AND") -> QueryBuilder:
        key = self.add_table_prefix(key)
        self._remove_existing_statement("havings", "key", key)
        self.statements.setdefault("havings", []).append(Criterion(key, operator, value, joiner))
        return self

    def or_having(self, key: Any, operator: str, value: Any) -> QueryBuilder:
        return self.having(key, operator, value, "OR")

    def _remove_existing_statement(self, kind: str, attribute: str, value: Any) -> None:
        """Drop the first entry of ``kind`` whose ``attribute`` equals ``value``.

        Only active with overwriting enabled. Nested groups are inspected by
        running their callable against a scratch builder.
        """
        entries = self.statements.get(kind)
        if not self.overwrite_enabled or not entries:
            return

        for index, entry in enumerate(entries):
            current = getattr(entry, attribute)
            if callable(current):
                scratch = QueryBuilder(self.connection)
                current(scratch)
                nested = scratch.statements.get(kind) or []
                if any(getattr(sub, attribute) == value for sub in nested):
                    del entries[index]
                    return
            if current == value:
                del entries[index]
                return

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def join(
        self,
        table: Any,
        key: Any = None,
        operator: str | None = None,
        value: Any = None,
        type: str = "",
    ) -> QueryBuilder:
        """Add a join.

        Args:
            table: Table name, (table, alias) pair, or Raw
            key: Left side of the ON condition, or a callable receiving the
                JoinBuilder to declare several conditions
            operator: ON comparison operator
            value: Right side of the ON condition (an identifier)
            type: Join type keyword ("inner", "left", ...)

        Example:
            builder.join("orders", lambda j: j.on("orders.user_id", "=", "users.id")
                         .or_on("orders.owner_id", "=", "users.id"), type="left")
        """
        from .join_builder import JoinBuilder

        join_builder = None
        if key is not None:
            join_builder = JoinBuilder(self.connection)
            if callable(key):
                key(join_builder)
            else:
                join_builder.on(key, operator, value)

        table = self.add_table_prefix(table, False)
        self._remove_existing_statement("joins", "table", table)
        self.statements.setdefault("joins", []).append(JoinClause(type, table, join_builder))
        return self

    def inner_join(self, table: Any, key: Any, operator: str | None = None, value: Any = None) -> QueryBuilder:
        return self.join(table, key, operator, value, "inner")

    def left_join(self, table: Any, key: Any, operator: str | None = None, value: Any = None) -> QueryBuilder:
        return self.join(table, key, operator, value, "left")

    def right_join(self, table: Any, key: Any, operator: str | None = None, value: Any = None) -> QueryBuilder:
        return self.join(table, key, operator, value, "right")

    def join_using(self, table: Any, fields: Any, type: str = "") -> QueryBuilder:
        """Add ``JOIN table USING (fields)``."""
        from .join_builder import JoinBuilder

        if not isinstance(fields, (list, tuple)):
            fields = [fields]

        join_builder = JoinBuilder(self.connection)
        join_builder.using(list(fields))

        table = self.add_table_prefix(table, False)
        self._remove_existing_statement("joins", "table", table)
        self.statements.setdefault("joins", []).append(JoinClause(type, table, join_builder))
        return self

    # ------------------------------------------------------------------
    # Grouping, ordering, pagination
    # ------------------------------------------------------------------

    def group_by(self, fields: Any) -> QueryBuilder:
        if not isinstance(fields, Raw):
            fields = self.add_table_prefix(fields)
        if self.overwrite_enabled:
            self.statements["group_bys"] = []

        group_bys = self.statements.setdefault("group_bys", [])
        if isinstance(fields, (list, tuple)):
            group_bys.extend(fields)
        else:
            group_bys.append(fields)
        return self

    def order_by(self, fields: Any, direction: str = "ASC") -> QueryBuilder:
        """Add ORDER BY entries.

        Args:
            fields: Field, Raw, list of those, or ``{field: direction}``
                mapping; list items may also be mappings
            direction: Direction for entries without their own
        """
        if not isinstance(fields, (list, tuple)):
            fields = [fields]

        entries: list[tuple[Any, str]] = []
        for field in fields:
            if isinstance(field, Mapping):
                entries.extend(field.items())
            else:
                entries.append((field, direction))

        for field, field_direction in entries:
            if not isinstance(field, Raw):
                field = self.add_table_prefix(field)
            self._remove_existing_statement("order_bys", "field", field)
            self.statements.setdefault("order_bys", []).append(OrderBy(field, field_direction.upper()))
        return self

    def limit(self, limit: int) -> QueryBuilder:
        self.statements["limit"] = limit
        return self

    def offset(self, offset: int) -> QueryBuilder:
        self.statements["offset"] = offset
        return self

    def fetch_next(self, fetch_next: int) -> QueryBuilder:
        """Set the SQL Server ``FETCH NEXT n ROWS ONLY`` count."""
        self.statements["fetch_next"] = fetch_next
        return self

    def for_(self, statement: str) -> QueryBuilder:
        """Add a locking clause such as ``FOR UPDATE`` (pass "UPDATE")."""
        self.statements.setdefault("for", []).append(statement)
        return self

    def on_duplicate_key_update(self, data: Mapping[str, Any]) -> QueryBuilder:
        self.statements.setdefault("onduplicate", {}).update(data)
        return self

    def union(self, query: QueryBuilder, union_type: UnionType | str = UnionType.NONE) -> QueryBuilder:
        """Append ``UNION [type] (query)``.

        Unions already declared on ``query`` move to this builder so chains
        like ``a.union(b.union(c))`` render flat.
        """
        if type(union_type) is str:
            union_type = union_type.upper()
        union_type = UnionType(union_type).value
        unions = query.statements.get("unions")
        if unions:
            self.statements["unions"] = unions
            query.statements.pop("unions")

        self.statements.setdefault("unions", []).append(UnionClause(query, union_type))
        return self

    def as_object(self, factory: Callable[..., Any]) -> QueryBuilder:
        """Build each fetched row with ``factory(**row)``."""
        self._row_factory = factory
        return self

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def raw(self, value: str, *bindings: Any) -> Raw:
        return Raw(value, *bindings)

    def sub_query(self, query: QueryBuilder, alias: str | None = None) -> Raw:
        """Wrap a builder's SELECT as a parenthesized fragment.

        The sub-query's bindings travel with the returned Raw.
        """
        compiled = query.get_query(QueryKind.SELECT)
        sql = f"({compiled.sql})"
        if alias is not None:
            sql += f" AS {self.connection.adapter().wrap_sanitizer(alias)}"
        return Raw(sql, list(compiled.bindings))

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def get_query(self, kind: QueryKind | str = QueryKind.SELECT, *args: Any) -> QueryObject:
        """Compile the statement tree.

        Args:
            kind: Statement kind or its name ("select", "insert", "insertignore",
                "replace", "delete", "update", "criteriaonly")
            *args: Extra compiler arguments (row data, delete columns,
                bind flag for criteria-only)

        Returns:
            QueryObject for this builder's connection

        Raises:
            ConfigurationError: If the kind is unknown (code 1) or the
                statement cannot be compiled
        """
        try:
            query_kind = QueryKind(kind if isinstance(kind, QueryKind) else str(kind).lower())
        except ValueError:
            raise ConfigurationError(f"{kind} is not a known type.", 1) from None

        adapter = self.connection.adapter()
        sql, bindings = getattr(adapter, COMPILERS[query_kind])(self.statements, *args)
        return QueryObject(sql, tuple(bindings), self.connection)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def statement(self, sql: str, bindings: Sequence[Any] = ()) -> tuple[QueryResult, float]:
        """Execute SQL on the connection's driver.

        Args:
            sql: SQL with "?" placeholders
            bindings: Placeholder values

        Returns:
            Tuple of (QueryResult, execution time in seconds)

        Raises:
            SqlError: Mapped from the driver error, carrying the last query
        """
        start = time.perf_counter()
        try:
            result = self.connection.driver.execute(sql, tuple(bindings))
        except DriverError as e:
            raise from_driver_error(e, self.connection.engine, self.connection.last_query) from e

        execution_time = time.perf_counter() - start
        logger.debug(f"Executed in {execution_time * 1000:.2f}ms: {sql}")
        return result, execution_time

    def query(self, sql: str, bindings: Sequence[Any] = ()) -> QueryBuilder:
        """Run verbatim SQL; the next get() returns its rows."""
        query = QueryObject(sql, tuple(bindings), self.connection)
        self.connection.last_query = query

        self.fire_events(EventKind.BEFORE_QUERY, query)
        result, execution_time = self.statement(query.sql, query.bindings)
        self.fire_events(EventKind.AFTER_QUERY, query, {"execution_time": execution_time})

        self._pending_result = result
        return self

    def get(self) -> list[Any]:
        """Execute the SELECT and return all rows.

        Rows are dicts, or whatever the as_object() factory builds.
        """
        rows = self._select_rows()
        if self._row_factory is not None:
            return [self._row_factory(**row) for row in rows]
        return rows

    def _select_rows(self) -> list[dict[str, Any]]:
        query = self.get_query(QueryKind.SELECT)
        self.connection.last_query = query

        self.fire_events(EventKind.BEFORE_SELECT, query)

        # Before-select hooks may have added criteria
        query = self.get_query(QueryKind.SELECT)
        self.connection.last_query = query

        execution_time = 0.0
        if self._pending_result is None:
            result, execution_time = self.statement(query.sql, query.bindings)
        else:
            result = self._pending_result
            self._pending_result = None

        self.fire_events(EventKind.AFTER_SELECT, query, {"execution_time": execution_time})
        return list(result.rows)

    def first(self) -> Any | None:
        rows = self.limit(1).get()
        return rows[0] if rows else None

    def find(self, value: Any, field: str = "id") -> Any | None:
        return self.where(field, "=", value).first()

    def find_all(self, field: str, value: Any) -> list[Any]:
        return self.where(field, "=", value).get()

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def count(self, field: str = "*") -> int:
        return int(self._aggregate("count", field))

    def sum(self, field: str) -> float:
        return self._aggregate("sum", field)

    def average(self, field: str) -> float:
        return self._aggregate("avg", field)

    def min(self, field: str) -> float:
        return self._aggregate("min", field)

    def max(self, field: str) -> float:
        return self._aggregate("max", field)

    def _aggregate(self, function: str, field: str = "*") -> float:
        """Run ``FUNCTION(field)`` over the current query.

        Grouped, distinct, union and paginated queries are wrapped as a
        sub-query so the aggregate runs over their rows. Otherwise the select
        list is swapped for the aggregate, ordering is dropped, and both are
        restored afterwards.

        Raises:
            ColumnNotFoundError: If ``field`` is not part of an explicit select list
            ConfigurationError: If no table is selected
        """
        selects = self.statements.get("selects")
        if field != "*" and selects and field not in selects:
            raise ColumnNotFoundError(
                f"Failed to count query - the column {field} hasn't been selected in the query."
            )
        if not self.statements.get("tables"):
            raise ConfigurationError("No table selected")

        adapter = self.connection.adapter()
        expression = Raw(f"{function.upper()}({field}) AS {adapter.wrap_sanitizer('field')}")

        if any(self.statements.get(kind) for kind in ("group_bys", "distincts", "unions")) or any(
            self.statements.get(kind) is not None for kind in PAGINATION_KINDS
        ):
            wrapper = self.table(self.sub_query(self, "count")).select(expression)
            rows = wrapper._select_rows()
        else:
            saved = {kind: self.statements.pop(kind, None) for kind in ("selects", "order_bys")}
            self.statements["selects"] = [expression]
            try:
                rows = self._select_rows()
            finally:
                for kind, value in saved.items():
                    if value is None:
                        self.statements.pop(kind, None)
                    else:
                        self.statements[kind] = value

        value = rows[0].get("field") if rows else None
        return float(value) if value is not None else 0

    # ------------------------------------------------------------------
    # Data modification
    # ------------------------------------------------------------------

    def insert(self, data: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> Any:
        """Insert one row (mapping) or a batch (sequence of mappings).

        Returns:
            The generated id (or None) for one row, a list of ids for a batch
        """
        return self._do_insert(data, QueryKind.INSERT)

    def insert_ignore(self, data: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> Any:
        return self._do_insert(data, QueryKind.INSERT_IGNORE)

    def replace(self, data: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> Any:
        return self._do_insert(data, QueryKind.REPLACE)

    def _do_insert(self, data: Any, kind: QueryKind) -> Any:
        if isinstance(data, Mapping):
            query = self.get_query(kind, data)
            self.connection.last_query = query

            self.fire_events(EventKind.BEFORE_INSERT, query)
            result, execution_time = self.statement(query.sql, query.bindings)

            insert_id = self.connection.driver.last_insert_id() if result.affected_rows == 1 else None
            self.fire_events(
                EventKind.AFTER_INSERT,
                query,
                {"insert_id": insert_id, "execution_time": execution_time},
            )
            return insert_id

        rows = list(data)
        if not self.connection.driver.in_transaction:
            insert_ids: list[Any] = []

            def insert_rows(transaction: Transaction) -> None:
                for row in rows:
                    insert_ids.append(transaction._do_insert(row, kind))

            self.transaction(insert_rows)
            return insert_ids

        return [self._do_insert(row, kind) for row in rows]

    def update(self, data: Mapping[str, Any]) -> QueryResult:
        """Update matching rows.

        Raises:
            ConfigurationError: If ``data`` is empty (code 4)
        """
        query = self.get_query(QueryKind.UPDATE, data)
        self.connection.last_query = query

        self.fire_events(EventKind.BEFORE_UPDATE, query)
        result, execution_time = self.statement(query.sql, query.bindings)
        self.fire_events(EventKind.AFTER_UPDATE, query, {"execution_time": execution_time})
        return result

    def update_or_insert(self, data: Mapping[str, Any]) -> Any:
        """Update when a matching row exists, insert otherwise."""
        if self.clone().first() is not None:
            return self.update(data)
        return self.insert(data)

    def delete(self, columns: list[str] | None = None) -> QueryResult:
        query = self.get_query(QueryKind.DELETE, columns)
        self.connection.last_query = query

        self.fire_events(EventKind.BEFORE_DELETE, query)
        result, execution_time = self.statement(query.sql, query.bindings)
        self.fire_events(EventKind.AFTER_DELETE, query, {"execution_time": execution_time})
        return result

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def transaction(self, callback: Callable[[Transaction], Any]) -> TransactionResult:
        """Run ``callback`` inside a transaction.

        See ``querycraft.transaction.run_transaction`` for the commit and
        rollback rules.
        """
        from .transaction import run_transaction

        return run_transaction(self, callback)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def register_event(self, event: EventKind | str, action: EventAction, table: str | None = None) -> None:
        """Register a lifecycle hook on this builder's connection.

        Args:
            event: Event kind
            action: Hook receiving EventArguments
            table: Table name (prefixed like other tables), or None for any table
        """
        if table is not None and table != TABLE_ANY:
            table = self.add_table_prefix(table, False)
        self.connection.event_handler.register_event(event, action, table)

    def remove_event(self, event: EventKind | str, table: str | None = None) -> None:
        if table is not None and table != TABLE_ANY:
            table = self.add_table_prefix(table, False)
        self.connection.event_handler.remove_event(event, table)

    def get_event(self, event: EventKind | str, table: str | None = None) -> EventAction | None:
        if table is not None and table != TABLE_ANY:
            table = self.add_table_prefix(table, False)
        return self.connection.event_handler.get_event(event, table)

    def fire_events(
        self,
        event: EventKind,
        query: QueryObject | None,
        arguments: dict[str, Any] | None = None,
    ) -> list[Any]:
        return self.connection.event_handler.fire_events(event, query, self, arguments)
