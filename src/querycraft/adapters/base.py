"""Dialect-independent statement compiler.

BaseAdapter renders a builder's statement tree into SQL text with "?"
placeholders plus the bindings in placeholder order. Dialects subclass it
and override only what differs: identifier quoting, pagination, the insert
verbs and the optional DISTINCT ON support.

Every compile method returns a ``(sql, bindings)`` tuple.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from ..backend import DatabaseEngine
from ..exceptions import ConfigurationError
from ..raw import Raw
from ..statements import Criterion, OrderBy, QueryKind, SelectAlias

if TYPE_CHECKING:
    from ..connection import Connection

Compiled = tuple[str, list[Any]]

# AND / OR removed from the first joiner of an expression ("AND NOT" -> "NOT")
LEADING_JOINER = re.compile(r"^\s*(AND|OR)\b", re.IGNORECASE)


def concatenate(pieces: Iterable[str]) -> str:
    """Join clause pieces with single spaces, skipping empty ones."""
    sql = ""
    for piece in pieces:
        sql = sql.strip() + " " + piece.strip()
    return sql.strip()


class BaseAdapter:
    """Statement compiler shared by all dialects.

    An adapter instance holds the alias of the table being compiled, so a
    fresh instance is used for every compile.

    Attributes:
        engine: Dialect this adapter renders
        QUOTE_OPEN / QUOTE_CLOSE: Identifier quote characters
        INSERT_IGNORE_VERB: Leading verb for insert-ignore statements
        SUPPORTS_DISTINCT_ON: Whether DISTINCT ON (...) can be rendered
    """

    engine: ClassVar[DatabaseEngine] = DatabaseEngine.MYSQL

    QUOTE_OPEN: ClassVar[str] = "`"
    QUOTE_CLOSE: ClassVar[str] = "`"
    INSERT_IGNORE_VERB: ClassVar[str] = "INSERT IGNORE"
    SUPPORTS_DISTINCT_ON: ClassVar[bool] = False

    def __init__(self, connection: Connection):
        self.connection = connection
        self.alias_prefix: str | None = None

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def wrap_sanitizer(self, value: Any) -> Any:
        """Quote an identifier.

        Raw values render as their text and callables pass through
        unchanged. Strings are split on the first "." and each part other
        than "*" is quoted: ``a.b`` becomes `a`.`b` and ``a.*`` becomes `a`.*
        """
        if isinstance(value, Raw):
            return str(value)
        if callable(value):
            return value

        parts = str(value).split(".", 1)
        return ".".join(
            part if part.strip() == "*" else f"{self.QUOTE_OPEN}{part}{self.QUOTE_CLOSE}"
            for part in parts
        )

    def wrap_table(self, table: str) -> str:
        """Quote a table name in the FROM clause."""
        return self.wrap_sanitizer(table)

    def array_str(self, pieces: Iterable[Any], glue: str = ", ", wrap: bool = True) -> str:
        """Render a list of identifiers (or pre-rendered pieces) joined by ``glue``."""
        rendered = []
        for piece in pieces:
            if isinstance(piece, SelectAlias):
                field = self.wrap_sanitizer(piece.field) if wrap else str(piece.field)
                alias = self.wrap_sanitizer(piece.alias) if wrap else piece.alias
                rendered.append(f"{field} AS {alias}")
            else:
                rendered.append(self.wrap_sanitizer(piece) if wrap else str(piece))
        return glue.join(rendered)

    @staticmethod
    def raw_bindings(pieces: Iterable[Any]) -> list[Any]:
        """Collect the bindings of every Raw entry in ``pieces``."""
        bindings: list[Any] = []
        for piece in pieces:
            if isinstance(piece, SelectAlias):
                piece = piece.field
            if isinstance(piece, Raw):
                bindings.extend(piece.bindings)
        return bindings

    # ------------------------------------------------------------------
    # Criteria
    # ------------------------------------------------------------------

    def build_criteria(self, criteria: list[Criterion], bind_values: bool = True) -> Compiled:
        """Compile a criteria list into an expression and its bindings.

        Args:
            criteria: Entries in declaration order
            bind_values: False for join ON clauses, where values are
                identifiers and are quoted instead of bound

        Returns:
            (sql, bindings) with the leading joiner removed
        """
        parts: list[str] = []
        bindings: list[Any] = []

        for index, criterion in enumerate(criteria):
            if index == 0 and criterion.condition:
                parts.append(criterion.condition)

            joiner = criterion.joiner
            if index == 0:
                joiner = LEADING_JOINER.sub("", joiner).strip()
            if joiner:
                parts.append(joiner)

            if criterion.columns is not None:
                parts.append(f"({self.array_str(criterion.columns)})")
                continue

            key = criterion.key
            operator = criterion.operator
            value = criterion.value

            if callable(key) and not isinstance(key, Raw) and value is None:
                sql, nested_bindings = self._build_nested(key)
                parts.append(f"({sql})")
                bindings.extend(nested_bindings)
                continue

            if isinstance(key, Raw):
                key_sql = str(key)
                bindings.extend(key.bindings)
            else:
                key_sql = self.wrap_sanitizer(key)
                if self.alias_prefix is not None and "." not in key_sql:
                    key_sql = f"{self.alias_prefix}.{key_sql}"

            if isinstance(value, (list, tuple)):
                if operator == "BETWEEN":
                    low = self._placeholder(value[0], bindings)
                    high = self._placeholder(value[1], bindings)
                    parts.append(f"{key_sql} BETWEEN {low} AND {high}")
                else:
                    placeholders = ", ".join(self._placeholder(v, bindings) for v in value)
                    parts.append(f"{key_sql} {operator} ({placeholders})")
                continue

            if not bind_values or isinstance(value, Raw):
                value_sql = self.wrap_sanitizer(value) if value is not None else "NULL"
                if isinstance(value, Raw):
                    bindings.extend(value.bindings)
                parts.append(f"{key_sql} {operator} {value_sql}")
                continue

            if isinstance(key, Raw):
                if operator is not None:
                    parts.append(f"{key_sql} {operator} ?")
                    bindings.append(value)
                else:
                    parts.append(key_sql)
                continue

            parts.append(f"{key_sql} {operator} ?")
            bindings.append(value)

        return " ".join(parts), bindings

    def build_criteria_with_type(
        self,
        statements: Mapping[str, Any],
        key: str,
        keyword: str,
        bind_values: bool = True,
    ) -> Compiled:
        """Compile ``statements[key]`` prefixed with ``keyword`` (WHERE, HAVING)."""
        criteria = statements.get(key)
        if not criteria:
            return "", []
        sql, bindings = self.build_criteria(criteria, bind_values)
        return f"{keyword} {sql}", bindings

    def _build_nested(self, callback: Any) -> Compiled:
        from ..join_builder import NestedCriteria

        nested = NestedCriteria(self.connection)
        callback(nested)
        query = nested.get_query(QueryKind.CRITERIA_ONLY, True)
        return query.sql, list(query.bindings)

    @staticmethod
    def _placeholder(value: Any, bindings: list[Any]) -> str:
        if isinstance(value, Raw):
            bindings.extend(value.bindings)
            return str(value)
        bindings.append(value)
        return "?"

    # ------------------------------------------------------------------
    # Clauses
    # ------------------------------------------------------------------

    def build_join(self, statements: Mapping[str, Any]) -> Compiled:
        """Render every declared join with its ON / USING clause."""
        sql = ""
        bindings: list[Any] = []

        for join in statements.get("joins") or []:
            table = join.table
            if isinstance(table, tuple):
                name, alias = table
                table_sql = f"{self.wrap_sanitizer(name)} AS {self.wrap_sanitizer(alias)}"
            elif isinstance(table, Raw):
                table_sql = str(table)
                bindings.extend(table.bindings)
            else:
                table_sql = self.wrap_sanitizer(table)

            on_sql = ""
            if join.builder is not None:
                query = join.builder.get_query(QueryKind.CRITERIA_ONLY, False)
                on_sql = query.sql
                bindings.extend(query.bindings)

            sql = concatenate([sql, join.type.upper(), "JOIN", table_sql, on_sql])

        return sql, bindings

    def build_aliased_table_name(self, table: str | Raw, statements: Mapping[str, Any]) -> str:
        """Render a table with its alias and remember the alias for criteria keys."""
        if isinstance(table, Raw):
            self.alias_prefix = None
            return str(table)

        self.alias_prefix = (statements.get("aliases") or {}).get(table)
        if self.alias_prefix is not None:
            return f"{self.wrap_table(table)} AS {self.wrap_table(self.alias_prefix.lower())}"
        return self.wrap_table(table)

    def build_group_by(self, statements: Mapping[str, Any]) -> Compiled:
        group_bys = statements.get("group_bys") or []
        if not group_bys:
            return "", []
        return f"GROUP BY {self.array_str(group_bys)}", self.raw_bindings(group_bys)

    def build_order_by(self, statements: Mapping[str, Any]) -> Compiled:
        order_bys: list[OrderBy] = statements.get("order_bys") or []
        if not order_bys:
            return "", []
        rendered = ", ".join(f"{self.wrap_sanitizer(o.field)} {o.direction}" for o in order_bys)
        return f"ORDER BY {rendered}", self.raw_bindings(o.field for o in order_bys)

    def build_top(self, statements: Mapping[str, Any]) -> str:
        return ""

    def build_pagination(self, statements: Mapping[str, Any]) -> list[str]:
        """LIMIT / OFFSET pieces, in clause order."""
        pieces = []
        if statements.get("limit") is not None:
            pieces.append(f"LIMIT {statements['limit']}")
        if statements.get("offset") is not None:
            pieces.append(f"OFFSET {statements['offset']}")
        return pieces

    def build_for(self, statements: Mapping[str, Any]) -> str:
        clauses = statements.get("for") or []
        return f"FOR {clauses[0]}" if clauses else ""

    def build_distinct(self, statements: Mapping[str, Any], has_distincts: bool) -> Compiled:
        """Render the DISTINCT keyword following SELECT."""
        if statements.get("distinct_on"):
            raise ConfigurationError(f"DISTINCT ON is not supported by {self.engine.value}")
        return ("DISTINCT" if has_distincts else ""), []

    def build_union(self, statements: Mapping[str, Any], sql: str) -> Compiled:
        """Wrap the statement in parentheses and append each UNION member."""
        unions = statements.get("unions") or []
        if not unions:
            return sql, []

        bindings: list[Any] = []
        sql = f"({sql})"
        for union in unions:
            query = union.query.get_query(QueryKind.SELECT)
            union_type = f"{union.type} " if union.type else ""
            sql += f" UNION {union_type}({query.sql})"
            bindings.extend(query.bindings)
        return sql, bindings

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def select(self, statements: Mapping[str, Any]) -> Compiled:
        """Compile a SELECT statement."""
        distincts = list(statements.get("distincts") or [])
        selects = list(statements.get("selects") or [])
        has_distincts = bool(distincts)
        if has_distincts:
            selects = distincts + selects
        elif not selects:
            selects = ["*"]

        bindings: list[Any] = []
        distinct_sql, distinct_bindings = self.build_distinct(statements, has_distincts)
        bindings.extend(distinct_bindings)
        bindings.extend(self.raw_bindings(selects))

        tables = statements.get("tables") or []
        rendered_tables = []
        for table in tables:
            if isinstance(table, Raw):
                bindings.extend(table.bindings)
            rendered_tables.append(self.build_aliased_table_name(table, statements))

        join_sql, join_bindings = self.build_join(statements)
        where_sql, where_bindings = self.build_criteria_with_type(statements, "wheres", "WHERE")
        group_sql, group_bindings = self.build_group_by(statements)
        having_sql, having_bindings = self.build_criteria_with_type(statements, "havings", "HAVING")
        order_sql, order_bindings = self.build_order_by(statements)

        sql = concatenate([
            "SELECT",
            distinct_sql,
            self.build_top(statements),
            self.array_str(selects),
            "FROM" if tables else "",
            ",".join(rendered_tables),
            join_sql,
            where_sql,
            group_sql,
            having_sql,
            order_sql,
            *self.build_pagination(statements),
            self.build_for(statements),
        ])

        sql, union_bindings = self.build_union(statements, sql)

        bindings += join_bindings + where_bindings + group_bindings
        bindings += having_bindings + order_bindings + union_bindings
        return sql, bindings

    def criteria_only(self, statements: Mapping[str, Any], bind_values: bool = True) -> Compiled:
        """Compile only the ``criteria`` entries (nested groups, join clauses)."""
        criteria = statements.get("criteria")
        if not criteria:
            return "", []
        return self.build_criteria(criteria, bind_values)

    def insert(self, statements: Mapping[str, Any], data: Mapping[str, Any]) -> Compiled:
        return self._insert(statements, data, "INSERT")

    def insert_ignore(self, statements: Mapping[str, Any], data: Mapping[str, Any]) -> Compiled:
        return self._insert(statements, data, self.INSERT_IGNORE_VERB)

    def replace(self, statements: Mapping[str, Any], data: Mapping[str, Any]) -> Compiled:
        return self._insert(statements, data, "REPLACE")

    def _insert(
        self,
        statements: Mapping[str, Any],
        data: Mapping[str, Any],
        verb: str,
        suffix: str = "",
    ) -> Compiled:
        """Shared INSERT / INSERT IGNORE / REPLACE renderer.

        Raises:
            ConfigurationError: If no table is set, or on_duplicate_key_update
                was called with an empty payload (code 4)
        """
        table = self._target_table(statements)

        keys = list(data.keys())
        values = []
        bindings: list[Any] = []
        for value in data.values():
            values.append(self._placeholder(value, bindings))

        pieces = [
            f"{verb} INTO",
            self.wrap_sanitizer(table),
            f"({self.array_str(keys)})",
            "VALUES",
            f"({', '.join(values)})",
            suffix,
        ]

        on_duplicate = statements.get("onduplicate")
        if on_duplicate is not None:
            if not on_duplicate:
                raise ConfigurationError("No data given.", 4)
            update_sql, update_bindings = self._update_statement(on_duplicate)
            pieces.append(f"ON DUPLICATE KEY UPDATE {update_sql}")
            bindings.extend(update_bindings)

        return concatenate(pieces), bindings

    def _update_statement(self, data: Mapping[str, Any]) -> Compiled:
        """Render ``col = ?`` pairs; Raw values are inlined."""
        pairs = []
        bindings: list[Any] = []
        for key, value in data.items():
            pairs.append(f"{self.wrap_sanitizer(key)} = {self._placeholder(value, bindings)}")
        return ", ".join(pairs), bindings

    def update(self, statements: Mapping[str, Any], data: Mapping[str, Any]) -> Compiled:
        """Compile an UPDATE statement.

        Raises:
            ConfigurationError: If ``data`` is empty (code 4) or no table is set
        """
        if not data:
            raise ConfigurationError("No data given.", 4)

        table = self._target_table(statements)
        table_sql = self.build_aliased_table_name(table, statements)
        join_sql, join_bindings = self.build_join(statements)
        set_sql, set_bindings = self._update_statement(data)
        where_sql, where_bindings = self.build_criteria_with_type(statements, "wheres", "WHERE")
        group_sql, group_bindings = self.build_group_by(statements)
        order_sql, order_bindings = self.build_order_by(statements)

        sql = concatenate([
            "UPDATE",
            table_sql,
            join_sql,
            f"SET {set_sql}",
            where_sql,
            group_sql,
            order_sql,
            *self.build_pagination(statements),
        ])
        bindings = join_bindings + set_bindings + where_bindings + group_bindings + order_bindings
        return sql, bindings

    def delete(self, statements: Mapping[str, Any], columns: list[str] | None = None) -> Compiled:
        """Compile a DELETE statement against the last declared table."""
        table = self._target_table(statements)
        join_sql, join_bindings = self.build_join(statements)
        where_sql, where_bindings = self.build_criteria_with_type(statements, "wheres", "WHERE")
        group_sql, group_bindings = self.build_group_by(statements)
        order_sql, order_bindings = self.build_order_by(statements)

        sql = concatenate([
            "DELETE",
            self.array_str(columns) if columns else "",
            "FROM",
            self.wrap_sanitizer(table),
            join_sql,
            where_sql,
            group_sql,
            order_sql,
            *self.build_pagination(statements),
        ])
        return sql, join_bindings + where_bindings + group_bindings + order_bindings

    @staticmethod
    def _target_table(statements: Mapping[str, Any]) -> str | Raw:
        tables = statements.get("tables")
        if not tables:
            raise ConfigurationError("No table selected")
        return tables[-1]
