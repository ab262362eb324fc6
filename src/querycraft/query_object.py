"""Compiled statements.

A QueryObject is what the adapters produce: the SQL text with "?"
placeholders and the bindings in placeholder order. It can render itself
with the bindings interpolated, which is useful for logging and tests but
must never be executed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .raw import Raw

if TYPE_CHECKING:
    from .connection import Connection

PLACEHOLDER = re.compile(r"\?")


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True)
class QueryObject:
    """Immutable compiled statement.

    Attributes:
        sql: SQL text with "?" placeholders
        bindings: Values for the placeholders, in order
        connection: Connection used to quote values when interpolating
    """

    sql: str
    bindings: tuple[Any, ...] = ()
    connection: Connection | None = field(default=None, compare=False, repr=False)

    def get_sql(self) -> str:
        return self.sql

    def get_bindings(self) -> list[Any]:
        return list(self.bindings)

    @property
    def raw_sql(self) -> str:
        """SQL with every placeholder replaced by its literal value.

        Strings are quoted by the connection's driver, None becomes NULL and
        Raw values are inserted verbatim. Other values (numbers) are
        rendered with str(). Placeholders without a binding are left alone.
        """
        values = iter(self.bindings)

        def substitute(match: re.Match[str]) -> str:
            try:
                value = next(values)
            except StopIteration:
                return match.group(0)
            return self._literal(value)

        return PLACEHOLDER.sub(substitute, self.sql)

    def get_raw_sql(self) -> str:
        return self.raw_sql

    def _literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, Raw):
            return str(value)
        if isinstance(value, bool):
            return str(int(value))
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        if isinstance(value, str):
            return self._quote(value)
        return str(value)

    def _quote(self, value: str) -> str:
        if self.connection is not None:
            return self.connection.driver.quote(value)
        return _quote_literal(value)

    def __str__(self) -> str:
        return self.raw_sql
