"""Builders compiled to a bare criteria clause.

JoinBuilder collects the ON / USING conditions of one join. NestedCriteria
collects the conditions of one parenthesized WHERE group. Both store their
entries under the ``criteria`` statement kind and are compiled with
``get_query(QueryKind.CRITERIA_ONLY, bind_values)``.
"""

from __future__ import annotations

from typing import Any

from .builder import QueryBuilder
from .statements import Criterion


class JoinBuilder(QueryBuilder):
    """Conditions of a single join.

    Both sides of an ON condition are identifiers, so they are prefixed and
    quoted rather than bound.

    Example:
        builder.join("orders", lambda j: j.on("orders.user_id", "=", "users.id")
                     .on("orders.deleted", "=", Raw("0")))
    """

    def on(self, key: Any, operator: str | None, value: Any, joiner: str = "AND") -> JoinBuilder:
        self.statements.setdefault("criteria", []).append(
            Criterion(
                self.add_table_prefix(key),
                operator,
                self.add_table_prefix(value),
                joiner,
                condition="ON",
            )
        )
        return self

    def or_on(self, key: Any, operator: str | None, value: Any) -> JoinBuilder:
        return self.on(key, operator, value, "OR")

    def using(self, columns: list[Any]) -> JoinBuilder:
        """Join on equally named columns: ``USING (col, ...)``."""
        self.statements.setdefault("criteria", []).append(
            Criterion(None, joiner="AND USING", columns=self.add_table_prefix(list(columns)))
        )
        return self


class NestedCriteria(QueryBuilder):
    """Conditions of one parenthesized group, built by where(callable)."""

    def _where_handler(self, key: Any, operator: str | None, value: Any, joiner: str) -> NestedCriteria:
        key = self.add_table_prefix(key)
        self.statements.setdefault("criteria", []).append(Criterion(key, operator, value, joiner))
        return self
