"""PostgreSQL dialect."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..backend import DatabaseEngine
from .base import BaseAdapter, Compiled


class PostgresAdapter(BaseAdapter):
    """Double-quote identifiers and DISTINCT ON support.

    PostgreSQL has no INSERT IGNORE; insert_ignore renders
    ``INSERT ... ON CONFLICT DO NOTHING`` instead.
    """

    engine = DatabaseEngine.POSTGRESQL
    QUOTE_OPEN = '"'
    QUOTE_CLOSE = '"'
    SUPPORTS_DISTINCT_ON = True

    def build_distinct(self, statements: Mapping[str, Any], has_distincts: bool) -> Compiled:
        columns = statements.get("distinct_on") or []
        if columns:
            return f"DISTINCT ON ({self.array_str(columns)})", self.raw_bindings(columns)
        return ("DISTINCT" if has_distincts else ""), []

    def insert_ignore(self, statements: Mapping[str, Any], data: Mapping[str, Any]) -> Compiled:
        return self._insert(statements, data, "INSERT", suffix="ON CONFLICT DO NOTHING")
