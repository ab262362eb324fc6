"""Microsoft SQL Server dialect."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..backend import DatabaseEngine
from .base import BaseAdapter


class SqlServerAdapter(BaseAdapter):
    """Bracket quoting, TOP and OFFSET ... ROWS / FETCH NEXT pagination.

    Table names in the FROM clause are emitted unquoted. SQL Server has no
    LIMIT or FOR clause, so ``limit`` renders as TOP and ``for_`` is ignored.
    """

    engine = DatabaseEngine.SQLSERVER
    QUOTE_OPEN = "["
    QUOTE_CLOSE = "]"

    def wrap_table(self, table: str) -> str:
        return str(table)

    def build_top(self, statements: Mapping[str, Any]) -> str:
        limit = statements.get("limit")
        return f"TOP {limit}" if limit is not None else ""

    def build_pagination(self, statements: Mapping[str, Any]) -> list[str]:
        pieces = []
        if statements.get("offset") is not None:
            pieces.append(f"OFFSET {statements['offset']} ROWS")
        if statements.get("fetch_next") is not None:
            pieces.append(f"FETCH NEXT {statements['fetch_next']} ROWS ONLY")
        return pieces

    def build_for(self, statements: Mapping[str, Any]) -> str:
        return ""
