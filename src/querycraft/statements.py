"""Fragments stored in a builder's statement tree.

The builder appends these to ``QueryBuilder.statements`` and the dialect
adapters read them back when compiling. Keeping them in one place lets the
adapters stay independent of the builder classes.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple

from .raw import Raw

if TYPE_CHECKING:
    from .builder import QueryBuilder
    from .join_builder import JoinBuilder

# Column reference, verbatim fragment, or a callable building a nested group
Key = str | Raw | Callable[..., Any]


class QueryKind(str, Enum):
    """Statement kinds a builder can be compiled to."""

    SELECT = "select"
    INSERT = "insert"
    INSERT_IGNORE = "insertignore"
    REPLACE = "replace"
    DELETE = "delete"
    UPDATE = "update"
    CRITERIA_ONLY = "criteriaonly"


class UnionType(str, Enum):
    NONE = ""
    DISTINCT = "DISTINCT"
    ALL = "ALL"


@dataclass
class Criterion:
    """One entry of a WHERE / HAVING / ON expression.

    Attributes:
        key: Column name, Raw fragment, or callable receiving a nested builder
        operator: Comparison operator (None for bare Raw or nested keys)
        value: Scalar, list/tuple (IN, BETWEEN), Raw, or None
        joiner: Boolean joiner placed before the entry (AND, OR, AND NOT, OR NOT)
        condition: Keyword emitted before the first entry (ON for joins)
        columns: Column list for JOIN ... USING
    """

    key: Key | None
    operator: str | None = None
    value: Any = None
    joiner: str = "AND"
    condition: str | None = None
    columns: list[str | Raw] | None = None


class SelectAlias(NamedTuple):
    """Projection entry rendered as ``field AS alias``."""

    field: str | Raw
    alias: str


class OrderBy(NamedTuple):
    field: str | Raw
    direction: str = "ASC"


@dataclass
class JoinClause:
    """Declared join.

    Attributes:
        type: Join type keyword ("", "inner", "left", "right", ...)
        table: Table name, (table, alias) pair, or Raw
        builder: ON/USING criteria, or None for a bare join
    """

    type: str
    table: str | tuple[str, str] | Raw
    builder: JoinBuilder | None = None


@dataclass
class UnionClause:
    query: QueryBuilder
    type: str = UnionType.NONE.value
