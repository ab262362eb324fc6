"""Verbatim SQL fragments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, init=False)
class Raw:
    """SQL text inserted as-is, with its own positional bindings.

    Raw fragments are never quoted, prefixed or wrapped by the compiler.

    Example:
        builder.select(Raw("COUNT(*) AS total"))
        builder.where(Raw("DATE(created) = ?", "2024-01-01"))
    """

    value: str
    bindings: tuple[Any, ...] = field(default=())

    def __init__(self, value: str, *bindings: Any):
        # A single list/tuple argument is treated as the binding list
        if len(bindings) == 1 and isinstance(bindings[0], (list, tuple)):
            bindings = tuple(bindings[0])
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "bindings", tuple(bindings))

    def __str__(self) -> str:
        return self.value

    def get_bindings(self) -> list[Any]:
        """Get the fragment's bindings as a list."""
        return list(self.bindings)
