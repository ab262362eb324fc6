"""Lifecycle hooks fired around statement execution.

Hooks are registered per event kind and optionally per table. When a
statement runs, the handler fires the hooks registered for any table first,
then the hooks of each table the statement declares, in declaration order.

Wildcard kinds (``before-*`` / ``after-*``) match every event whose name
contains the part before the ``*``. An exact registration always wins over
a wildcard on the same table.

Example:
    def audit(event: EventArguments) -> None:
        logger.info(f"{event.name}: {event.query.raw_sql}")

    builder.register_event(EventKind.AFTER_ALL, audit, table="users")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .raw import Raw

if TYPE_CHECKING:
    from .builder import QueryBuilder
    from .query_object import QueryObject

logger = logging.getLogger(__name__)

TABLE_ANY = ":any"


class EventKind(str, Enum):
    """Lifecycle points a hook can be registered for."""

    BEFORE_ALL = "before-*"
    AFTER_ALL = "after-*"
    BEFORE_QUERY = "before-query"
    AFTER_QUERY = "after-query"
    BEFORE_SELECT = "before-select"
    AFTER_SELECT = "after-select"
    BEFORE_INSERT = "before-insert"
    AFTER_INSERT = "after-insert"
    BEFORE_UPDATE = "before-update"
    AFTER_UPDATE = "after-update"
    BEFORE_DELETE = "before-delete"
    AFTER_DELETE = "after-delete"

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.value

    def matches(self, event: EventKind) -> bool:
        """Check whether this (wildcard) kind matches a concrete event."""
        if not self.is_wildcard:
            return self is event
        return self.value[: self.value.index("*")] in event.value


@dataclass
class EventArguments:
    """Context handed to every hook.

    Attributes:
        name: Event being fired
        query: Compiled statement (None for hooks fired before compilation)
        builder: Builder executing the statement; before-hooks may mutate it
        arguments: Extra values such as insert_id and execution_time
    """

    name: EventKind
    query: QueryObject | None
    builder: QueryBuilder
    arguments: dict[str, Any] = field(default_factory=dict)

    @property
    def insert_id(self) -> int | str | None:
        return self.arguments.get("insert_id")

    @property
    def execution_time(self) -> float | None:
        return self.arguments.get("execution_time")


EventAction = Callable[[EventArguments], Any]


class EventHandler:
    """Registry of lifecycle hooks keyed by table and event kind."""

    def __init__(self) -> None:
        self._events: dict[str, dict[EventKind, EventAction]] = {}

    @property
    def events(self) -> dict[str, dict[EventKind, EventAction]]:
        """Registered hooks as {table: {event: action}}."""
        return self._events

    def register_event(
        self,
        event: EventKind | str,
        action: EventAction,
        table: str | None = None,
    ) -> None:
        """Register a hook, replacing any hook for the same table and event.

        Args:
            event: Event kind (or its string value, e.g. "before-select")
            action: Callable receiving EventArguments
            table: Table name, or None for every table

        Raises:
            ValueError: If the event name is unknown
        """
        kind = EventKind(event)
        self._events.setdefault(table or TABLE_ANY, {})[kind] = action

    def remove_event(self, event: EventKind | str, table: str | None = None) -> None:
        """Remove a hook. Removing a hook that was never registered is a no-op."""
        self._events.get(table or TABLE_ANY, {}).pop(EventKind(event), None)

    def get_event(self, event: EventKind | str, table: str | Raw | None = None) -> EventAction | None:
        """Find the hook to run for an event on one table.

        Args:
            event: Concrete event being fired
            table: Table name (None for the any-table slot)

        Returns:
            The exact registration if present, else the first matching
            wildcard registration, else None. Raw tables never have hooks.
        """
        if isinstance(table, Raw):
            return None

        kind = EventKind(event)
        registered = self._events.get(table or TABLE_ANY)
        if not registered:
            return None

        if kind in registered:
            return registered[kind]

        for name, action in registered.items():
            if name.is_wildcard and name.matches(kind):
                return action
        return None

    def fire_events(
        self,
        event: EventKind | str,
        query: QueryObject | None,
        builder: QueryBuilder,
        arguments: dict[str, Any] | None = None,
    ) -> list[Any]:
        """Fire the hooks for an event.

        Args:
            event: Event being fired
            query: Compiled statement
            builder: Builder executing the statement
            arguments: Extra values exposed on EventArguments

        Returns:
            Results of the hooks that returned something other than None
        """
        kind = EventKind(event)
        tables: list[Any] = [TABLE_ANY, *(builder.get_statements().get("tables") or [])]
        responses: list[Any] = []

        for table in tables:
            action = self.get_event(kind, table)
            if action is None:
                continue

            logger.debug(f"Firing {kind.value} hook for table {table}")
            result = action(EventArguments(kind, query, builder, dict(arguments or {})))
            if result is not None:
                responses.append(result)

        return responses
