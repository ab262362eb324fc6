"""Transaction scope for the query builder.

``QueryBuilder.transaction(callback)`` runs the callback against a
Transaction, a builder bound to an open driver transaction. The callback
may finish the transaction itself with ``commit()`` or ``rollback()``;
statements run through the Transaction afterwards raise
TransactionClosedError. Otherwise the controller commits when the callback
returns and rolls back when it raises.

Example:
    def move_funds(tx: Transaction) -> int:
        tx.table("accounts").where("id", 1).update({"balance": Raw("balance - ?", 10)})
        tx.table("accounts").where("id", 2).update({"balance": Raw("balance + ?", 10)})
        return 2

    result = builder.transaction(move_funds)
    assert result.status is TransactionStatus.COMMITTED
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .backend import DriverError, QueryResult
from .builder import QueryBuilder
from .exceptions import SqlError, TransactionClosedError, from_driver_error

if TYPE_CHECKING:
    from .connection import Connection

logger = logging.getLogger(__name__)


class TransactionStatus(Enum):
    """How a transaction scope ended."""

    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class TransactionScope:
    """State shared by a Transaction and the builders it creates."""

    closed: bool = False
    status: TransactionStatus | None = None


@dataclass
class TransactionResult:
    """Outcome of QueryBuilder.transaction().

    Attributes:
        status: Whether the work was committed or rolled back
        value: Return value of the callback
        transaction: Transaction builder the callback received
    """

    status: TransactionStatus
    value: Any
    transaction: Transaction

    @property
    def committed(self) -> bool:
        return self.status is TransactionStatus.COMMITTED


class Transaction(QueryBuilder):
    """Builder bound to an open transaction.

    Builders created from it (``table()``, ``new_query()``) share its scope,
    so closing the transaction closes them too.
    """

    def __init__(self, connection: Connection, scope: TransactionScope | None = None):
        super().__init__(connection)
        self.scope = scope or TransactionScope()

    @property
    def closed(self) -> bool:
        return self.scope.closed

    @property
    def status(self) -> TransactionStatus | None:
        return self.scope.status

    def new_query(self) -> Transaction:
        return Transaction(self.connection, self.scope)

    def commit(self) -> None:
        """Commit and close the scope.

        Raises:
            TransactionClosedError: If the scope is already closed
        """
        self._finish(TransactionStatus.COMMITTED)

    def rollback(self) -> None:
        """Roll back and close the scope.

        Raises:
            TransactionClosedError: If the scope is already closed
        """
        self._finish(TransactionStatus.ROLLED_BACK)

    def _finish(self, status: TransactionStatus) -> None:
        self._ensure_open()
        driver = self.connection.driver
        try:
            if status is TransactionStatus.COMMITTED:
                driver.commit()
            else:
                driver.rollback()
        except DriverError as e:
            raise from_driver_error(e, self.connection.engine, self.connection.last_query) from e

        self.scope.closed = True
        self.scope.status = status
        logger.debug(f"Transaction {status.value}")

    def statement(self, sql: str, bindings: Sequence[Any] = ()) -> tuple[QueryResult, float]:
        self._ensure_open()
        return super().statement(sql, bindings)

    def _ensure_open(self) -> None:
        if self.scope.closed:
            raise TransactionClosedError(
                f"Transaction already {self.scope.status.value if self.scope.status else 'closed'}"
            )


def run_transaction(builder: QueryBuilder, callback: Callable[[Transaction], Any]) -> TransactionResult:
    """Run ``callback`` inside a driver transaction.

    A transaction is begun unless the driver already has one open; nested
    calls share the outer transaction (there are no savepoints).

    Args:
        builder: Builder whose connection and statements the transaction starts from
        callback: Callable receiving the Transaction; its return value is
            exposed as ``TransactionResult.value``

    Returns:
        TransactionResult describing how the scope ended

    Raises:
        SqlError: If the transaction cannot be begun or committed
        Exception: Whatever the callback raised, after one rollback
    """
    connection = builder.connection
    driver = connection.driver

    transaction = Transaction(connection)
    transaction.statements = builder.clone().statements

    if not driver.in_transaction:
        try:
            driver.begin_transaction()
        except DriverError as e:
            raise from_driver_error(e, connection.engine, connection.last_query) from e
        logger.debug("Transaction started")

    try:
        value = callback(transaction)
    except Exception:
        if driver.in_transaction and not transaction.closed:
            try:
                driver.rollback()
                logger.debug("Transaction rolled back after error")
            except (DriverError, SqlError) as rollback_error:
                logger.warning(f"Rollback failed: {rollback_error}")
        raise

    if not transaction.closed:
        if driver.in_transaction:
            transaction.commit()
        else:
            transaction.scope.closed = True
            transaction.scope.status = TransactionStatus.COMMITTED

    return TransactionResult(transaction.status or TransactionStatus.COMMITTED, value, transaction)
