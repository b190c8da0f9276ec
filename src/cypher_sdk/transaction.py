"""
Transaction support over the transaction endpoint

This module provides explicit transactions that span several requests:
- begin() opens the transaction on the server, optionally running statements
- send()/exec() run statements inside it, keeping it open
- commit() or rollback() close it
- Used as a context manager, an open transaction is rolled back on exit
  unless it was committed
"""

import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple, Union

from .error import (
    InvalidTransactionState,
    ServerError,
    TransactionExpired,
    TransportError,
)
from .result import ResultSet
from .statement import Statement

if TYPE_CHECKING:
    from .executor import RequestExecutor

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled back"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value

    @property
    def terminal(self) -> bool:
        return self in (TransactionState.COMMITTED, TransactionState.ROLLED_BACK,
                        TransactionState.EXPIRED)


class Transaction:
    """
    A transaction held open on the server across several requests

    The server assigns the transaction endpoint when the transaction is
    begun; this object owns it and is the only one that sends requests to
    it. A Transaction is meant to be driven by one owner at a time: it is
    not synchronized, and using the same instance from several threads
    without external locking is undefined.

    Examples:
        >>> tx = session.transaction().with_statement("MATCH (n:LANG) RETURN n")
        >>> results = tx.begin()
        >>> tx.exec("CREATE (n:LANG {name: 'Rust'})")
        >>> tx.commit()
        >>>
        >>> # Using as context manager: begun on entry, rolled back on exit
        >>> with session.transaction() as tx:
        ...     tx.exec("CREATE (n:LANG {name: 'Python'})")
        ...     tx.commit()
    """

    def __init__(self, executor: 'RequestExecutor', endpoint: str,
                 statements: Iterable[Union[Statement, str]] = ()):
        """
        Internal constructor - use session.transaction() instead

        ``endpoint`` is the session's transaction endpoint, to which the
        opening request is posted.
        """
        self._executor = executor
        self._begin_url = endpoint
        self._endpoint: Optional[str] = None
        self._commit_url: Optional[str] = None
        self._expires_at: Optional[datetime] = None
        self._pending: List[Statement] = [Statement.coerce(s) for s in statements]
        self._state = TransactionState.UNOPENED

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def endpoint(self) -> Optional[str]:
        """Server-assigned transaction URL, None until begun"""
        return self._endpoint

    @property
    def commit_url(self) -> Optional[str]:
        return self._commit_url

    @property
    def expires_at(self) -> Optional[datetime]:
        """
        Expiry last reported by the server

        This is informational only; nothing is enforced on the client.
        """
        return self._expires_at

    @property
    def pending(self) -> Tuple[Statement, ...]:
        return tuple(self._pending)

    def _require(self, operation: str, *states: TransactionState) -> None:
        if self._state not in states:
            raise InvalidTransactionState(operation, self._state)

    def add_statement(self, statement: Union[Statement, str]) -> None:
        """
        Queue a statement for the next begin/send/commit
        """
        self._require("add a statement to", TransactionState.UNOPENED, TransactionState.OPEN)
        self._pending.append(Statement.coerce(statement))

    def with_statement(self, statement: Union[Statement, str]) -> "Transaction":
        """
        Builder-style add_statement
        """
        self.add_statement(statement)
        return self

    def begin(self) -> List[ResultSet]:
        """
        Open the transaction on the server

        Any queued statements are sent with the opening request and their
        results returned. If the request fails the transaction stays
        unopened and keeps its queued statements.

        Raises:
            InvalidTransactionState: If the transaction was already begun
            TransportError, ServerError: If the opening request fails
        """
        self._require("begin", TransactionState.UNOPENED)
        logger.debug("Beginning transaction with %d statement(s)", len(self._pending))

        response = self._executor.execute(self._pending, self._begin_url)
        location = response.location
        if not location and response.commit_url and response.commit_url.endswith("/commit"):
            location = response.commit_url[:-len("/commit")]
        if not location:
            logger.error("No transaction URI returned from server")
            raise TransportError("No transaction URI returned from server")

        self._endpoint = location
        self._commit_url = response.commit_url or f"{location.rstrip('/')}/commit"
        self._expires_at = response.expires
        self._pending = []
        self._state = TransactionState.OPEN
        logger.debug("Transaction started at %s, expires %s", self._endpoint, self._expires_at)
        return response.results

    def send(self) -> List[ResultSet]:
        """
        Run all queued statements in the transaction, keeping it open

        Returns:
            One ResultSet per queued statement, in the order they were added
        """
        self._require("send", TransactionState.OPEN)
        results = self._run(self._pending)
        self._pending = []
        return results

    def exec(self, statement: Union[Statement, str]) -> ResultSet:
        """
        Run a single statement in the transaction right away

        Other queued statements are left queued.

        Examples:
            >>> result = tx.exec("MATCH (n:LANG) RETURN n.name")
            >>> result.rows[0].get("n.name", str)
        """
        self._require("exec", TransactionState.OPEN)
        return self._run([Statement.coerce(statement)])[0]

    def keep_alive(self) -> None:
        """
        Reset the server-side timeout of the transaction

        Sends an empty batch; queued statements are not sent.
        """
        self._require("keep alive", TransactionState.OPEN)
        self._run([])

    def commit(self) -> List[ResultSet]:
        """
        Commit the transaction, running any queued statements first

        After calling commit() the transaction cannot be used further. If
        the commit request fails the server has already decided the outcome,
        so the transaction is marked finished rather than left open: rolled
        back on a server error, expired otherwise.

        Returns:
            One ResultSet per statement queued before the commit
        """
        self._require("commit", TransactionState.OPEN)
        logger.debug("Committing transaction %s", self._endpoint)

        try:
            response = self._executor.execute(self._pending, self._commit_url, in_transaction=True)
        except ServerError:
            self._state = TransactionState.ROLLED_BACK
            raise
        except (TransactionExpired, TransportError):
            self._state = TransactionState.EXPIRED
            raise

        self._pending = []
        self._state = TransactionState.COMMITTED
        logger.debug("Transaction committed %s", self._endpoint)
        return response.results

    def rollback(self) -> None:
        """
        Roll back the transaction, discarding queued statements

        A transport failure leaves the transaction open so the rollback can
        be attempted again.
        """
        self._require("rollback", TransactionState.OPEN)
        logger.debug("Rolling back transaction %s", self._endpoint)

        try:
            self._executor.delete(self._endpoint)
        except TransactionExpired:
            self._state = TransactionState.EXPIRED
            raise

        self._pending = []
        self._state = TransactionState.ROLLED_BACK
        logger.debug("Transaction rolled back %s", self._endpoint)

    def _run(self, statements: List[Statement]) -> List[ResultSet]:
        try:
            response = self._executor.execute(statements, self._endpoint, in_transaction=True)
        except TransactionExpired:
            self._state = TransactionState.EXPIRED
            raise
        except ServerError as e:
            # the server closes the transaction when it stops reporting it
            if not e.transaction_open:
                self._state = TransactionState.ROLLED_BACK
                logger.debug("Transaction %s rolled back by server", self._endpoint)
            raise

        if response.expires is not None:
            self._expires_at = response.expires
        return response.results

    def __enter__(self):
        """Context manager entry - begins the transaction if needed"""
        if self._state is TransactionState.UNOPENED:
            self.begin()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """
        Context manager exit - roll back if still open

        Rollback failures are logged and never raised from here.
        """
        if self._state is TransactionState.OPEN:
            try:
                self.rollback()
            except Exception as e:
                logger.warning("Rollback of transaction %s failed: %s", self._endpoint, e)

        return False  # Don't suppress exceptions

    def __repr__(self) -> str:
        return f"Transaction(state={self._state}, endpoint={self._endpoint!r})"


__all__ = ['Transaction', 'TransactionState']
