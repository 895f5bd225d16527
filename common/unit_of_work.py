# common/unit_of_work.py
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session, SessionTransaction

logger = logging.getLogger(__name__)


class TransactionError(RuntimeError):
    """
    Raised when the unit of work is driven out of order.
    """


class UnitOfWork:
    """
    Bind several persistence operations to a single database transaction.

    One instance wraps one request-scoped ``Session`` and allows at most one
    active transaction at a time.

    Parameters
    ----------
    session : Session
        SQLAlchemy session shared by the repositories taking part in the
        transaction.
    """

    def __init__(self, session: Session):
        self.session = session
        self._transaction: Optional[SessionTransaction] = None

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    def begin_transaction(self) -> None:
        """
        Start a transaction.

        Raises
        ------
        TransactionError
            If a transaction started by this unit of work is still open.
        """
        if self._transaction is not None:
            raise TransactionError("A transaction is already in progress")
        # The session may have auto-begun on an earlier read; adopt it.
        self._transaction = self.session.get_transaction() or self.session.begin()

    def save_changes(self) -> None:
        """
        Flush pending changes so generated keys and constraints are applied.
        """
        self.session.flush()

    def commit_transaction(self) -> None:
        """
        Commit the active transaction.

        On failure the transaction is rolled back before the error is
        re-raised. The handle is released in every case.
        """
        if self._transaction is None:
            raise TransactionError("No transaction in progress")
        try:
            self.session.flush()
            self.session.commit()
        except Exception:
            logger.exception("Commit failed, rolling back")
            self.session.rollback()
            raise
        finally:
            self._transaction = None

    def rollback_transaction(self) -> None:
        """
        Roll back the active transaction; a no-op when none is active.
        """
        if self._transaction is None:
            return
        try:
            self.session.rollback()
        finally:
            self._transaction = None

    @contextmanager
    def transaction(self) -> Iterator["UnitOfWork"]:
        """
        Context manager form: commit on normal exit, roll back on error.
        """
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback_transaction()
            raise
        self.commit_transaction()
