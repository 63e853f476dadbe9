"""
Transaction manager enforcing one active store transaction per session.
"""

from __future__ import annotations

from ..adapters.base import AdapterError, DatabaseAdapter
from ..errors import PersistenceError
from ..utils import get_logger


class TransactionError(PersistenceError):
    """Raised on misuse of transaction boundaries (nested begin, commit without begin)."""


class TransactionManager:
    """
    Coordinates begin/commit/rollback against the adapter.

    Nesting is rejected rather than mapped onto savepoints: a session runs
    at most one unit of work at a time.
    """

    def __init__(self, adapter: DatabaseAdapter) -> None:
        self.adapter = adapter
        self._active = False
        self.logger = get_logger("persistence.transaction")

    @property
    def is_active(self) -> bool:
        return self._active

    def begin(self) -> None:
        if self._active:
            raise TransactionError("A transaction is already active on this session.")
        try:
            self.adapter.begin()
        except AdapterError as exc:
            raise TransactionError(str(exc)) from exc
        self._active = True
        self.logger.debug("Transaction started")

    def commit(self) -> None:
        if not self._active:
            raise TransactionError("No active transaction to commit.")
        try:
            self.adapter.commit()
        except AdapterError:
            self.rollback_quietly()
            raise
        self._active = False
        self.logger.debug("Transaction committed")

    def rollback(self) -> None:
        if not self._active:
            raise TransactionError("No active transaction to roll back.")
        self._active = False
        try:
            self.adapter.rollback()
        except AdapterError as exc:
            raise TransactionError(str(exc)) from exc
        self.logger.debug("Transaction rolled back")

    def rollback_quietly(self) -> None:
        """
        Best-effort rollback used when another error is already propagating.
        """
        self._active = False
        try:
            self.adapter.rollback()
        except AdapterError:
            self.logger.warning("Rollback after failure also failed", exc_info=True)
