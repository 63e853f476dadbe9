"""
Persistence layer components: sessions, persistence context, unit of work.
"""

from .context import PersistenceContext
from .reference import EntityReference
from .session import Session
from .transaction import TransactionError, TransactionManager
from .unit_of_work import UnitOfWork

__all__ = [
    "EntityReference",
    "PersistenceContext",
    "Session",
    "TransactionError",
    "TransactionManager",
    "UnitOfWork",
]
