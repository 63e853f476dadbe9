"""
Lifecycle operations on people, each reported as a :class:`Result`.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.lifecycle import LockMode
from ..core.person import Person
from ..errors import (
    EntityLabError,
    InvalidAttributeError,
    NotFoundError,
    PersistenceError,
    Result,
    SessionClosedError,
)
from ..persistence import EntityReference, Session
from ..registry import InMemoryRegistry
from ..utils import get_logger
from .reconciler import ConsistencyReconciler


class LifecycleManager:
    """
    Wraps a :class:`Session` so that every mutating call runs as
    begin, exactly one store action, commit.

    Failures roll back the active transaction and come back as failed
    results; nothing listed in :class:`~entitylab.errors.ErrorKind` escapes
    as an exception.
    """

    def __init__(self, session: Session, reconciler: Optional[ConsistencyReconciler] = None) -> None:
        self.session = session
        self.reconciler = reconciler or ConsistencyReconciler()
        self.logger = get_logger("services.lifecycle")

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #
    def persist(self, entity: Person) -> Result[Person]:
        def operation() -> Result[Person]:
            self.session.begin()
            managed = self.session.persist(entity)
            self.session.commit()
            return Result.success(managed, f"Person persisted with id {managed.id}.")

        return self._guard("persist entity", operation)

    def merge(self, registry: InMemoryRegistry, pk: Any) -> Result[Person]:
        """
        Push the registry entry with id ``pk`` to the store and reconcile the
        registry slot with the committed state.
        """

        def operation() -> Result[Person]:
            stale = registry.find_by_id(pk)
            if stale is None:
                raise NotFoundError(f"No entity with id {pk} found.")
            self.session.begin()
            managed = self.session.merge(stale)
            self.session.commit()
            reconciled = self.reconciler.reconcile(registry, stale, managed)
            if not reconciled.ok:
                return reconciled
            return Result.success(reconciled.value, "Entity merged successfully.")

        return self._guard("merge entity", operation)

    def remove(self, pk: Any) -> Result[None]:
        def operation() -> Result[None]:
            managed = self.session.find(Person, pk)
            if managed is None:
                raise NotFoundError(f"No entity with id {pk} found.")
            self.session.begin()
            self.session.remove(managed)
            self.session.commit()
            return Result.success(None, f"Person with id {pk} removed.")

        return self._guard("remove entity", operation)

    def flush(self) -> Result[None]:
        def operation() -> Result[None]:
            self.session.begin()
            self.session.flush()
            self.session.commit()
            return Result.success(None, "Persistence context synchronized with the database.")

        return self._guard("synchronize with the database", operation)

    def refresh(self, entity: Person | EntityReference) -> Result[Person]:
        """
        Reload ``entity`` from its row. An entity that is not managed is
        merged first, which writes its current values.
        """

        def operation() -> Result[Person]:
            if not self.session.contains(entity):
                if entity.pk is None:
                    raise PersistenceError("Cannot refresh a transient Person.")
                self.session.begin()
                self.session.merge(entity)  # type: ignore[arg-type]
                self.session.commit()
            managed = self.session.refresh(entity)
            return Result.success(managed, "Entity refreshed.")

        return self._guard("refresh entity", operation)

    def lock(self, entity: Person | EntityReference, mode: LockMode | str) -> Result[None]:
        """
        Take ``mode`` on ``entity`` for the length of one transaction.
        """

        def operation() -> Result[None]:
            self.session.begin()
            self.session.lock(entity, mode)
            self.session.commit()
            return Result.success(None, f"Entity locked with {LockMode.parse(mode).value}.")

        return self._guard("lock entity", operation)

    def update_in_store(self, pk: Any, attribute: str, value: Any) -> Result[Person]:
        def operation() -> Result[Person]:
            managed = self.session.find(Person, pk)
            if managed is None:
                raise NotFoundError(
                    f"No Person found with ID {pk}. "
                    "Please check the database to ensure the entity has been persisted."
                )
            field = Person._meta.find_mutable_field(attribute)
            if field is None:
                raise InvalidAttributeError("Invalid attribute. Only 'name' and 'email' can be updated.")
            self.session.begin()
            try:
                setattr(managed, field.require_name(), value)
            except ValueError as exc:
                raise InvalidAttributeError(str(exc)) from exc
            self.session.commit()
            return Result.success(managed, "Person updated successfully.")

        return self._guard("update Person", operation)

    # ------------------------------------------------------------------ #
    # Reads and context control
    # ------------------------------------------------------------------ #
    def find(self, pk: Any) -> Result[Person]:
        def operation() -> Result[Person]:
            managed = self.session.find(Person, pk)
            if managed is None:
                raise NotFoundError(f"Entity with id {pk} not found.")
            return Result.success(managed, str(managed))

        return self._guard("find entity", operation)

    def get_reference(self, pk: Any) -> Result[Person | EntityReference]:
        return self._guard(
            "get reference",
            lambda: Result.success(self.session.get_reference(Person, pk), "Reference created."),
        )

    def detach(self, pk: Any) -> Result[Person]:
        def operation() -> Result[Person]:
            managed = self.session.find(Person, pk)
            if managed is None:
                raise NotFoundError("The person with the entered ID does not exist in the database.")
            self.session.detach(managed)
            return Result.success(managed, f"Person with id {pk} detached.")

        return self._guard("detach entity", operation)

    def contains(self, entity: Person | EntityReference) -> bool:
        try:
            return self.session.contains(entity)
        except EntityLabError as exc:
            self.logger.warning("Invalid entity: %s", exc)
            return False

    def clear(self) -> Result[None]:
        def operation() -> Result[None]:
            self.session.clear()
            return Result.success(None, "Persistence context cleared.")

        return self._guard("clear the persistence context", operation)

    def is_transaction_active(self) -> bool:
        return self.session.is_transaction_active

    def is_session_open(self) -> bool:
        return self.session.is_open

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------ #
    # Schema descriptor
    # ------------------------------------------------------------------ #
    def metamodel(self) -> Result[Dict[str, List[str]]]:
        def operation() -> Result[Dict[str, List[str]]]:
            if not self.session.is_open:
                raise SessionClosedError("Session is closed.")
            meta = Person._meta
            names = [name for name, _ in meta.descriptor()]
            return Result.success({meta.entity_name: names}, f"{meta.entity_name}: {', '.join(names)}")

        return self._guard("retrieve the metamodel", operation)

    def describe(self, entity: Person | EntityReference) -> Result[List[Tuple[str, Any]]]:
        def operation() -> Result[List[Tuple[str, Any]]]:
            target = entity.unwrap() if isinstance(entity, EntityReference) else entity
            pairs = target.describe()
            lines = [f"Attributes of Person with ID {target.id}:"]
            lines.extend(f"- {name}: {value}" for name, value in pairs)
            return Result.success(pairs, "\n".join(lines))

        return self._guard("describe entity", operation)

    # ------------------------------------------------------------------ #
    def _guard(self, action: str, operation: Callable[[], Result[Any]]) -> Result[Any]:
        try:
            return operation()
        except EntityLabError as exc:
            self.logger.warning("Failed to %s: %s", action, exc)
            self._rollback_after(action)
            return Result.failure(exc)
        except Exception as exc:
            self.logger.warning("Failed to %s: %s", action, exc, exc_info=True)
            self._rollback_after(action)
            wrapped = PersistenceError(str(exc))
            wrapped.__cause__ = exc
            return Result.failure(wrapped)

    def _rollback_after(self, action: str) -> None:
        if not self.session.is_transaction_active:
            return
        try:
            self.session.rollback()
        except EntityLabError:
            self.logger.warning("Rollback after failed %s also failed", action, exc_info=True)
