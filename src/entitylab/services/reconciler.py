"""
Explicit reconciliation between the in-memory registry and the store.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.person import Person
from ..errors import EntityLabError, InvalidAttributeError, NotFoundError, Result
from ..registry import InMemoryRegistry
from ..utils import get_logger

CLEAR_MODES = ("clear", "null")
REASSIGN_MODES = ("reassign", "new")


class ConsistencyReconciler:
    """
    The only component that writes into an :class:`InMemoryRegistry`.

    None of these operations touch the store. Registry and store are allowed
    to diverge; duplicate ids created by :meth:`reassign_identity` are kept.
    """

    def __init__(self) -> None:
        self.logger = get_logger("services.reconciler")

    def reconcile(self, registry: InMemoryRegistry, stale: Person, managed: Person) -> Result[Person]:
        """
        Put a copy of ``managed`` into the slot currently holding ``stale``.
        """
        index = registry.index_of(stale)
        if index < 0:
            return self._failed(
                "reconcile", NotFoundError(f"No Person with id {stale.id} is held in memory.")
            )
        fresh = managed.copy()
        fresh.mark_clean()
        registry.replace_at(index, fresh)
        self.logger.debug("Registry slot %s now holds %s version %s", index, fresh.id, fresh.version)
        return Result.success(fresh, "Registry entry reconciled.")

    def update_in_memory(
        self, registry: InMemoryRegistry, selector: Any, attribute: str, value: Any
    ) -> Result[Person]:
        """
        Change ``name`` or ``email`` of the first registry entry matching
        ``selector`` (an id when it is an int, otherwise an exact name).
        """
        if isinstance(selector, int) and not isinstance(selector, bool):
            person = registry.find_by_id(selector)
            missing = f"No Person found with ID {selector} in memory."
        else:
            person = registry.find_by_name(str(selector))
            missing = f"No Person found with name {selector} in memory."
        if person is None:
            return self._failed("update in memory", NotFoundError(missing))

        field = Person._meta.find_mutable_field(attribute)
        if field is None:
            return self._failed(
                "update in memory",
                InvalidAttributeError(
                    "Invalid attribute. Only 'name' and 'email' can be updated with this method."
                ),
            )
        try:
            setattr(person, field.require_name(), value)
        except ValueError as exc:
            return self._failed("update in memory", InvalidAttributeError(str(exc)))
        return Result.success(person, "Person updated in memory successfully.")

    def reassign_identity(
        self, registry: InMemoryRegistry, pk: Any, mode: str, new_id: Optional[int] = None
    ) -> Result[Person]:
        """
        Clear (``"clear"``/``"null"``) or replace (``"reassign"``/``"new"``) the
        id of the registry entry with id ``pk``.
        """
        person = registry.find_by_id(pk)
        if person is None:
            return self._failed("reassign identity", NotFoundError(f"No entity with ID {pk} found."))

        normalized = str(mode).strip().lower()
        if normalized in CLEAR_MODES:
            person.id = None
            return Result.success(person, "ID set to null successfully.")
        if normalized in REASSIGN_MODES:
            if new_id is None:
                return self._failed(
                    "reassign identity",
                    InvalidAttributeError("New ID is null. Please enter a valid ID."),
                )
            try:
                person.id = new_id
            except ValueError as exc:
                return self._failed("reassign identity", InvalidAttributeError(str(exc)))
            return Result.success(person, f"ID set to {new_id} successfully.")
        return self._failed(
            "reassign identity",
            InvalidAttributeError("Invalid response. Please enter 'null' or 'new'."),
        )

    def _failed(self, action: str, error: EntityLabError) -> Result[Any]:
        self.logger.warning("Failed to %s: %s", action, error)
        return Result.failure(error)
