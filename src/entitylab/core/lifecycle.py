"""
Entity lifecycle states, lock modes, and the transition table between states.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet

from ..errors import PersistenceError


class EntityState(str, Enum):
    TRANSIENT = "transient"
    MANAGED = "managed"
    DETACHED = "detached"
    REMOVED = "removed"


class LockMode(str, Enum):
    """
    Lock modes accepted by ``Session.lock``.

    ``OPTIMISTIC`` re-reads the version at commit, ``OPTIMISTIC_FORCE_INCREMENT``
    additionally bumps it. The pessimistic modes take a store lock that is held
    until the transaction ends.
    """

    NONE = "NONE"
    OPTIMISTIC = "OPTIMISTIC"
    OPTIMISTIC_FORCE_INCREMENT = "OPTIMISTIC_FORCE_INCREMENT"
    PESSIMISTIC_READ = "PESSIMISTIC_READ"
    PESSIMISTIC_WRITE = "PESSIMISTIC_WRITE"

    @classmethod
    def parse(cls, value: "LockMode | str") -> "LockMode":
        if isinstance(value, LockMode):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            allowed = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown lock mode {value!r}; expected one of {allowed}") from exc

    @property
    def is_pessimistic(self) -> bool:
        return self in (LockMode.PESSIMISTIC_READ, LockMode.PESSIMISTIC_WRITE)

    @property
    def is_optimistic(self) -> bool:
        return self in (LockMode.OPTIMISTIC, LockMode.OPTIMISTIC_FORCE_INCREMENT)


TRANSITIONS: Dict[EntityState, FrozenSet[EntityState]] = {
    EntityState.TRANSIENT: frozenset({EntityState.MANAGED}),
    EntityState.MANAGED: frozenset({EntityState.MANAGED, EntityState.DETACHED, EntityState.REMOVED}),
    EntityState.DETACHED: frozenset({EntityState.MANAGED}),
    EntityState.REMOVED: frozenset(),
}


def ensure_transition(current: EntityState, target: EntityState, *, what: str = "entity") -> None:
    """
    Raise :class:`PersistenceError` if ``current`` may not move to ``target``.
    """
    if target not in TRANSITIONS[current]:
        raise PersistenceError(
            f"Cannot move {what} from {current.value} to {target.value}."
        )
