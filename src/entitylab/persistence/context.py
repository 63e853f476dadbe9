"""
Persistence context: the identity map of managed instances plus removed identities.
"""

from __future__ import annotations

from threading import RLock
from typing import Dict, List, Set, Tuple, Type

from ..core.lifecycle import EntityState
from ..core.model import Model

Key = Tuple[Type[Model], object]


class PersistenceContext:
    """
    Stores managed instances keyed by (model, primary key).

    Membership is by identity, not by object: any value carrying a managed
    primary key is reported as managed, whichever object holds it.
    """

    def __init__(self) -> None:
        self._managed: Dict[Key, Model] = {}
        self._removed: Set[Key] = set()
        self._lock = RLock()

    @staticmethod
    def _make_key(instance_or_model, pk) -> Key:
        if isinstance(instance_or_model, type):
            model = instance_or_model
        else:
            model = instance_or_model.__class__
        return (model, pk)

    def add(self, instance: Model) -> None:
        pk = instance.pk
        if pk is None:
            return
        key = self._make_key(instance, pk)
        with self._lock:
            self._managed[key] = instance

    def get(self, model: Type[Model], pk) -> Model | None:
        key = self._make_key(model, pk)
        with self._lock:
            return self._managed.get(key)

    def evict(self, instance: Model) -> None:
        pk = instance.pk
        if pk is None:
            return
        key = self._make_key(instance, pk)
        with self._lock:
            self._managed.pop(key, None)

    def mark_removed(self, instance: Model) -> None:
        key = self._make_key(instance, instance.pk)
        with self._lock:
            self._managed.pop(key, None)
            self._removed.add(key)

    def unmark_removed(self, model: Type[Model], pk) -> None:
        with self._lock:
            self._removed.discard(self._make_key(model, pk))

    def is_removed(self, model: Type[Model], pk) -> bool:
        with self._lock:
            return self._make_key(model, pk) in self._removed

    def state_of(self, instance: Model) -> EntityState:
        return self.state_for(instance.__class__, instance.pk)

    def state_for(self, model: Type[Model], pk) -> EntityState:
        if pk is None:
            return EntityState.TRANSIENT
        key = self._make_key(model, pk)
        with self._lock:
            if key in self._removed:
                return EntityState.REMOVED
            if key in self._managed:
                return EntityState.MANAGED
        return EntityState.DETACHED

    def clear(self) -> None:
        """
        Detach every managed instance. Removed identities stay removed.
        """
        with self._lock:
            self._managed.clear()

    def values(self) -> List[Model]:
        with self._lock:
            return list(self._managed.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._managed)

    def __contains__(self, instance: Model) -> bool:
        return self.state_of(instance) is EntityState.MANAGED
