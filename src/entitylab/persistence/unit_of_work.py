"""
Unit of Work tracking what the next flush and commit must write or verify.
"""

from __future__ import annotations

from typing import Iterable, List, Set

from ..core.model import Model


class UnitOfWork:
    """
    Tracks dirty managed instances, optimistic lock checks, and forced version
    increments within one transaction, plus the caller values whose identity
    was assigned by an insert in that transaction.
    """

    def __init__(self) -> None:
        self.dirty: Set[Model] = set()
        self.version_checks: Set[Model] = set()
        self.version_bumps: Set[Model] = set()
        self.inserted: List[Model] = []
        self.removed: List[Model] = []

    # Registration methods ----------------------------------------------
    def register_dirty(self, instance: Model) -> None:
        self.dirty.add(instance)

    def register_version_check(self, instance: Model) -> None:
        self.version_checks.add(instance)

    def register_version_bump(self, instance: Model) -> None:
        self.version_checks.discard(instance)
        self.version_bumps.add(instance)

    def register_inserted(self, caller_value: Model) -> None:
        self.inserted.append(caller_value)

    def register_removed(self, instance: Model) -> None:
        self.dirty.discard(instance)
        self.version_checks.discard(instance)
        self.version_bumps.discard(instance)
        self.removed.append(instance)

    def collect_dirty(self, candidates: Iterable[Model]) -> None:
        for instance in candidates:
            if instance.is_dirty():
                self.register_dirty(instance)

    def forget(self, instance: Model) -> None:
        self.dirty.discard(instance)
        self.version_checks.discard(instance)
        self.version_bumps.discard(instance)

    def reset_tracking(self) -> None:
        self.dirty.clear()
        self.version_checks.clear()
        self.version_bumps.clear()

    def clear(self) -> None:
        self.reset_tracking()
        self.inserted.clear()
        self.removed.clear()
