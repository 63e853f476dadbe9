"""
Utility helpers for running the EntityLab people example end-to-end.
"""

from __future__ import annotations

from typing import Any, Dict, List

from entitylab.adapters import SQLiteAdapter
from entitylab.core import Person
from entitylab.persistence import Session
from entitylab.registry import InMemoryRegistry, seed_people
from entitylab.services import ConsistencyReconciler, LifecycleManager, QueryGateway


def bootstrap_session(dsn: str = "sqlite:///:memory:") -> Session:
    """
    Create a SQLite-backed session and ensure the person table exists.
    """

    session = Session(SQLiteAdapter(), dsn=dsn)
    session.create_schema(Person)
    return session


def persist_registry(manager: LifecycleManager, registry: InMemoryRegistry) -> List[int]:
    """
    Persist every transient registry entry; ids are written back into the registry.
    """

    ids: List[int] = []
    for person in registry:
        if person.id is not None:
            continue
        result = manager.persist(person)
        if result.ok:
            ids.append(person.id)
    return ids


def run_demo(dsn: str = "sqlite:///:memory:") -> Dict[str, Any]:
    """
    Seed the registry, push it to the store, diverge, and reconcile.
    """

    session = bootstrap_session(dsn)
    manager = LifecycleManager(session)
    reconciler = ConsistencyReconciler()
    gateway = QueryGateway(session)
    try:
        registry = seed_people()
        persisted = persist_registry(manager, registry)

        manager.update_in_store(1, "email", "john.smith@gmail.com")
        reconciler.update_in_memory(registry, "Mary Williams", "email", "mary@outlook.com")
        merged = manager.merge(registry, 3)

        matches = gateway.find_by_name("Jo").unwrap()
        return {
            "persisted": persisted,
            "merged": merged.value.to_dict() if merged.ok else None,
            "store_john": manager.find(1).value.to_dict(),
            "registry_john": registry.find_by_id(1).to_dict(),
            "name_matches": [person.name for person in matches],
        }
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover
    from pprint import pprint

    pprint(run_demo())
