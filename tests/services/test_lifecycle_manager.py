import logging

import pytest

from entitylab.core import Person
from entitylab.errors import ErrorKind, NotFoundError
from entitylab.hooks import hooks
from entitylab.persistence import EntityReference
from entitylab.registry import InMemoryRegistry, seed_people
from entitylab.services import LifecycleManager


@pytest.fixture
def manager(session):
    return LifecycleManager(session)


def persisted(manager, name="Alice", email="alice@x.com"):
    person = Person(name=name, email=email)
    manager.persist(person).unwrap()
    return person


def test_persist_returns_managed_copy(manager):
    person = Person(name="Alice", email="alice@x.com")
    result = manager.persist(person)
    assert result.ok
    assert result.value.id == person.id == 1
    assert result.message == "Person persisted with id 1."
    assert not manager.is_transaction_active()


def test_persist_twice_is_persistence_failure(manager):
    person = persisted(manager)
    result = manager.persist(person)
    assert result.kind is ErrorKind.PERSISTENCE
    assert not manager.is_transaction_active()


def test_persist_duplicate_email_rolls_back(manager):
    persisted(manager, email="dup@x.com")
    second = Person(name="Bob", email="dup@x.com")
    result = manager.persist(second)
    assert result.kind is ErrorKind.PERSISTENCE
    assert second.id is None
    assert not manager.is_transaction_active()


def test_failures_are_logged_at_warning(manager, caplog):
    caplog.set_level(logging.WARNING, logger="entitylab.services.lifecycle")
    manager.remove(404)
    assert any("Failed to remove entity" in record.message for record in caplog.records)


def test_seeded_registry_persists_and_merges(manager):
    registry = seed_people()
    for person in registry:
        assert manager.persist(person).ok
    assert [person.id for person in registry] == list(range(1, 11))

    registry[0].name = "John Smyth"
    result = manager.merge(registry, 1)
    assert result.ok
    assert result.message == "Entity merged successfully."
    assert registry[0] is result.value
    assert registry[0].version == 1
    assert manager.find(1).value.name == "John Smyth"


def test_merge_missing_registry_entry(manager, session):
    registry = InMemoryRegistry()
    result = manager.merge(registry, 1)
    assert result.kind is ErrorKind.NOT_FOUND
    assert not session.is_transaction_active


def test_merge_of_stale_registry_value_conflicts(manager, make_session):
    person = persisted(manager)
    registry = InMemoryRegistry([person])

    other = LifecycleManager(make_session())
    assert other.update_in_store(1, "name", "Changed elsewhere").ok

    manager.clear()
    registry[0].name = "Mine"
    result = manager.merge(registry, 1)
    assert result.kind is ErrorKind.CONCURRENCY_CONFLICT
    assert registry[0].version == 0
    assert manager.find(1).value.name == "Changed elsewhere"


def test_merge_of_identity_removed_in_session_fails(manager):
    person = persisted(manager)
    registry = InMemoryRegistry([person])
    assert manager.remove(1).ok
    manager.clear()
    result = manager.merge(registry, 1)
    assert result.kind is ErrorKind.PERSISTENCE


def test_remove_then_find_is_not_found(manager):
    persisted(manager)
    assert manager.remove(1).ok
    result = manager.find(1)
    assert result.kind is ErrorKind.NOT_FOUND
    assert result.message == "Entity with id 1 not found."


def test_find_message_uses_person_format(manager):
    persisted(manager)
    assert manager.find(1).message == "Id: 1, Name: Alice, Email: alice@x.com"


def test_get_reference_is_lazy(manager):
    reference = manager.get_reference(5).unwrap()
    assert isinstance(reference, EntityReference)
    with pytest.raises(NotFoundError):
        reference.email


def test_detach_present_and_absent(manager):
    persisted(manager)
    managed = manager.find(1).value
    result = manager.detach(1)
    assert result.ok
    assert not manager.contains(managed)

    missing = manager.detach(77)
    assert missing.kind is ErrorKind.NOT_FOUND
    assert missing.message == "The person with the entered ID does not exist in the database."


def test_refresh_managed_entity(manager, make_session):
    persisted(manager)
    managed = manager.find(1).value
    LifecycleManager(make_session()).update_in_store(1, "email", "new@x.com").unwrap()

    result = manager.refresh(managed)
    assert result.ok
    assert managed.email == "new@x.com"
    assert managed.version == 1


def test_refresh_merges_unmanaged_entity_first(manager):
    person = persisted(manager)
    manager.clear()
    person.name = "Merged by refresh"
    result = manager.refresh(person)
    assert result.ok
    assert result.value.name == "Merged by refresh"
    assert person.version == 1


def test_refresh_of_transient_entity_fails(manager):
    result = manager.refresh(Person(name="Nobody"))
    assert result.kind is ErrorKind.PERSISTENCE


def test_lock_modes_through_manager(manager):
    persisted(manager)
    managed = manager.find(1).value
    assert manager.lock(managed, "PESSIMISTIC_WRITE").ok
    assert manager.lock(managed, "OPTIMISTIC_FORCE_INCREMENT").ok
    assert managed.version == 1
    bad = manager.lock(managed, "WHATEVER")
    assert bad.kind is ErrorKind.LOCK
    assert not manager.is_transaction_active()


def test_lock_conflict_through_manager(manager, make_session):
    persisted(manager)
    holder = make_session()
    waiter = LifecycleManager(make_session(timeout=0.05))
    held = holder.find(Person, 1)
    holder.begin()
    holder.lock(held, "PESSIMISTIC_WRITE")

    result = waiter.lock(waiter.find(1).value, "PESSIMISTIC_WRITE")
    assert result.kind is ErrorKind.LOCK
    assert not waiter.is_transaction_active()
    holder.commit()


def test_flush_writes_pending_changes(manager, session):
    persisted(manager)
    manager.find(1).value.name = "Flushed"
    assert manager.flush().ok
    row = session.execute('SELECT "name", "version" FROM "person"').fetchone()
    assert tuple(row) == ("Flushed", 1)


def test_clear_detaches_but_leaves_registry(manager):
    person = persisted(manager)
    registry = InMemoryRegistry([person])
    managed = manager.find(1).value
    assert manager.clear().ok
    assert not manager.contains(managed)
    assert registry[0] is person


@pytest.mark.parametrize("attribute", ["NAME", "name", "Email"])
def test_update_in_store_accepts_attribute_names_case_insensitively(manager, attribute):
    persisted(manager)
    result = manager.update_in_store(1, attribute, "value@x.com")
    assert result.ok
    assert result.message == "Person updated successfully."


def test_update_in_store_missing_person(manager):
    result = manager.update_in_store(3, "name", "x")
    assert result.kind is ErrorKind.NOT_FOUND
    assert result.message.startswith("No Person found with ID 3.")


def test_update_in_store_rejects_other_attributes(manager, session):
    persisted(manager)
    result = manager.update_in_store(1, "version", 10)
    assert result.kind is ErrorKind.INVALID_ATTRIBUTE
    assert result.message == "Invalid attribute. Only 'name' and 'email' can be updated."
    row = session.execute('SELECT "name", "email", "version" FROM "person"').fetchone()
    assert tuple(row) == ("Alice", "alice@x.com", 0)


def test_update_in_store_rejects_invalid_value(manager):
    persisted(manager)
    result = manager.update_in_store(1, "name", "x" * 300)
    assert result.kind is ErrorKind.INVALID_ATTRIBUTE
    assert not manager.is_transaction_active()


def test_metamodel_and_describe(manager):
    person = persisted(manager)
    metamodel = manager.metamodel()
    assert metamodel.value == {"Person": ["id", "name", "email", "version"]}

    described = manager.describe(person)
    assert described.value == [("id", 1), ("name", "Alice"), ("email", "alice@x.com"), ("version", 0)]
    assert described.message.splitlines()[0] == "Attributes of Person with ID 1:"
    assert "- email: alice@x.com" in described.message


def test_closed_session_reports_session_closed(manager):
    manager.close()
    manager.close()
    assert not manager.is_session_open()
    assert manager.find(1).kind is ErrorKind.SESSION_CLOSED
    assert manager.persist(Person(name="Late")).kind is ErrorKind.SESSION_CLOSED
    assert manager.metamodel().kind is ErrorKind.SESSION_CLOSED
    assert manager.contains(Person(id=1)) is False


def test_failing_hook_rolls_back_and_reports_persistence(manager):
    def refuse(instance, **context):
        raise ValueError("refused by hook")

    hooks.register("pre_persist", refuse)
    person = Person(name="Alice", email="alice@x.com")
    result = manager.persist(person)
    assert result.kind is ErrorKind.PERSISTENCE
    assert result.message == "refused by hook"
    assert isinstance(result.error.__cause__, ValueError)
    assert not manager.is_transaction_active()

    hooks.clear()
    assert manager.persist(person).ok


def test_failing_update_hook_leaves_row_unchanged(manager):
    persisted(manager)
    hooks.register("pre_update", lambda instance, **context: 1 / 0)
    result = manager.update_in_store(1, "name", "Bob")
    assert result.kind is ErrorKind.PERSISTENCE
    assert not manager.is_transaction_active()

    hooks.clear()
    manager.clear()
    assert manager.find(1).value.name == "Alice"
