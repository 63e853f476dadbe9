import pytest

from entitylab.core import LockMode, Person
from entitylab.errors import (
    ConcurrencyConflictError,
    EntityNotFoundError,
    LockError,
    PersistenceError,
)


@pytest.fixture
def stored(session):
    session.begin()
    managed = session.persist(Person(name="Alice", email="alice@x.com"))
    session.commit()
    return managed


def stored_version(session):
    return session.execute('SELECT "version" FROM "person" WHERE "id" = ?', (1,)).fetchone()[0]


def test_lock_requires_active_transaction(session, stored):
    with pytest.raises(LockError):
        session.lock(stored, LockMode.PESSIMISTIC_WRITE)


def test_unknown_lock_mode_is_lock_error(session, stored):
    session.begin()
    with pytest.raises(LockError):
        session.lock(stored, "READ_COMMITTED")
    session.rollback()


def test_lock_of_unmanaged_entity_is_rejected(session, stored):
    session.clear()
    session.begin()
    with pytest.raises(PersistenceError):
        session.lock(Person(id=1, name="Alice", email="alice@x.com"), "OPTIMISTIC")
    session.rollback()


def test_optimistic_lock_rechecks_version_at_commit(make_session, session, stored):
    other = make_session()
    session.begin()
    session.lock(stored, "OPTIMISTIC")

    other.begin()
    other.find(Person, 1).name = "Changed elsewhere"
    other.commit()

    with pytest.raises(ConcurrencyConflictError):
        session.commit()


def test_optimistic_force_increment_bumps_version(session, stored):
    session.begin()
    session.lock(stored, LockMode.OPTIMISTIC_FORCE_INCREMENT)
    session.commit()

    assert stored.version == 1
    assert stored_version(session) == 1


def test_force_increment_with_pending_change_bumps_once(session, stored):
    session.begin()
    session.lock(stored, LockMode.OPTIMISTIC_FORCE_INCREMENT)
    stored.name = "Alicia"
    session.commit()
    assert stored_version(session) == 1


def test_pessimistic_write_blocks_second_writer(make_session, session, stored):
    other = make_session(timeout=0.05)
    theirs = other.find(Person, 1)

    session.begin()
    session.lock(stored, LockMode.PESSIMISTIC_WRITE)

    other.begin()
    with pytest.raises(LockError):
        other.lock(theirs, LockMode.PESSIMISTIC_WRITE)
    other.rollback()

    session.commit()
    assert stored_version(session) == 0


def test_pessimistic_read_blocks_concurrent_commit(make_session, session, stored):
    other = make_session(timeout=0.05)
    theirs = other.find(Person, 1)

    session.begin()
    session.lock(stored, LockMode.PESSIMISTIC_READ)

    other.begin()
    theirs.name = "Blocked"
    with pytest.raises(LockError):
        other.commit()
    assert not other.is_transaction_active

    session.commit()
    assert other.find(Person, 1).name == "Alice"


def test_pessimistic_lock_detects_stale_instance(make_session, session, stored):
    other = make_session()
    other.begin()
    other.find(Person, 1).email = "new@x.com"
    other.commit()

    session.begin()
    with pytest.raises(ConcurrencyConflictError):
        session.lock(stored, LockMode.PESSIMISTIC_WRITE)
    session.rollback()


def test_pessimistic_lock_on_deleted_row(session, stored):
    session.execute('DELETE FROM "person" WHERE "id" = ?', (1,))
    session.begin()
    with pytest.raises(EntityNotFoundError):
        session.lock(stored, LockMode.PESSIMISTIC_WRITE)
    session.rollback()


def test_lock_mode_none_is_accepted(session, stored):
    session.begin()
    session.lock(stored, "NONE")
    session.commit()
    assert stored_version(session) == 0


def test_lock_initializes_an_unloaded_reference(session, stored):
    session.clear()
    reference = session.get_reference(Person, 1)
    session.begin()
    session.lock(reference, "PESSIMISTIC_WRITE")
    assert reference.is_initialized
    assert session.contains(reference)
    session.commit()


def test_lock_of_reference_to_missing_row_is_not_found(session, stored):
    reference = session.get_reference(Person, 999)
    session.begin()
    with pytest.raises(EntityNotFoundError):
        session.lock(reference, "PESSIMISTIC_READ")
    session.rollback()
