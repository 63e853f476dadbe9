import pytest

from entitylab.core import Person
from entitylab.errors import EntityNotFoundError, NotFoundError
from entitylab.persistence import EntityReference


@pytest.fixture
def stored(session):
    session.begin()
    session.persist(Person(name="Alice", email="alice@x.com"))
    session.commit()
    session.clear()
    return session


def spy_on_store(monkeypatch, session):
    statements = []
    original = session.adapter.execute

    def execute(sql, params=None):
        statements.append(sql)
        return original(sql, params)

    monkeypatch.setattr(session.adapter, "execute", execute)
    return statements


def test_reference_does_not_touch_store(monkeypatch, stored):
    statements = spy_on_store(monkeypatch, stored)
    reference = stored.get_reference(Person, 1)

    assert isinstance(reference, EntityReference)
    assert reference.id == 1
    assert not reference.is_initialized
    assert "uninitialized" in repr(reference)
    assert statements == []


def test_reference_loads_on_first_field_access(monkeypatch, stored):
    reference = stored.get_reference(Person, 1)
    statements = spy_on_store(monkeypatch, stored)

    assert reference.name == "Alice"
    assert reference.is_initialized
    assert len(statements) == 1
    assert reference.email == "alice@x.com"
    assert len(statements) == 1
    assert stored.contains(reference)


def test_reference_to_missing_row_fails_on_access(stored):
    reference = stored.get_reference(Person, 999)
    with pytest.raises(EntityNotFoundError) as excinfo:
        reference.name
    assert isinstance(excinfo.value, NotFoundError)
    assert str(excinfo.value) == "Unable to find Person with id 999"


def test_reference_writes_go_to_the_managed_instance(stored):
    reference = stored.get_reference(Person, 1)
    reference.name = "Changed"
    stored.begin()
    stored.commit()
    assert stored.find(Person, 1).name == "Changed"
    assert str(reference) == "Id: 1, Name: Changed, Email: alice@x.com"


def test_reference_of_managed_identity_is_the_instance(stored):
    managed = stored.find(Person, 1)
    assert stored.get_reference(Person, 1) is managed
