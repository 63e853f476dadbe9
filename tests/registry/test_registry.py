from entitylab.core import Person
from entitylab.registry import InMemoryRegistry, seed_people


def test_seed_people_are_ten_transient_values():
    registry = seed_people()
    assert len(registry) == 10
    assert all(person.id is None for person in registry)
    assert registry[0].name == "John Smith"
    assert registry[9].email == "jennifer@gmail.com"


def test_lookup_by_id_and_name():
    first = Person(id=1, name="A")
    second = Person(id=2, name="B")
    registry = InMemoryRegistry([first, second])

    assert registry.find_by_id(2) is second
    assert registry.find_by_id(None) is None
    assert registry.find_by_name("A") is first
    assert registry.find_by_name("a") is None


def test_index_of_uses_object_identity():
    first = Person(id=1, name="A")
    registry = InMemoryRegistry([first])
    assert registry.index_of(first) == 0
    assert registry.index_of(Person(id=1, name="A")) == -1


def test_replace_append_and_snapshot():
    registry = InMemoryRegistry()
    registry.append(Person(name="A", email="a@x.com"))
    registry.replace_at(0, Person(id=4, name="B", email="b@x.com", version=2))
    assert registry.snapshot() == [{"id": 4, "name": "B", "email": "b@x.com", "version": 2}]
