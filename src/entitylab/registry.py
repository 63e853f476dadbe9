"""
Caller-owned in-memory list of people that may diverge from the store.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional

from .core.person import Person


class InMemoryRegistry:
    """
    Ordered collection of :class:`Person` values owned by the caller.

    The registry is never synchronised with the store automatically; only the
    reconciler writes into it.
    """

    def __init__(self, people: Optional[Iterable[Person]] = None) -> None:
        self._people: List[Person] = list(people or [])

    def find_by_id(self, pk: Any) -> Optional[Person]:
        if pk is None:
            return None
        for person in self._people:
            if person.id == pk:
                return person
        return None

    def find_by_name(self, name: str) -> Optional[Person]:
        for person in self._people:
            if person.name == name:
                return person
        return None

    def index_of(self, person: Person) -> int:
        """
        Position of ``person`` by object identity, ``-1`` if it is not held.
        """
        for index, candidate in enumerate(self._people):
            if candidate is person:
                return index
        return -1

    def replace_at(self, index: int, person: Person) -> None:
        self._people[index] = person

    def append(self, person: Person) -> None:
        self._people.append(person)

    def snapshot(self) -> List[Dict[str, Any]]:
        return [person.to_dict() for person in self._people]

    def __iter__(self) -> Iterator[Person]:
        return iter(list(self._people))

    def __len__(self) -> int:
        return len(self._people)

    def __getitem__(self, index: int) -> Person:
        return self._people[index]

    def __repr__(self) -> str:
        return f"<InMemoryRegistry size={len(self._people)}>"


SEED_PEOPLE = (
    ("John Smith", "john@gmail.com"),
    ("James Johnson", "james@gmail.com"),
    ("Mary Williams", "mary@gmail.com"),
    ("Patricia Brown", "patricia@gmail.com"),
    ("Robert Jones", "robert@gmail.com"),
    ("Michael Miller", "michael@gmail.com"),
    ("Linda Davis", "linda@gmail.com"),
    ("Elizabeth Garcia", "elizabeth@gmail.com"),
    ("Charles Rodriguez", "charles@gmail.com"),
    ("Jennifer Wilson", "jennifer@gmail.com"),
)


def seed_people() -> InMemoryRegistry:
    """Registry holding the ten transient demo people."""
    return InMemoryRegistry(Person(name=name, email=email) for name, email in SEED_PEOPLE)
