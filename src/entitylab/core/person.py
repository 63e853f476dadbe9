"""
The single entity kind managed by EntityLab.
"""

from __future__ import annotations

from .fields import StringField, VersionField
from .model import Model

FIND_BY_NAME = "Person.findByName"
PERSON_RESULT = "PersonResult"


class Person(Model):
    name = StringField(nullable=True)
    email = StringField(nullable=True, unique=True)
    version = VersionField()

    class Meta:
        table = "person"
        named_queries = {
            FIND_BY_NAME: "SELECT p FROM Person p WHERE p.name LIKE :name",
        }
        result_set_mappings = {
            PERSON_RESULT: {"id": "id", "name": "name", "email": "email"},
        }

    def __str__(self) -> str:
        return f"Id: {self.id}, Name: {self.name}, Email: {self.email}"
