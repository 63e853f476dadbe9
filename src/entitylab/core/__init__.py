"""
Core building blocks: fields, model metadata, lifecycle rules, and the Person entity.
"""

from .fields import AutoField, Field, IntegerField, StringField, VersionField
from .lifecycle import EntityState, LockMode, ensure_transition
from .model import Model, ModelConfigurationError, ModelMeta, ModelOptions
from .person import FIND_BY_NAME, PERSON_RESULT, Person

__all__ = [
    "AutoField",
    "Field",
    "IntegerField",
    "StringField",
    "VersionField",
    "EntityState",
    "LockMode",
    "ensure_transition",
    "Model",
    "ModelConfigurationError",
    "ModelMeta",
    "ModelOptions",
    "Person",
    "FIND_BY_NAME",
    "PERSON_RESULT",
]
