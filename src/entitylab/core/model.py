"""
Model base classes and metadata orchestration for EntityLab.
"""

from __future__ import annotations

import re
from collections import OrderedDict
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

from .fields import AutoField, Field, VersionField


class ModelConfigurationError(Exception):
    """Raised when a model class is misconfigured."""


def _table_name_for(class_name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", class_name).lower()


Accessor = Callable[[Any], Any]


@dataclass
class ModelOptions:
    """
    Container for model metadata calculated by :class:`ModelMeta`.

    The ordered field mapping doubles as the static schema descriptor: no
    attribute enumeration happens at runtime.
    """

    model: Type["Model"]
    table_name: str = ""
    fields: "OrderedDict[str, Field]" = field(default_factory=OrderedDict)
    primary_key: Optional[Field] = None
    version_field: Optional[Field] = None
    named_queries: Dict[str, str] = field(default_factory=dict)
    result_set_mappings: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def add_field(self, field_obj: Field) -> None:
        if field_obj.name in self.fields:
            raise ModelConfigurationError(
                f"Duplicate field name '{field_obj.name}' on model '{self.model.__name__}'"
            )
        self.fields[field_obj.name] = field_obj
        if field_obj.primary_key:
            if self.primary_key and self.primary_key is not field_obj:
                raise ModelConfigurationError(
                    f"Multiple primary keys defined on model '{self.model.__name__}'"
                )
            self.primary_key = field_obj
        if isinstance(field_obj, VersionField):
            if self.version_field and self.version_field is not field_obj:
                raise ModelConfigurationError(
                    f"Multiple version fields defined on model '{self.model.__name__}'"
                )
            self.version_field = field_obj

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    def get_field(self, name: str) -> Field:
        try:
            return self.fields[name]
        except KeyError as exc:
            raise KeyError(f"Unknown field '{name}' on model '{self.model.__name__}'") from exc

    def get_fields(self) -> Iterable[Field]:
        return self.fields.values()

    def mutable_fields(self) -> List[Field]:
        """
        Fields a caller may change: everything but the identity and the version.
        """
        return [
            f for f in self.fields.values() if not f.primary_key and f is not self.version_field
        ]

    def find_mutable_field(self, name: str) -> Optional[Field]:
        """Case-insensitive lookup restricted to :meth:`mutable_fields`."""
        wanted = str(name).strip().lower()
        for f in self.mutable_fields():
            if f.require_name().lower() == wanted:
                return f
        return None

    def descriptor(self) -> List[Tuple[str, Accessor]]:
        return [(name, attrgetter(name)) for name in self.fields]


TModel = TypeVar("TModel", bound="Model")


class ModelMeta(type):
    """
    Metaclass responsible for collecting fields and establishing metadata.
    """

    def __new__(mcls, name: str, bases: tuple[type, ...], attrs: Dict[str, Any]) -> "ModelMeta":
        if name == "Model" and not bases:
            return super().__new__(mcls, name, bases, attrs)

        declared_fields: Dict[str, Field] = {}
        for attr_name, value in list(attrs.items()):
            if isinstance(value, Field):
                declared_fields[attr_name] = attrs.pop(attr_name)

        cls = super().__new__(mcls, name, bases, attrs)

        meta = getattr(cls, "Meta", None)
        cls._meta = ModelOptions(
            model=cls,
            table_name=getattr(meta, "table", _table_name_for(name)),
            named_queries=dict(getattr(meta, "named_queries", {})),
            result_set_mappings={
                key: dict(value) for key, value in getattr(meta, "result_set_mappings", {}).items()
            },
        )

        if not any(f.primary_key for f in declared_fields.values()):
            if "id" in declared_fields:
                raise ModelConfigurationError(
                    f"Model '{name}' defines a field named 'id' but no primary key."
                )
            declared_fields = {"id": AutoField(), **declared_fields}

        sorted_fields = sorted(
            declared_fields.items(),
            key=lambda item: (0 if item[1].primary_key else 1, item[1].creation_counter),
        )
        for attr_name, field_obj in sorted_fields:
            field_obj.contribute_to_class(cls, attr_name)
            cls._meta.add_field(field_obj)

        return cls


class Model(metaclass=ModelMeta):
    """
    Base model providing data container functionality.
    Persistence operations are supplied by the session.
    """

    _meta: ModelOptions

    def __init__(self, **kwargs: Any) -> None:
        self._field_values: Dict[str, Any] = {}
        self._initial_state: Dict[str, Any] = {}

        for field in self._meta.get_fields():
            if field.name in kwargs:
                setattr(self, field.name, kwargs[field.name])
            elif field.has_default:
                setattr(self, field.name, field.get_default())

        # Retain snapshot for simple dirty tracking
        self._initial_state = dict(self._field_values)

    def __repr__(self) -> str:
        field_parts = ", ".join(
            f"{name}={getattr(self, name)!r}" for name in self._meta.fields
        )
        return f"<{self.__class__.__name__} {field_parts}>"

    @property
    def pk(self) -> Any:
        if not self._meta.primary_key:
            raise ModelConfigurationError(
                f"Model '{self.__class__.__name__}' does not define a primary key."
            )
        return getattr(self, self._meta.primary_key.require_name())

    @property
    def lock_version(self) -> int:
        version_field = self._meta.version_field
        if version_field is None:
            return 0
        return getattr(self, version_field.require_name())

    def to_dict(self) -> Dict[str, Any]:
        return {name: accessor(self) for name, accessor in self._meta.descriptor()}

    def describe(self) -> List[Tuple[str, Any]]:
        return [(name, accessor(self)) for name, accessor in self._meta.descriptor()]

    def copy(self: TModel) -> TModel:
        clone = self.__class__(**self.to_dict())
        return clone

    def apply(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self._meta.get_field(name)
            setattr(self, name, value)

    def changed_fields(self) -> Dict[str, Any]:
        return {
            field.require_name(): getattr(self, field.require_name())
            for field in self._meta.mutable_fields()
            if self._field_values.get(field.name) != self._initial_state.get(field.name)
        }

    def is_dirty(self) -> bool:
        return bool(self.changed_fields())

    def mark_clean(self) -> None:
        self._initial_state = dict(self._field_values)
