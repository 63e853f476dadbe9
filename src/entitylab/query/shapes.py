"""
Result shapes for native queries.

The caller picks the shape; each variant has one fixed decoding contract:

* :class:`UntypedRows` returns plain tuples.
* :class:`TypedRows` returns managed entities, hydrated through the session's
  persistence context. The result set must carry every entity column.
* :class:`MappedRows` applies a result-set mapping declared on the entity and
  returns detached values that the session does not track.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Sequence, Tuple, Union

from ..core.model import Model
from ..errors import RawQueryError

if TYPE_CHECKING:
    from ..persistence.session import Session

Row = Sequence[Any]


@dataclass(frozen=True)
class UntypedRows:
    def decode(self, session: "Session", columns: List[str], rows: Iterable[Row]) -> List[Tuple[Any, ...]]:
        return [tuple(row) for row in rows]


@dataclass(frozen=True)
class TypedRows:
    model: type[Model]

    def decode(self, session: "Session", columns: List[str], rows: Iterable[Row]) -> List[Model]:
        meta = self.model._meta
        known = {f.column_name() for f in meta.get_fields()}
        unknown = [column for column in columns if column not in known]
        if unknown:
            raise RawQueryError(
                f"Columns {unknown} do not map to fields of {meta.entity_name}"
            )
        missing = [column for column in sorted(known) if column not in columns]
        if missing:
            raise RawQueryError(
                f"Result set for {meta.entity_name} is missing columns {missing}"
            )
        try:
            return [
                session.hydrate(self.model, session.values_from_row(self.model, columns, row))
                for row in rows
            ]
        except ValueError as exc:
            raise RawQueryError(f"Cannot decode row as {meta.entity_name}: {exc}") from exc


@dataclass(frozen=True)
class MappedRows:
    name: str
    model: type[Model]
    mapping: Dict[str, str] = field(default_factory=dict)  # column -> field

    def decode(self, session: "Session", columns: List[str], rows: Iterable[Row]) -> List[Model]:
        missing = [column for column in self.mapping if column not in columns]
        if missing:
            raise RawQueryError(f"Result set mapping '{self.name}' requires columns {missing}")
        positions = {column: index for index, column in enumerate(columns)}
        values: List[Model] = []
        try:
            for row in rows:
                instance = self.model(
                    **{name: row[positions[column]] for column, name in self.mapping.items()}
                )
                instance.mark_clean()
                values.append(instance)
        except ValueError as exc:
            raise RawQueryError(f"Cannot decode row with mapping '{self.name}': {exc}") from exc
        return values


ResultShape = Union[UntypedRows, TypedRows, MappedRows]


def resolve_shape(shape: Any, models: Iterable[type[Model]]) -> ResultShape:
    """
    Turn the call-site ``shape`` argument into a result shape variant.

    ``None`` selects untyped rows, a model class typed rows, and a string the
    result-set mapping of that name.
    """
    if shape is None:
        return UntypedRows()
    if isinstance(shape, (UntypedRows, TypedRows, MappedRows)):
        return shape
    if isinstance(shape, type) and issubclass(shape, Model):
        return TypedRows(shape)
    if isinstance(shape, str):
        for model in models:
            mapping = model._meta.result_set_mappings.get(shape)
            if mapping is not None:
                return MappedRows(shape, model, dict(mapping))
        raise RawQueryError(f"No result set mapping named '{shape}'")
    raise RawQueryError(f"Unsupported result shape {shape!r}")
