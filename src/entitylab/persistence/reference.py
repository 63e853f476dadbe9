"""
Lazy entity references returned by ``Session.get_reference``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Type

from ..core.model import Model
from ..errors import EntityNotFoundError

if TYPE_CHECKING:
    from .session import Session


class EntityReference:
    """
    Handle to an entity that is only loaded on first field access.

    Creating a reference never touches the store; reading ``pk``/``id`` does
    not either. Any other attribute access loads the row through the session
    and raises :class:`EntityNotFoundError` if it does not exist.
    """

    __slots__ = ("_session", "_model", "_pk", "_target")

    def __init__(self, session: "Session", model: Type[Model], pk: Any) -> None:
        object.__setattr__(self, "_session", session)
        object.__setattr__(self, "_model", model)
        object.__setattr__(self, "_pk", pk)
        object.__setattr__(self, "_target", None)

    @property
    def pk(self) -> Any:
        return self._pk

    @property
    def id(self) -> Any:
        return self._pk

    @property
    def model(self) -> Type[Model]:
        return self._model

    @property
    def is_initialized(self) -> bool:
        return self._target is not None

    def unwrap(self) -> Model:
        target = self._target
        if target is None:
            target = self._session.find(self._model, self._pk)
            if target is None:
                raise EntityNotFoundError(
                    f"Unable to find {self._model.__name__} with id {self._pk}"
                )
            object.__setattr__(self, "_target", target)
        return target

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return getattr(self.unwrap(), name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.unwrap(), name, value)

    def __str__(self) -> str:
        return str(self.unwrap())

    def __repr__(self) -> str:
        if self._target is None:
            return f"<EntityReference {self._model.__name__} id={self._pk!r} (uninitialized)>"
        return f"<EntityReference {self._target!r}>"
