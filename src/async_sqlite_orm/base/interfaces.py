# src/async_sqlite_orm/base/interfaces.py

from abc import ABC, abstractmethod
from typing import Callable, ClassVar, Dict, Type

from async_sqlite_orm.base.types import TypedValue

Setter = Callable[["MappedObject", TypedValue], None]


class MappedObject(ABC):
    """
    Base interface for host records that can be populated from a row.

    A mapped type names the Entity that describes it and accepts
    `(key, TypedValue)` pairs one field at a time. Keys it does not know are
    ignored; rows may carry more columns than the record has fields.
    """

    entity_name: ClassVar[str]

    @abstractmethod
    def set_value(self, key: str, value: TypedValue) -> None:
        """
        Assign one field by its logical key.

        Args:
            key: The property key as declared on the Entity.
            value: The value read from the row, tagged with its storage class.
        """
        pass


class DispatchMappedObject(MappedObject):
    """
    MappedObject whose `set_value` dispatches through a fixed setter table.

    Subclasses declare `setters`, a mapping from logical key to a function
    taking `(instance, value)`. Lookups never fall back to attribute
    reflection.
    """

    setters: ClassVar[Dict[str, Setter]] = {}

    def set_value(self, key: str, value: TypedValue) -> None:
        setter = self.setters.get(key)
        if setter is not None:
            setter(self, value)


def mapped_type_name(mapped_type: Type[MappedObject]) -> str:
    """Return the entity name a mapped type reports."""
    name = getattr(mapped_type, "entity_name", None)
    if not isinstance(name, str):
        raise TypeError(f"{mapped_type!r} does not declare an entity_name")
    return name
