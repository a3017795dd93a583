# src/async_sqlite_orm/schema/registry.py

import logging
from typing import Dict, Iterator, Mapping, Optional, Type, Union

from async_sqlite_orm.base.definition_exceptions import (EntityDefinitionError,
                                                         UnknownEntityError)
from async_sqlite_orm.base.interfaces import MappedObject, mapped_type_name
from async_sqlite_orm.schema.entity import Entity

logger = logging.getLogger(__name__)

EntityRef = Union[str, Entity, Type[MappedObject]]


class EntityRegistry(Mapping[str, Entity]):
    """
    Explicit table of Entities, keyed by entity name.

    Build one at startup with every mapped type the application uses and hand
    it to the DatabaseContext. Registering an entity seals it.
    """

    def __init__(self, *entities: Entity):
        self._entities: Dict[str, Entity] = {}
        for entity in entities:
            self.register(entity)

    def register(self, entity: Entity, replace: bool = False) -> Entity:
        """
        Add an entity and seal it.

        Raises:
            EntityDefinitionError: If another entity with the same name or the
                same table is registered and `replace` is False.
        """
        existing = self._entities.get(entity.name)
        if existing is not None and existing is not entity and not replace:
            raise EntityDefinitionError(f"Entity '{entity.name}' is already registered")
        for other in self._entities.values():
            if other.name != entity.name and other.table_name == entity.table_name:
                raise EntityDefinitionError(
                    f"Table '{entity.table_name}' is already mapped by entity '{other.name}'"
                )
        entity.seal()
        self._entities[entity.name] = entity
        logger.debug(f"Registered entity '{entity.name}' (table '{entity.table_name}')")
        return entity

    def get_entity(self, name: str) -> Optional[Entity]:
        return self._entities.get(name)

    def resolve(self, ref: EntityRef) -> Entity:
        """
        Resolve an entity reference.

        Args:
            ref: An Entity, an entity name, or a MappedObject subclass naming
                 its entity through `entity_name`.

        Raises:
            UnknownEntityError: If nothing is registered under the name.
        """
        if isinstance(ref, Entity):
            name = ref.name
        elif isinstance(ref, str):
            name = ref
        else:
            name = mapped_type_name(ref)
        entity = self._entities.get(name)
        if entity is None:
            raise UnknownEntityError(f"No entity registered under the name '{name}'")
        return entity

    def __getitem__(self, name: str) -> Entity:
        return self._entities[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)
