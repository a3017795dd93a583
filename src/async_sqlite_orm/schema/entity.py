# src/async_sqlite_orm/schema/entity.py

import logging
from typing import (Callable, Dict, Iterable, List, Mapping, Optional, Tuple)

from async_sqlite_orm.base.definition_exceptions import (DuplicateColumnError,
                                                         DuplicatePropertyError,
                                                         EntityDefinitionError,
                                                         EntitySealedError)
from async_sqlite_orm.base.interfaces import MappedObject
from async_sqlite_orm.base.utils import (join_columns, placeholders,
                                         validate_identifier)
from async_sqlite_orm.schema.property import Property
from async_sqlite_orm.schema.relationship import Relationship

logger = logging.getLogger(__name__)

Factory = Callable[[], MappedObject]


class Entity:
    """
    Schema descriptor mapping one host record type to one table.

    An Entity owns an insertion-ordered set of Properties, an optional primary
    key, a list of Relationships and the factory that creates blank instances
    of the mapped type. It generates every SQL statement the context runs for
    that type; values never appear in the generated text, only `?`
    placeholders.

    Entities are mutable while being defined. Registering one with an
    EntityRegistry or DatabaseContext seals it, after which it is read-only
    and safe to share between tasks.
    """

    def __init__(self, name: str, table_name: str, factory: Factory):
        """
        Args:
            name: Logical registry key, unique within a context.
            table_name: Physical table name.
            factory: Zero-argument callable returning a new mapped object.
        """
        if not callable(factory):
            raise EntityDefinitionError(f"Factory for entity '{name}' is not callable")
        self.name = validate_identifier(name, "entity name")
        self.table_name = validate_identifier(table_name, "table name")
        self._factory = factory
        self._properties: Dict[str, Property] = {}
        self._relationships: List[Relationship] = []
        self._primary_key_property_key: Optional[str] = None
        self._sealed = False

    def __repr__(self) -> str:
        return (
            f"Entity(name={self.name!r}, table_name={self.table_name!r}, "
            f"properties={list(self._properties)!r}, "
            f"primary_key={self._primary_key_property_key!r})"
        )

    # --- Definition ---
    def add_property(self, property: Property, is_primary_key: bool = False) -> Property:
        """
        Register a property.

        Raises:
            DuplicatePropertyError: If the key is already registered.
            DuplicateColumnError: If another property uses the same column.
            EntityDefinitionError: If a second primary key is requested, or the
                primary key is UNKNOWN-typed.
            EntitySealedError: If the entity has been registered.
        """
        self._ensure_not_sealed()
        if property.key in self._properties:
            raise DuplicatePropertyError(
                f"Entity '{self.name}' already has a property with key '{property.key}'"
            )
        clash = self.property_for_column_name(property.column_name)
        if clash is not None:
            raise DuplicateColumnError(
                f"Column '{property.column_name}' of entity '{self.name}' is already "
                f"used by property '{clash.key}'"
            )
        if is_primary_key:
            if self._primary_key_property_key is not None:
                raise EntityDefinitionError(
                    f"Entity '{self.name}' already has primary key "
                    f"'{self._primary_key_property_key}'"
                )
            if not property.is_persistent:
                raise EntityDefinitionError(
                    f"Primary key '{property.key}' of entity '{self.name}' needs a SQL type"
                )
        self._properties[property.key] = property
        if is_primary_key:
            self._primary_key_property_key = property.key
        return property

    def add_relationship(self, relationship: Relationship) -> Relationship:
        """Register a relationship driven by an existing local property."""
        self._ensure_not_sealed()
        local = self._properties.get(relationship.property_key)
        if local is None or not local.is_persistent:
            raise EntityDefinitionError(
                f"Relationship on entity '{self.name}' refers to unknown property "
                f"'{relationship.property_key}'"
            )
        self._relationships.append(relationship)
        return relationship

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _ensure_not_sealed(self) -> None:
        if self._sealed:
            raise EntitySealedError(
                f"Entity '{self.name}' is registered and can no longer be modified"
            )

    # --- Lookup ---
    @property
    def properties(self) -> Tuple[Property, ...]:
        return tuple(self._properties.values())

    @property
    def persistent_properties(self) -> Tuple[Property, ...]:
        return tuple(p for p in self._properties.values() if p.is_persistent)

    @property
    def relationships(self) -> Tuple[Relationship, ...]:
        return tuple(self._relationships)

    @property
    def primary_key_property_key(self) -> Optional[str]:
        return self._primary_key_property_key

    @property
    def primary_key_property(self) -> Optional[Property]:
        if self._primary_key_property_key is None:
            return None
        return self._properties.get(self._primary_key_property_key)

    def property_for_key(self, key: str) -> Optional[Property]:
        return self._properties.get(key)

    def __getitem__(self, key: str) -> Optional[Property]:
        return self.property_for_key(key)

    def __contains__(self, key: str) -> bool:
        return key in self._properties

    def property_for_column_name(self, column_name: str) -> Optional[Property]:
        """Linear scan by column name; the first registered match wins."""
        for current in self._properties.values():
            if current.column_name == column_name:
                return current
        return None

    def resolvable_keys(self, keys: Iterable[str]) -> List[str]:
        """Keys that name a persistent property, in the given order."""
        resolved = []
        for key in keys:
            current = self._properties.get(key)
            if current is not None and current.is_persistent:
                resolved.append(key)
        return resolved

    def create(self) -> MappedObject:
        """Return a new blank instance of the mapped type."""
        return self._factory()

    # --- SQL Generation ---
    def schema_sql(self) -> str:
        """CREATE TABLE IF NOT EXISTS statement for this entity."""
        sql = f"CREATE TABLE IF NOT EXISTS {self.table_name}"
        fragments = []
        for current in self._properties.values():
            column_sql = current.column_definition()
            if column_sql is None:
                continue
            if current.key == self._primary_key_property_key:
                column_sql += " PRIMARY KEY"
            fragments.append(column_sql)
        if not fragments:
            return sql
        return f"{sql} ({join_columns(fragments)})"

    def columns_list_string(self) -> str:
        columns = [p.column_name for p in self.persistent_properties]
        if not columns:
            return "*"
        return join_columns(columns)

    def _qualified_columns_list_string(self) -> str:
        columns = [f"{self.table_name}.{p.column_name}" for p in self.persistent_properties]
        if not columns:
            return f"{self.table_name}.*"
        return join_columns(columns)

    def select_sql(self) -> str:
        return f"SELECT {self.columns_list_string()} FROM {self.table_name}"

    def find_by_row_id_sql(self) -> str:
        return f"SELECT {self.columns_list_string()} FROM {self.table_name} WHERE rowid = ?"

    def delete_sql(self) -> str:
        return f"DELETE FROM {self.table_name}"

    def delete_by_primary_key_sql(self) -> Optional[str]:
        pk = self.primary_key_property
        if pk is None:
            return None
        return f"DELETE FROM {self.table_name} WHERE {pk.column_name} = ?"

    def find_by_primary_key_sql(
        self,
        include_relationships: bool = True,
        entities: Optional[Mapping[str, "Entity"]] = None,
    ) -> Optional[str]:
        """
        SELECT statement fetching one row by primary key.

        Args:
            include_relationships: Add one LEFT JOIN per relationship.
            entities: Entities by name, used to resolve foreign entities.
                Relationships that cannot be resolved are left out.

        Returns:
            The SQL text, or None if the entity has no primary key.
        """
        pk = self.primary_key_property
        if pk is None:
            return None
        joins = self.join_clauses(entities) if include_relationships else []
        if not joins:
            return (
                f"SELECT {self.columns_list_string()} FROM {self.table_name} "
                f"WHERE {pk.column_name} = ?"
            )
        return (
            f"SELECT {self._qualified_columns_list_string()} FROM {self.table_name} "
            f"{' '.join(joins)} "
            f"WHERE {self.table_name}.{pk.column_name} = ?"
        )

    def join_clauses(self, entities: Optional[Mapping[str, "Entity"]]) -> List[str]:
        """
        LEFT JOIN clauses for every resolvable relationship, in registration order.

        Each joined table gets its own alias, `<foreign table>_<n>` with n
        counting the emitted joins from 1, so the same table can be joined
        several times and an entity can join its own table.
        """
        clauses = []
        for relationship in self._relationships:
            local = self._properties[relationship.property_key]
            foreign = entities.get(relationship.foreign_entity_name) if entities else None
            if foreign is None:
                logger.debug(
                    f"Dropping join from '{self.name}' to unknown entity "
                    f"'{relationship.foreign_entity_name}'"
                )
                continue
            if relationship.foreign_property_key is not None:
                foreign_property = foreign.property_for_key(relationship.foreign_property_key)
            else:
                foreign_property = foreign.primary_key_property
            if foreign_property is None or not foreign_property.is_persistent:
                logger.debug(
                    f"Dropping join from '{self.name}' to '{foreign.name}': "
                    f"no column to join on"
                )
                continue
            alias = f"{foreign.table_name}_{len(clauses) + 1}"
            clauses.append(
                f"LEFT JOIN {foreign.table_name} AS {alias} ON "
                f"{self.table_name}.{local.column_name} = "
                f"{alias}.{foreign_property.column_name}"
            )
        return clauses

    def insert_sql_for_keys(self, keys: Iterable[str]) -> Optional[str]:
        """
        INSERT statement with one column and one placeholder per resolvable key.

        Unknown keys are skipped so the column and placeholder lists stay
        aligned with `resolvable_keys(keys)`. Returns None if no key resolves.
        """
        resolved = self.resolvable_keys(keys)
        if not resolved:
            return None
        columns = [self._properties[key].column_name for key in resolved]
        return (
            f"INSERT INTO {self.table_name} ({join_columns(columns)}) "
            f"VALUES ({placeholders(len(columns))})"
        )

    def update_sql_for_keys(self, keys: Iterable[str]) -> Optional[str]:
        """
        UPDATE statement assigning each resolvable key, keyed by primary key.

        The primary key placeholder comes last. Returns None if the entity has
        no primary key or no key resolves.
        """
        pk = self.primary_key_property
        if pk is None:
            return None
        resolved = self.resolvable_keys(keys)
        if not resolved:
            return None
        assignments = [f"{self._properties[key].column_name} = ?" for key in resolved]
        return (
            f"UPDATE {self.table_name} SET {join_columns(assignments)} "
            f"WHERE {pk.column_name} = ?"
        )
