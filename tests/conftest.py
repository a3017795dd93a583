# tests/conftest.py
import logging
from typing import Optional

import pytest
import pytest_asyncio

from async_sqlite_orm.base.interfaces import DispatchMappedObject
from async_sqlite_orm.base.types import SQLType, TypedValue
from async_sqlite_orm.db_implementations.database_context import DatabaseContext
from async_sqlite_orm.schema.entity import Entity
from async_sqlite_orm.schema.property import Property
from async_sqlite_orm.schema.registry import EntityRegistry
from async_sqlite_orm.schema.relationship import Relationship


# --- Logger Fixture ---


@pytest.fixture(scope="session")
def logger():
    """Create a test logger."""
    _logger = logging.getLogger("test_orm_logger")
    if not _logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.setLevel(logging.DEBUG)
        _logger.addHandler(handler)
        _logger.setLevel(logging.DEBUG)
        _logger.propagate = False
    return logging.LoggerAdapter(_logger, {})


# --- Test Models ---


def _optional(value: TypedValue, reader):
    return None if value.is_null else reader(value)


def _set_person_id(person: "Person", value: TypedValue) -> None:
    person.id = _optional(value, TypedValue.as_int)


def _set_person_name(person: "Person", value: TypedValue) -> None:
    person.name = _optional(value, TypedValue.as_text)


def _set_person_city(person: "Person", value: TypedValue) -> None:
    person.city = _optional(value, TypedValue.as_text)


def _set_person_address_id(person: "Person", value: TypedValue) -> None:
    person.address_id = _optional(value, TypedValue.as_int)


class Person(DispatchMappedObject):
    """Record used by most CRUD tests."""

    entity_name = "Person"
    setters = {
        "id": _set_person_id,
        "name": _set_person_name,
        "city": _set_person_city,
        "address_id": _set_person_address_id,
    }

    def __init__(self):
        self.id: Optional[int] = None
        self.name: Optional[str] = None
        self.city: Optional[str] = None
        self.address_id: Optional[int] = None


class Address(DispatchMappedObject):
    entity_name = "Address"
    setters = {
        "id": lambda address, value: setattr(address, "id", value.value),
        "street": lambda address, value: setattr(address, "street", value.value),
    }

    def __init__(self):
        self.id: Optional[int] = None
        self.street: Optional[str] = None


class Sample(DispatchMappedObject):
    """Record with one field per storage class."""

    entity_name = "Sample"

    def __init__(self):
        self.id: Optional[int] = None
        self.count: Optional[int] = None
        self.ratio: Optional[float] = None
        self.label: Optional[str] = None
        self.payload: Optional[bytes] = None
        self.note: Optional[str] = None

    def set_value(self, key: str, value: TypedValue) -> None:
        if key == "id":
            self.id = value.value
        elif key == "count":
            self.count = value.value
        elif key == "ratio":
            self.ratio = value.value
        elif key == "label":
            self.label = value.value
        elif key == "payload":
            self.payload = value.value
        elif key == "note":
            self.note = value.value


def make_person_entity(with_city: bool = False, with_address: bool = False) -> Entity:
    """Person(id INTEGER PRIMARY KEY, name TEXT[, city TEXT][, address_id INTEGER])."""
    entity = Entity(name="Person", table_name="person", factory=Person)
    entity.add_property(
        Property(key="id", column_name="id", sql_type=SQLType.INTEGER),
        is_primary_key=True,
    )
    entity.add_property(Property(key="name", column_name="name", sql_type=SQLType.TEXT))
    if with_city:
        entity.add_property(Property(key="city", column_name="city", sql_type=SQLType.TEXT))
    if with_address:
        entity.add_property(
            Property(key="address_id", column_name="address_id", sql_type=SQLType.INTEGER)
        )
        entity.add_relationship(
            Relationship(property_key="address_id", foreign_entity_name="Address")
        )
    return entity


def make_address_entity() -> Entity:
    entity = Entity(name="Address", table_name="address", factory=Address)
    entity.add_property(
        Property(key="id", column_name="id", sql_type=SQLType.INTEGER),
        is_primary_key=True,
    )
    entity.add_property(Property(key="street", column_name="street", sql_type=SQLType.TEXT))
    return entity


def make_sample_entity() -> Entity:
    entity = Entity(name="Sample", table_name="samples", factory=Sample)
    entity.add_property(
        Property(key="id", column_name="sample_id", sql_type=SQLType.INTEGER),
        is_primary_key=True,
    )
    entity.add_property(
        Property(key="count", column_name="count", sql_type=SQLType.INTEGER, non_null=True)
    )
    entity.add_property(Property(key="ratio", column_name="ratio", sql_type=SQLType.FLOAT))
    entity.add_property(
        Property(key="label", column_name="label", sql_type=SQLType.TEXT, unique=True)
    )
    entity.add_property(Property(key="payload", column_name="payload", sql_type=SQLType.BLOB))
    entity.add_property(Property(key="note", column_name="note", sql_type=SQLType.TEXT))
    return entity


# --- Registry and Context Fixtures ---


@pytest.fixture
def person_entity() -> Entity:
    return make_person_entity(with_city=True)


@pytest.fixture
def registry() -> EntityRegistry:
    return EntityRegistry(
        make_person_entity(with_city=True, with_address=True),
        make_address_entity(),
        make_sample_entity(),
    )


@pytest_asyncio.fixture
async def context(registry, logger):
    """An initialized in-memory context with all test entities."""
    ctx = DatabaseContext(":memory:", registry)
    failed = await ctx.initialize_database(logger)
    assert failed == []
    try:
        yield ctx
    finally:
        if ctx.is_open:
            await ctx.close(logger)
