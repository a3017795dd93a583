import pytest
import pytest_asyncio

from async_sqlite_orm.base.config import ContextSettings
from async_sqlite_orm.base.definition_exceptions import MissingPrimaryKeyError
from async_sqlite_orm.base.exceptions import BindError
from async_sqlite_orm.base.types import SQLType, TypedValue
from async_sqlite_orm.mapping.record_mapper import RecordMapper
from async_sqlite_orm.schema.entity import Entity
from async_sqlite_orm.schema.property import Property
from async_sqlite_orm.sqlite.connection import DatabaseConnection, StepResult
from tests.conftest import Person, Sample, make_person_entity, make_sample_entity


@pytest_asyncio.fixture
async def connection():
    conn = await DatabaseConnection.open(ContextSettings())
    try:
        yield conn
    finally:
        await conn.close()


# =============================================================================
# Tests for parameters_for
# =============================================================================

def test_parameters_skip_unknown_keys():
    entity = make_person_entity(with_city=True)
    keys, values = RecordMapper.parameters_for(
        entity, {"name": "Ada", "shoe_size": 9, "id": 3}
    )
    assert keys == ["name", "id"]
    assert values == [TypedValue.text("Ada"), TypedValue.integer(3)]


def test_parameters_accept_pairs():
    entity = make_person_entity()
    keys, _ = RecordMapper.parameters_for(entity, [("id", 1), ("name", None)])
    assert keys == ["id", "name"]


def test_parameters_widen_integer_for_float_column():
    _, values = RecordMapper.parameters_for(make_sample_entity(), {"ratio": 2})
    assert values == [TypedValue.real(2.0)]


def test_parameters_reject_type_mismatch():
    with pytest.raises(BindError, match="Person.id"):
        RecordMapper.parameters_for(make_person_entity(), {"id": "seven"})


def test_primary_key_parameter():
    entity = make_person_entity()
    assert RecordMapper.primary_key_parameter(entity, 5) == TypedValue.integer(5)
    with pytest.raises(BindError):
        RecordMapper.primary_key_parameter(entity, b"5")


def test_primary_key_parameter_requires_primary_key():
    entity = Entity(name="Log", table_name="log", factory=Person)
    entity.add_property(Property(key="line", column_name="line", sql_type=SQLType.TEXT))
    with pytest.raises(MissingPrimaryKeyError):
        RecordMapper.primary_key_parameter(entity, 1)


def test_populate_sets_each_value():
    person = RecordMapper.populate(
        make_person_entity(), ["id", "name"], [TypedValue.integer(1), TypedValue.text("Ada")]
    )
    assert isinstance(person, Person)
    assert (person.id, person.name) == (1, "Ada")


# =============================================================================
# Tests for binding and extraction
# =============================================================================

async def test_bind_values_rejects_raw_python_values(connection):
    async with connection.prepared("SELECT ?") as statement:
        with pytest.raises(BindError):
            RecordMapper.bind_values(statement, [5])


async def test_bind_and_extract_every_storage_class(connection):
    entity = make_sample_entity()
    await connection.execute(entity.schema_sql())
    keys, values = RecordMapper.parameters_for(
        entity,
        {
            "id": 1,
            "count": -3,
            "ratio": 0.5,
            "label": "first",
            "payload": b"\x00\xff",
            "note": None,
        },
    )
    async with connection.prepared(entity.insert_sql_for_keys(keys)) as statement:
        RecordMapper.bind_values(statement, values)
        assert await statement.step() is StepResult.DONE

    async with connection.prepared(entity.select_sql()) as statement:
        assert await statement.step() is StepResult.ROW
        assert RecordMapper.read_value(statement, 4) == TypedValue.blob(b"\x00\xff")
        sample = RecordMapper.extract_row(statement, entity)

    assert isinstance(sample, Sample)
    assert sample.id == 1
    assert sample.count == -3
    assert sample.ratio == 0.5
    assert sample.label == "first"
    assert sample.payload == b"\x00\xff"
    assert sample.note is None


async def test_extract_row_ignores_unmapped_columns(connection):
    entity = make_person_entity()
    async with connection.prepared("SELECT 4 AS id, 'Bo' AS name, 99 AS extra") as statement:
        await statement.step()
        person = RecordMapper.extract_row(statement, entity)
    assert (person.id, person.name) == (4, "Bo")
    assert not hasattr(person, "extra")
