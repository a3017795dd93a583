# src/async_sqlite_orm/mapping/record_mapper.py

import logging
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union

from async_sqlite_orm.base.definition_exceptions import MissingPrimaryKeyError
from async_sqlite_orm.base.exceptions import BindError
from async_sqlite_orm.base.interfaces import MappedObject
from async_sqlite_orm.base.types import SQLType, TypedValue
from async_sqlite_orm.schema.entity import Entity
from async_sqlite_orm.sqlite.connection import Statement

logger = logging.getLogger(__name__)

KeyValues = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def _pairs(key_values: KeyValues) -> List[Tuple[str, Any]]:
    if isinstance(key_values, Mapping):
        return list(key_values.items())
    return list(key_values)


class RecordMapper:
    """
    Moves values between mapped objects and statements for one Entity shape.

    Binding goes through the closed TypedValue union; extraction reads each
    cell by its runtime storage class, since SQLite types values per cell and
    the declared column type is only advisory.
    """

    # --- Host -> Statement ---
    @staticmethod
    def parameters_for(
        entity: Entity, key_values: KeyValues
    ) -> Tuple[List[str], List[TypedValue]]:
        """
        Convert key/value pairs into positional parameters.

        Keys that do not name a persistent property are dropped, so the result
        lines up with `entity.insert_sql_for_keys` / `update_sql_for_keys` for
        the same keys.

        Returns:
            The resolvable keys and their values, in input order.

        Raises:
            BindError: If a value has no storage class or does not match the
                property's declared type.
        """
        keys: List[str] = []
        values: List[TypedValue] = []
        for key, raw in _pairs(key_values):
            current = entity.property_for_key(key)
            if current is None or not current.is_persistent:
                logger.debug(f"Skipping unknown key '{key}' for entity '{entity.name}'")
                continue
            try:
                value = TypedValue.from_python(raw).coerce_to(current.sql_type)
            except BindError as e:
                raise BindError(f"Property '{entity.name}.{key}': {e}") from e
            keys.append(key)
            values.append(value)
        return keys, values

    @staticmethod
    def primary_key_parameter(entity: Entity, value: Any) -> TypedValue:
        pk = entity.primary_key_property
        if pk is None:
            raise MissingPrimaryKeyError(f"Entity '{entity.name}' has no primary key")
        try:
            return TypedValue.from_python(value).coerce_to(pk.sql_type)
        except BindError as e:
            raise BindError(f"Primary key '{entity.name}.{pk.key}': {e}") from e

    @staticmethod
    def bind_values(statement: Statement, values: Sequence[TypedValue]) -> None:
        """Bind each value at position index + 1, dispatching on its tag."""
        for index, value in enumerate(values, start=1):
            if not isinstance(value, TypedValue):
                raise BindError(
                    f"Parameter {index} is {type(value).__name__}, not a TypedValue"
                )
            if value.tag is SQLType.NULL:
                statement.bind_null(index)
            elif value.tag is SQLType.INTEGER:
                statement.bind_int64(index, value.value)
            elif value.tag is SQLType.FLOAT:
                statement.bind_double(index, value.value)
            elif value.tag is SQLType.TEXT:
                statement.bind_text(index, value.value)
            elif value.tag is SQLType.BLOB:
                statement.bind_blob(index, value.value)
            else:
                raise BindError(f"Parameter {index} has unbindable tag {value.tag.name}")

    # --- Statement -> Host ---
    @staticmethod
    def read_value(statement: Statement, index: int) -> TypedValue:
        """Read one cell as a TypedValue using its runtime storage class."""
        column_type = statement.column_type(index)
        if column_type is SQLType.INTEGER:
            return TypedValue.integer(statement.read_int(index))
        if column_type is SQLType.FLOAT:
            return TypedValue.real(statement.read_double(index))
        if column_type is SQLType.TEXT:
            return TypedValue.text(statement.read_text(index))
        if column_type is SQLType.BLOB:
            return TypedValue.blob(statement.read_blob(index))
        return TypedValue.null()

    @classmethod
    def extract_row(cls, statement: Statement, entity: Entity) -> MappedObject:
        """
        Build a mapped object from the statement's current row.

        Columns that do not map to a property are skipped, which lets
        joined selects carry extra columns.
        """
        model_object = entity.create()
        for index in range(statement.column_count):
            column_name = statement.column_name(index)
            if column_name is None:
                continue
            current = entity.property_for_column_name(column_name)
            if current is None:
                continue
            if statement.column_type(index) is SQLType.UNKNOWN:
                logger.warning(
                    f"Skipping column '{column_name}' of '{entity.table_name}': "
                    f"unrecognized storage class"
                )
                continue
            model_object.set_value(current.key, cls.read_value(statement, index))
        return model_object

    @staticmethod
    def populate(entity: Entity, keys: Sequence[str], values: Sequence[TypedValue]) -> MappedObject:
        """Build a fresh mapped object from already converted parameters."""
        model_object = entity.create()
        for key, value in zip(keys, values):
            model_object.set_value(key, value)
        return model_object
