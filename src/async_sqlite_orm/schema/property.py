# src/async_sqlite_orm/schema/property.py

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from async_sqlite_orm.base.types import SQLType
from async_sqlite_orm.base.utils import validate_identifier


class Property(BaseModel):
    """
    One scalar field of an Entity and the column it is stored in.

    Properties are immutable once built. `key` is the logical name the mapped
    object understands; `column_name` is the physical SQL identifier.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    column_name: str
    sql_type: SQLType
    non_null: bool = False
    unique: bool = False

    @field_validator("column_name")
    @classmethod
    def validate_column_name(cls, value):
        return validate_identifier(value, "column name")

    @property
    def is_persistent(self) -> bool:
        """False for UNKNOWN-typed properties, which never get a column."""
        return self.sql_type.is_persistent

    def column_definition(self) -> Optional[str]:
        """
        Column fragment for CREATE TABLE, e.g. `name TEXT NOT NULL UNIQUE`.

        Returns None for UNKNOWN-typed properties.
        """
        if not self.is_persistent:
            return None
        fragment = f"{self.column_name} {self.sql_type.value}"
        if self.non_null:
            fragment += " NOT NULL"
        if self.unique:
            fragment += " UNIQUE"
        return fragment
