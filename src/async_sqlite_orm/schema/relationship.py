# src/async_sqlite_orm/schema/relationship.py

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from async_sqlite_orm.base.utils import validate_identifier


class Relationship(BaseModel):
    """
    A link from a local property to a field of another Entity.

    Only used to synthesize LEFT JOINs. The foreign entity is referenced by
    name and looked up each time SQL is generated.
    """

    model_config = ConfigDict(frozen=True)

    property_key: str = Field(min_length=1)
    foreign_entity_name: str
    # Defaults to the foreign entity's primary key when None.
    foreign_property_key: Optional[str] = None

    @field_validator("foreign_entity_name")
    @classmethod
    def validate_foreign_entity_name(cls, value):
        return validate_identifier(value, "entity name")
