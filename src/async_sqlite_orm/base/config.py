# src/async_sqlite_orm/base/config.py

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MEMORY_DATABASE = ":memory:"

JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")


class ContextSettings(BaseModel):
    """Settings for a DatabaseContext and the connection it owns."""

    model_config = ConfigDict(frozen=True)

    database_path: str = Field(default=MEMORY_DATABASE, min_length=1)
    # Busy timeout handed to the engine; bounds how long a step waits on a lock.
    timeout: float = Field(default=5.0, gt=0)
    journal_mode: Optional[str] = None

    @field_validator("database_path", mode="before")
    @classmethod
    def validate_database_path(cls, value):
        if isinstance(value, os.PathLike):
            return os.fspath(value)
        return value

    @field_validator("journal_mode")
    @classmethod
    def validate_journal_mode(cls, value):
        if value is None:
            return value
        normalized = value.upper()
        if normalized not in JOURNAL_MODES:
            raise ValueError(
                f"journal_mode must be one of {', '.join(JOURNAL_MODES)}, got {value!r}"
            )
        return normalized

    @property
    def is_memory(self) -> bool:
        return self.database_path == MEMORY_DATABASE
