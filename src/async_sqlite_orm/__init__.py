# src/async_sqlite_orm/__init__.py

"""
Async SQLite ORM Library Initialization.

This package maps typed host records onto SQLite tables: Entities describe
the schema, generate the SQL, and the DatabaseContext runs typed CRUD
operations over a single aiosqlite connection.

It initializes a logger with a NullHandler and makes the schema descriptors,
value model, exceptions and the context available at the top level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging for "async_sqlite_orm".
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Value Model and Interface Exports
# --------------------------------------------------------------------------
from .base.types import SQLType, TypedValue
from .base.interfaces import DispatchMappedObject, MappedObject
from .base.config import ContextSettings

# --------------------------------------------------------------------------
# Exception Exports
# --------------------------------------------------------------------------
from .base.exceptions import (
    BindError,
    CloseError,
    DatabaseNotOpenError,
    ExecError,
    KeyAlreadyExistsException,
    OpenError,
    PrepareError,
    SQLiteError,
    StepError,
    UnknownSQLiteError,
)
from .base.definition_exceptions import (
    DuplicateColumnError,
    DuplicatePropertyError,
    EmptyKeyListError,
    EntityDefinitionError,
    EntitySealedError,
    InvalidIdentifierError,
    MissingPrimaryKeyError,
    UnknownEntityError,
)

# --------------------------------------------------------------------------
# Schema Exports
# --------------------------------------------------------------------------
from .schema.property import Property
from .schema.relationship import Relationship
from .schema.entity import Entity
from .schema.registry import EntityRegistry

# --------------------------------------------------------------------------
# Mapping and Context Exports
# --------------------------------------------------------------------------
from .mapping.record_mapper import RecordMapper
from .sqlite.connection import DatabaseConnection, Statement, StepResult
from .db_implementations.database_context import DatabaseContext

__all__ = [
    # Value model
    "SQLType",
    "TypedValue",
    "MappedObject",
    "DispatchMappedObject",
    "ContextSettings",
    # Exceptions
    "SQLiteError",
    "OpenError",
    "CloseError",
    "ExecError",
    "PrepareError",
    "BindError",
    "StepError",
    "KeyAlreadyExistsException",
    "DatabaseNotOpenError",
    "UnknownSQLiteError",
    "EntityDefinitionError",
    "InvalidIdentifierError",
    "DuplicatePropertyError",
    "DuplicateColumnError",
    "MissingPrimaryKeyError",
    "UnknownEntityError",
    "EmptyKeyListError",
    "EntitySealedError",
    # Schema
    "Property",
    "Relationship",
    "Entity",
    "EntityRegistry",
    # Mapping and context
    "RecordMapper",
    "DatabaseConnection",
    "Statement",
    "StepResult",
    "DatabaseContext",
    # Logging
    "logger",
]

__version__ = "0.1.0"
