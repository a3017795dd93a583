# src/async_sqlite_orm/db_implementations/database_context.py

import asyncio
import logging
import os
from logging import LoggerAdapter
from typing import Any, AsyncGenerator, List, Optional, Sequence, Union

from async_sqlite_orm.base.config import MEMORY_DATABASE, ContextSettings
from async_sqlite_orm.base.definition_exceptions import (EmptyKeyListError,
                                                         MissingPrimaryKeyError)
from async_sqlite_orm.base.exceptions import DatabaseNotOpenError, SQLiteError
from async_sqlite_orm.base.interfaces import MappedObject
from async_sqlite_orm.base.types import SQLType, TypedValue
from async_sqlite_orm.mapping.record_mapper import KeyValues, RecordMapper
from async_sqlite_orm.schema.entity import Entity
from async_sqlite_orm.schema.registry import EntityRef, EntityRegistry
from async_sqlite_orm.sqlite.connection import DatabaseConnection, StepResult


class DatabaseContext:
    """
    Typed CRUD over one SQLite database.

    The context owns at most one connection and an EntityRegistry. Every
    logical operation (prepare, bind, step, finalize) runs while holding an
    asyncio.Lock, so operations submitted concurrently from several tasks are
    executed one after another in FIFO order and never interleave on the
    connection.

    "Not found" is reported as None (or False for `exists`); engine failures
    raise SQLiteError subclasses; definition mistakes (no primary key, no
    usable keys) raise EntityDefinitionError subclasses.

    Features/Limitations:
        - `create` returns an object built from the given values; columns the
          engine fills in (e.g. INTEGER PRIMARY KEY rowid aliases) are not
          read back. Use `last_insert_row_id` for those.
        - `create_or_update` checks existence and then writes. Both steps
          run under one lock acquisition, so it is atomic with respect to this
          context, but not against other processes writing the same file.
        - No multi-statement transactions; each statement autocommits.
    """

    def __init__(
        self,
        database: Union[str, os.PathLike, ContextSettings] = MEMORY_DATABASE,
        registry: Optional[EntityRegistry] = None,
    ):
        """
        Args:
            database: Path to the database file (str or path-like), or full
                ContextSettings.
            registry: Entities to manage. More can be added with `add_entity`.
        """
        if isinstance(database, ContextSettings):
            self._settings = database
        else:
            self._settings = ContextSettings(database_path=database)
        self._registry = registry if registry is not None else EntityRegistry()
        self._connection: Optional[DatabaseConnection] = None
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._logger.info(
            f"Context created for '{self._settings.database_path}' "
            f"with {len(self._registry)} entities."
        )

    # --- Properties ---
    @property
    def database_path(self) -> str:
        return self._settings.database_path

    @property
    def settings(self) -> ContextSettings:
        return self._settings

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    @property
    def is_open(self) -> bool:
        return self._connection is not None and self._connection.is_open

    # --- Entity Registration ---
    def add_entity(self, entity: Entity) -> Entity:
        return self._registry.register(entity)

    def entity_for_name(self, name: str) -> Optional[Entity]:
        return self._registry.get_entity(name)

    def _require_connection(self) -> DatabaseConnection:
        if self._connection is None or not self._connection.is_open:
            raise DatabaseNotOpenError(
                f"Database '{self.database_path}' is not open; call initialize_database first."
            )
        return self._connection

    # --- Lifecycle ---
    async def initialize_database(self, logger: LoggerAdapter) -> List[str]:
        """
        Open the connection and create tables for every registered entity.

        Calling it again on an open context only re-runs table creation,
        which is harmless (`CREATE TABLE IF NOT EXISTS`).

        Returns:
            Names of entities whose table could not be created.

        Raises:
            OpenError: If the database cannot be opened.
        """
        async with self._lock:
            if self._connection is None:
                logger.info(f"Opening database '{self.database_path}'...")
                try:
                    self._connection = await DatabaseConnection.open(self._settings)
                except SQLiteError as e:
                    logger.error(
                        f"Error opening database '{self.database_path}': {e}", exc_info=True
                    )
                    raise
            else:
                logger.debug(f"Database '{self.database_path}' is already open.")
        return await self.create_entity_tables(logger)

    async def close(self, logger: LoggerAdapter) -> None:
        async with self._lock:
            connection = self._require_connection()
            await connection.close()
            self._connection = None
        logger.info(f"Closed database '{self.database_path}'.")

    async def __aenter__(self) -> "DatabaseContext":
        await self.initialize_database(LoggerAdapter(self._logger, {}))
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.is_open:
            await self.close(LoggerAdapter(self._logger, {}))

    # --- Schema ---
    async def _create_table(
        self, connection: DatabaseConnection, entity: Entity, logger: LoggerAdapter
    ) -> None:
        create_sql = entity.schema_sql()
        logger.debug(f"Schema creation SQL: {create_sql}")
        await connection.execute(create_sql)
        logger.info(f"Schema creation/verification complete for '{entity.table_name}'.")

    async def initialize_for_type(self, entity_type: EntityRef, logger: LoggerAdapter) -> None:
        """
        Create the table for one entity.

        Raises:
            ExecError: If the engine rejects the CREATE TABLE statement.
        """
        entity = self._registry.resolve(entity_type)
        async with self._lock:
            connection = self._require_connection()
            try:
                await self._create_table(connection, entity, logger)
            except SQLiteError as e:
                logger.error(
                    f"Failed to create schema for '{entity.table_name}': {e}", exc_info=True
                )
                raise

    async def create_entity_tables(self, logger: LoggerAdapter) -> List[str]:
        """
        Create tables for all registered entities.

        A failure for one entity is logged and does not stop the others.

        Returns:
            Names of entities whose table could not be created.
        """
        failed = []
        async with self._lock:
            connection = self._require_connection()
            for entity in self._registry.values():
                try:
                    await self._create_table(connection, entity, logger)
                except SQLiteError as e:
                    logger.error(
                        f"Error creating table for entity '{entity.name}': {e}", exc_info=True
                    )
                    failed.append(entity.name)
        if failed:
            logger.warning(f"Tables not created for entities: {', '.join(failed)}")
        return failed

    async def check_schema(self, entity_type: EntityRef, logger: LoggerAdapter) -> bool:
        """Check whether the entity's table exists."""
        entity = self._registry.resolve(entity_type)
        logger.info(f"Checking schema for '{entity.table_name}'...")
        async with self._lock:
            connection = self._require_connection()
            async with connection.prepared(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=?"
            ) as statement:
                RecordMapper.bind_values(statement, [TypedValue.text(entity.table_name)])
                exists = await statement.step() is StepResult.ROW
        if exists:
            logger.info(f"Schema check PASSED for '{entity.table_name}'.")
        else:
            logger.warning(f"Schema check FAILED: Table '{entity.table_name}' not found.")
        return exists

    # --- Statement Helpers ---
    async def _run(
        self,
        connection: DatabaseConnection,
        sql: str,
        params: Sequence[TypedValue],
        logger: LoggerAdapter,
    ) -> None:
        logger.debug(f"Executing: SQL='{sql}', Params={list(params)}")
        async with connection.prepared(sql) as statement:
            RecordMapper.bind_values(statement, params)
            while await statement.step() is StepResult.ROW:
                pass

    async def _fetch_one(
        self,
        connection: DatabaseConnection,
        entity: Entity,
        sql: str,
        params: Sequence[TypedValue],
        logger: LoggerAdapter,
    ) -> Optional[MappedObject]:
        logger.debug(f"Fetching one: SQL='{sql}', Params={list(params)}")
        async with connection.prepared(sql) as statement:
            RecordMapper.bind_values(statement, params)
            if await statement.step() is StepResult.DONE:
                return None
            return RecordMapper.extract_row(statement, entity)

    def _find_sql(self, entity: Entity) -> str:
        sql = entity.find_by_primary_key_sql(
            include_relationships=True, entities=self._registry
        )
        if sql is None:
            raise MissingPrimaryKeyError(f"Entity '{entity.name}' has no primary key")
        return sql

    # --- Core CRUD ---
    async def create(
        self, entity_type: EntityRef, values: KeyValues, logger: LoggerAdapter
    ) -> MappedObject:
        """
        Insert a row built from key/value pairs.

        Args:
            entity_type: Entity, entity name or mapped type.
            values: Property keys and values. Unknown keys are ignored.
            logger: Logger adapter for recording operations.

        Returns:
            A new mapped object populated with the inserted values. It is not
            re-read from the database.

        Raises:
            EmptyKeyListError: If no key names a persistent property.
            BindError: If a value does not fit its column's declared type.
            KeyAlreadyExistsException: If a unique/primary key already exists.
        """
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        keys, params = RecordMapper.parameters_for(entity, values)
        insert_sql = entity.insert_sql_for_keys(keys)
        if insert_sql is None:
            raise EmptyKeyListError(f"No persistent properties given for entity '{entity.name}'")

        async with self._lock:
            try:
                await self._run(self._require_connection(), insert_sql, params, logger)
            except SQLiteError as e:
                logger.error(f"Error creating {entity.name}: {e}", exc_info=True)
                raise
        logger.info(f"Created {entity.name} ({', '.join(keys)}).")
        return RecordMapper.populate(entity, keys, params)

    async def read(
        self, entity_type: EntityRef, primary_key: Any, logger: LoggerAdapter
    ) -> Optional[MappedObject]:
        """
        Fetch one object by primary key.

        Returns:
            The populated object, or None if no row has that key.

        Raises:
            MissingPrimaryKeyError: If the entity has no primary key.
        """
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        find_sql = self._find_sql(entity)
        pk_param = RecordMapper.primary_key_parameter(entity, primary_key)

        async with self._lock:
            try:
                model_object = await self._fetch_one(
                    self._require_connection(), entity, find_sql, [pk_param], logger
                )
            except SQLiteError as e:
                logger.error(
                    f"Error reading {entity.name} with primary key {primary_key!r}: {e}",
                    exc_info=True,
                )
                raise
        if model_object is None:
            logger.warning(f"{entity.name} with primary key {primary_key!r} not found.")
        return model_object

    async def read_by_row_id(
        self, entity_type: EntityRef, row_id: int, logger: LoggerAdapter
    ) -> Optional[MappedObject]:
        """Fetch one object by SQLite rowid, e.g. the value of `last_insert_row_id`."""
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        params = [TypedValue.from_python(row_id).coerce_to(SQLType.INTEGER)]
        async with self._lock:
            try:
                return await self._fetch_one(
                    self._require_connection(), entity, entity.find_by_row_id_sql(), params, logger
                )
            except SQLiteError as e:
                logger.error(
                    f"Error reading {entity.name} with rowid {row_id!r}: {e}", exc_info=True
                )
                raise

    async def exists(
        self, entity_type: EntityRef, primary_key: Any, logger: LoggerAdapter
    ) -> bool:
        """Return True if a row with the primary key exists."""
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        find_sql = self._find_sql(entity)
        pk_param = RecordMapper.primary_key_parameter(entity, primary_key)
        async with self._lock:
            return await self._exists(self._require_connection(), find_sql, pk_param, logger)

    async def _exists(
        self,
        connection: DatabaseConnection,
        find_sql: str,
        pk_param: TypedValue,
        logger: LoggerAdapter,
    ) -> bool:
        logger.debug(f"Checking existence: SQL='{find_sql}', Params={[pk_param]}")
        async with connection.prepared(find_sql) as statement:
            RecordMapper.bind_values(statement, [pk_param])
            return await statement.step() is StepResult.ROW

    def _update_statement(self, entity: Entity, values: KeyValues, pk_param: TypedValue):
        keys, params = RecordMapper.parameters_for(entity, values)
        update_sql = entity.update_sql_for_keys(keys)
        if update_sql is None:
            if entity.primary_key_property is None:
                raise MissingPrimaryKeyError(f"Entity '{entity.name}' has no primary key")
            raise EmptyKeyListError(f"No persistent properties given for entity '{entity.name}'")
        return update_sql, params + [pk_param]

    async def update(
        self,
        entity_type: EntityRef,
        primary_key: Any,
        values: KeyValues,
        logger: LoggerAdapter,
    ) -> None:
        """
        Assign the given values to the row with the primary key.

        Updating a key that matches no row is not an error.

        Raises:
            MissingPrimaryKeyError: If the entity has no primary key.
            EmptyKeyListError: If no key names a persistent property.
        """
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        pk_param = RecordMapper.primary_key_parameter(entity, primary_key)
        update_sql, params = self._update_statement(entity, values, pk_param)
        async with self._lock:
            try:
                await self._run(self._require_connection(), update_sql, params, logger)
            except SQLiteError as e:
                logger.error(
                    f"Error updating {entity.name} with primary key {primary_key!r}: {e}",
                    exc_info=True,
                )
                raise
        logger.info(f"Updated {entity.name} with primary key {primary_key!r}.")

    async def delete(
        self, entity_type: EntityRef, primary_key: Any, logger: LoggerAdapter
    ) -> None:
        """Delete the row with the primary key. Deleting a missing row is not an error."""
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        delete_sql = entity.delete_by_primary_key_sql()
        if delete_sql is None:
            raise MissingPrimaryKeyError(f"Entity '{entity.name}' has no primary key")
        pk_param = RecordMapper.primary_key_parameter(entity, primary_key)
        async with self._lock:
            try:
                await self._run(self._require_connection(), delete_sql, [pk_param], logger)
            except SQLiteError as e:
                logger.error(
                    f"Error deleting {entity.name} with primary key {primary_key!r}: {e}",
                    exc_info=True,
                )
                raise
        logger.info(f"Deleted {entity.name} with primary key {primary_key!r}.")

    async def delete_all(self, entity_type: EntityRef, logger: LoggerAdapter) -> None:
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        async with self._lock:
            try:
                await self._run(self._require_connection(), entity.delete_sql(), [], logger)
            except SQLiteError as e:
                logger.error(f"Error deleting all rows of {entity.name}: {e}", exc_info=True)
                raise
        logger.info(f"Deleted all rows of '{entity.table_name}'.")

    async def create_or_update(
        self,
        entity_type: EntityRef,
        primary_key: Any,
        values: KeyValues,
        logger: LoggerAdapter,
    ) -> bool:
        """
        Update the row with the primary key, or insert it if it is missing.

        When inserting, the primary key is added to the values unless they
        already contain it.

        Returns:
            True if a row was created, False if an existing row was updated.
        """
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        find_sql = self._find_sql(entity)
        pk_param = RecordMapper.primary_key_parameter(entity, primary_key)
        pk_key = entity.primary_key_property_key

        async with self._lock:
            connection = self._require_connection()
            try:
                if await self._exists(connection, find_sql, pk_param, logger):
                    update_sql, params = self._update_statement(entity, values, pk_param)
                    await self._run(connection, update_sql, params, logger)
                    created = False
                else:
                    insert_values = dict(values)
                    insert_values.setdefault(pk_key, primary_key)
                    keys, params = RecordMapper.parameters_for(entity, insert_values)
                    await self._run(connection, entity.insert_sql_for_keys(keys), params, logger)
                    created = True
            except SQLiteError as e:
                logger.error(
                    f"Error in create_or_update for {entity.name} {primary_key!r}: {e}",
                    exc_info=True,
                )
                raise
        logger.info(
            f"{'Created' if created else 'Updated'} {entity.name} with primary key {primary_key!r}."
        )
        return created

    async def list(
        self, entity_type: EntityRef, logger: LoggerAdapter
    ) -> AsyncGenerator[MappedObject, None]:
        """
        Yield every row of the entity's table as a mapped object.

        Rows are read while holding the lock and yielded after it is released,
        so a consumer that stops early cannot block other operations.
        """
        self._require_connection()
        entity = self._registry.resolve(entity_type)
        select_sql = entity.select_sql()
        logger.debug(f"Listing {entity.name}: SQL='{select_sql}'")
        model_objects = []
        async with self._lock:
            try:
                async with self._require_connection().prepared(select_sql) as statement:
                    while await statement.step() is StepResult.ROW:
                        model_objects.append(RecordMapper.extract_row(statement, entity))
            except SQLiteError as e:
                logger.error(f"Error listing {entity.name}: {e}", exc_info=True)
                raise
        logger.info(f"Listed {len(model_objects)} {entity.name} rows.")
        for model_object in model_objects:
            yield model_object

    async def last_insert_row_id(self, logger: LoggerAdapter) -> int:
        """Rowid of the most recent successful INSERT on this connection."""
        async with self._lock:
            row_id = await self._require_connection().last_insert_row_id()
        logger.debug(f"last_insert_rowid() = {row_id}")
        return row_id
