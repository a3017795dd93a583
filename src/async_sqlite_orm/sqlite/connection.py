# src/async_sqlite_orm/sqlite/connection.py
import logging
import sqlite3
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncGenerator, List, Optional, Tuple, Type

import aiosqlite

from async_sqlite_orm.base.config import ContextSettings
from async_sqlite_orm.base.exceptions import (BindError, CloseError,
                                              DatabaseNotOpenError, ExecError,
                                              KeyAlreadyExistsException,
                                              OpenError, PrepareError,
                                              SQLiteError, StepError,
                                              UnknownSQLiteError)
from async_sqlite_orm.base.types import INT64_MAX, INT64_MIN, SQLType

logger = logging.getLogger(__name__)

# Messages sqlite3 produces while compiling a statement. Used when the
# interpreter does not expose `sqlite_errorname` on exceptions.
_COMPILE_ERROR_PREFIXES = (
    "no such table",
    "no such column",
    "syntax error",
    "near ",
    "incomplete input",
    "ambiguous column name",
    "table ",
)


# --- Error Translation ---
def translate_error(
    error: Exception, default: Type[SQLiteError], compiling: bool = False
) -> SQLiteError:
    """
    Map an exception raised by the sqlite3 driver to the library taxonomy.

    Args:
        error: The exception raised by sqlite3/aiosqlite.
        default: Exception class used when nothing more specific applies.
        compiling: True if the statement had not produced any result yet, so
                   engine errors may come from statement compilation.
    """
    message = str(error)
    if not message:
        return UnknownSQLiteError()
    if isinstance(error, sqlite3.IntegrityError) and (
        "UNIQUE constraint failed" in message or "PRIMARY KEY" in message
    ):
        return KeyAlreadyExistsException(message)
    if isinstance(error, (sqlite3.ProgrammingError, sqlite3.InterfaceError)) and (
        "binding" in message or "parameter" in message
    ):
        return BindError(message)
    if compiling and isinstance(error, sqlite3.OperationalError):
        error_name = getattr(error, "sqlite_errorname", None)
        if error_name == "SQLITE_ERROR" or (
            error_name is None and message.startswith(_COMPILE_ERROR_PREFIXES)
        ):
            return PrepareError(message)
    return default(message)


class StepResult(Enum):
    """Outcome of a single `Statement.step()`."""

    ROW = "row"
    DONE = "done"


# --- Prepared Statement ---
class Statement:
    """
    A parameterized statement on one connection.

    Parameters are bound by 1-based position before the first `step()`. The
    first step executes the statement; each step then yields at most one
    row. `finalize()` releases the underlying cursor and may be called any
    number of times.
    """

    def __init__(self, connection: aiosqlite.Connection, sql: str):
        self.sql = sql
        self._conn = connection
        self._parameters: List[Any] = [None] * sql.count("?")
        self._cursor: Optional[aiosqlite.Cursor] = None
        self._row: Optional[Tuple[Any, ...]] = None
        self._done = False
        self._finalized = False

    def __repr__(self) -> str:
        return f"Statement({self.sql!r})"

    @property
    def parameter_count(self) -> int:
        return len(self._parameters)

    @property
    def finalized(self) -> bool:
        return self._finalized

    # --- Binding ---
    def _bind(self, index: int, value: Any) -> None:
        if self._finalized:
            raise BindError("Cannot bind to a finalized statement.")
        if self._cursor is not None:
            raise BindError("Cannot bind after the statement has been stepped.")
        if not 1 <= index <= len(self._parameters):
            raise BindError(
                f"Parameter index {index} out of range 1..{len(self._parameters)} "
                f"for statement {self.sql!r}"
            )
        self._parameters[index - 1] = value

    def bind_null(self, index: int) -> None:
        self._bind(index, None)

    def bind_int64(self, index: int, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise BindError(f"bind_int64 expects an int, got {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise BindError(f"Integer {value} does not fit in 64 bits.")
        self._bind(index, value)

    def bind_double(self, index: int, value: float) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise BindError(f"bind_double expects a float, got {type(value).__name__}")
        self._bind(index, float(value))

    def bind_text(self, index: int, value: str) -> None:
        if not isinstance(value, str):
            raise BindError(f"bind_text expects a str, got {type(value).__name__}")
        self._bind(index, value)

    def bind_blob(self, index: int, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise BindError(f"bind_blob expects bytes, got {type(value).__name__}")
        # Copy so later mutation of the caller's buffer cannot leak into the row.
        self._bind(index, bytes(value))

    # --- Execution ---
    async def step(self) -> StepResult:
        """
        Advance the statement.

        Returns:
            StepResult.ROW if a row is available for the column readers,
            StepResult.DONE once the statement has run to completion.

        Raises:
            PrepareError: If the SQL cannot be compiled.
            BindError: If the bound parameters are rejected.
            KeyAlreadyExistsException: On a unique/primary key violation.
            StepError: For any other engine error.
        """
        if self._finalized:
            raise StepError(f"Statement {self.sql!r} has been finalized.")
        if self._done:
            return StepResult.DONE
        compiling = self._cursor is None
        try:
            if compiling:
                self._cursor = await self._conn.execute(self.sql, self._parameters)
            row = await self._cursor.fetchone()
        except sqlite3.Error as e:
            self._done = True
            raise translate_error(e, StepError, compiling=compiling) from e
        except ValueError as e:
            # Raised by aiosqlite when the connection was closed underneath us.
            self._done = True
            raise DatabaseNotOpenError(str(e)) from e
        if row is None:
            self._row = None
            self._done = True
            return StepResult.DONE
        self._row = tuple(row)
        return StepResult.ROW

    async def finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        self._row = None
        if self._cursor is not None:
            cursor, self._cursor = self._cursor, None
            try:
                await cursor.close()
            except (sqlite3.Error, ValueError) as e:
                logger.debug(f"Ignoring error while finalizing {self.sql!r}: {e}")

    # --- Column Access ---
    @property
    def column_count(self) -> int:
        if self._cursor is None or self._cursor.description is None:
            return 0
        return len(self._cursor.description)

    def column_name(self, index: int) -> Optional[str]:
        if not 0 <= index < self.column_count:
            return None
        return self._cursor.description[index][0]

    def _cell(self, index: int) -> Any:
        if self._row is None:
            raise StepError(f"Statement {self.sql!r} has no current row.")
        if not 0 <= index < len(self._row):
            raise StepError(f"Column index {index} out of range.")
        return self._row[index]

    def column_type(self, index: int) -> SQLType:
        """Storage class of the cell in the current row (not the declared type)."""
        return SQLType.for_value(self._cell(index))

    def read_int(self, index: int) -> int:
        value = self._cell(index)
        if value is None:
            return 0
        return int(value)

    def read_double(self, index: int) -> float:
        value = self._cell(index)
        if value is None:
            return 0.0
        return float(value)

    def read_text(self, index: int) -> Optional[str]:
        value = self._cell(index)
        if value is None:
            return None
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8", errors="replace")
        return str(value)

    def read_blob(self, index: int) -> Optional[bytes]:
        value = self._cell(index)
        if value is None:
            return None
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)


# --- Connection ---
class DatabaseConnection:
    """
    The single aiosqlite connection a DatabaseContext owns.

    The connection runs in autocommit mode: every statement is its own
    transaction, as with the raw C API. aiosqlite executes all requests on one
    worker thread in FIFO order.
    """

    def __init__(self, connection: aiosqlite.Connection, settings: ContextSettings):
        self._conn: Optional[aiosqlite.Connection] = connection
        self._settings = settings

    @classmethod
    async def open(cls, settings: ContextSettings) -> "DatabaseConnection":
        """
        Open (creating if needed) the database at `settings.database_path`.

        Raises:
            OpenError: If the engine cannot open the file.
        """
        try:
            conn = await aiosqlite.connect(
                settings.database_path,
                timeout=settings.timeout,
                isolation_level=None,
            )
        except sqlite3.Error as e:
            raise translate_error(e, OpenError) from e
        connection = cls(conn, settings)
        if settings.journal_mode:
            try:
                await connection.execute(f"PRAGMA journal_mode={settings.journal_mode}")
            except ExecError as e:
                logger.warning(
                    f"Could not set PRAGMA journal_mode={settings.journal_mode}: {e}"
                )
        logger.debug(f"Opened SQLite database at {settings.database_path}")
        return connection

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def path(self) -> str:
        return self._settings.database_path

    def _require_open(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise DatabaseNotOpenError()
        return self._conn

    async def close(self) -> None:
        conn = self._require_open()
        try:
            await conn.close()
        except sqlite3.Error as e:
            raise translate_error(e, CloseError) from e
        self._conn = None
        logger.debug(f"Closed SQLite database at {self.path}")

    async def execute(self, sql: str) -> None:
        """Run a statement without parameters (DDL and pragmas)."""
        conn = self._require_open()
        try:
            cursor = await conn.execute(sql)
            await cursor.close()
        except sqlite3.Error as e:
            raise translate_error(e, ExecError) from e

    async def prepare(self, sql: str) -> Statement:
        """
        Create a statement for `sql`.

        sqlite3 compiles lazily, so only completeness is checked here; errors
        found while compiling surface as PrepareError from the first step.
        """
        conn = self._require_open()
        if not sqlite3.complete_statement(sql.rstrip().rstrip(";") + ";"):
            raise PrepareError(f"incomplete input: {sql!r}")
        return Statement(conn, sql)

    @asynccontextmanager
    async def prepared(self, sql: str) -> AsyncGenerator[Statement, None]:
        """Prepare `sql` and finalize the statement on every exit path."""
        statement = await self.prepare(sql)
        try:
            yield statement
        finally:
            await statement.finalize()

    async def last_insert_row_id(self) -> int:
        async with self.prepared("SELECT last_insert_rowid()") as statement:
            await statement.step()
            return statement.read_int(0)
