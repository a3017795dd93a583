class SQLiteError(Exception):
    """Base class for errors raised while talking to the SQLite engine."""

    def __init__(self, message: str = "SQLite operation failed."):
        super().__init__(message)


class OpenError(SQLiteError):
    """Exception raised when the database file cannot be opened."""

    def __init__(self, message: str = "Could not open the database."):
        super().__init__(message)


class CloseError(SQLiteError):
    """Exception raised when the engine refuses to close the connection."""

    def __init__(self, message: str = "Could not close the database."):
        super().__init__(message)


class ExecError(SQLiteError):
    """Exception raised when a parameterless statement (DDL) fails."""

    def __init__(self, message: str = "Statement execution failed."):
        super().__init__(message)


class PrepareError(SQLiteError):
    """Exception raised when SQL text cannot be compiled into a statement."""

    def __init__(self, message: str = "Statement preparation failed."):
        super().__init__(message)


class BindError(SQLiteError):
    """Exception raised when a value cannot be bound to a statement parameter."""

    def __init__(self, message: str = "Value could not be bound."):
        super().__init__(message)


class StepError(SQLiteError):
    """Exception raised when the engine signals an error while stepping."""

    def __init__(self, message: str = "Statement step failed."):
        super().__init__(message)


class KeyAlreadyExistsException(StepError):
    """Exception raised when a write would violate a unique or primary key constraint."""

    def __init__(self, message: str = "An object with the same key already exists."):
        super().__init__(message)


class DatabaseNotOpenError(SQLiteError):
    """Exception raised when an operation needs a connection that is not open."""

    def __init__(self, message: str = "The database is not open."):
        super().__init__(message)


class UnknownSQLiteError(SQLiteError):
    """Exception raised when the engine reports an error without a message."""

    def __init__(self, message: str = "Unknown SQLite error."):
        super().__init__(message)
