# src/async_sqlite_orm/base/types.py

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .exceptions import BindError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

RawValue = Union[None, int, float, str, bytes]


# --- SQL Type Enum ---
class SQLType(Enum):
    """
    SQLite storage classes.

    Used both for a column's declared type and for the storage class observed
    on a single cell at runtime. UNKNOWN marks "no declared type" or an
    unrecognized cell; it is never written into a schema.
    """

    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    TEXT = "TEXT"
    BLOB = "BLOB"
    NULL = "NULL"
    UNKNOWN = "UNKNOWN"

    @property
    def is_persistent(self) -> bool:
        return self is not SQLType.UNKNOWN

    @classmethod
    def for_value(cls, value: Any) -> "SQLType":
        """Classify a raw cell value returned by the engine."""
        if value is None:
            return cls.NULL
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.TEXT
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.BLOB
        return cls.UNKNOWN


_PYTHON_TYPES = {
    SQLType.NULL: type(None),
    SQLType.INTEGER: int,
    SQLType.FLOAT: float,
    SQLType.TEXT: str,
    SQLType.BLOB: bytes,
}


# --- Typed Value ---
@dataclass(frozen=True)
class TypedValue:
    """
    A value crossing the storage boundary, tagged with its storage class.

    The tag set is closed: NULL, INTEGER (64-bit), FLOAT, TEXT and BLOB.
    Build instances through the named constructors or `from_python`.
    """

    tag: SQLType
    value: RawValue = None

    def __post_init__(self):
        expected = _PYTHON_TYPES.get(self.tag)
        if expected is None:
            raise BindError(f"{self.tag.name} is not a storage class for values.")
        if type(self.value) is not expected:
            raise BindError(
                f"TypedValue tagged {self.tag.name} cannot hold {type(self.value).__name__}."
            )
        if self.tag is SQLType.INTEGER and not INT64_MIN <= self.value <= INT64_MAX:
            raise BindError(f"Integer {self.value} does not fit in 64 bits.")

    # --- Constructors ---
    @classmethod
    def null(cls) -> "TypedValue":
        return cls(SQLType.NULL, None)

    @classmethod
    def integer(cls, value: int) -> "TypedValue":
        return cls(SQLType.INTEGER, int(value))

    @classmethod
    def real(cls, value: float) -> "TypedValue":
        return cls(SQLType.FLOAT, float(value))

    @classmethod
    def text(cls, value: str) -> "TypedValue":
        return cls(SQLType.TEXT, str(value))

    @classmethod
    def blob(cls, value: Union[bytes, bytearray, memoryview]) -> "TypedValue":
        # Always copy; callers may reuse their buffers.
        return cls(SQLType.BLOB, bytes(value))

    @classmethod
    def from_python(cls, value: Any) -> "TypedValue":
        """
        Wrap a host value in the matching storage class.

        Args:
            value: None, bool, int, float, str, bytes, bytearray, memoryview
                   or an existing TypedValue.

        Returns:
            The tagged value.

        Raises:
            BindError: If the value has no storage class.
        """
        if isinstance(value, TypedValue):
            return value
        if value is None:
            return cls.null()
        if isinstance(value, bool):
            return cls.integer(1 if value else 0)
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, float):
            return cls.real(value)
        if isinstance(value, str):
            return cls.text(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.blob(value)
        raise BindError(f"Values of type {type(value).__name__} cannot be stored.")

    # --- Coercion ---
    def coerce_to(self, declared: SQLType) -> "TypedValue":
        """
        Return this value converted for a column of the declared type.

        NULL binds anywhere and INTEGER widens to FLOAT. Any other mismatch
        raises BindError instead of being silently converted.
        """
        if self.tag is SQLType.NULL or self.tag is declared:
            return self
        if declared is SQLType.FLOAT and self.tag is SQLType.INTEGER:
            return TypedValue.real(float(self.value))
        raise BindError(
            f"Cannot bind {self.tag.name} value to a column declared {declared.name}."
        )

    # --- Accessors ---
    @property
    def is_null(self) -> bool:
        return self.tag is SQLType.NULL

    def as_int(self) -> int:
        if self.tag is not SQLType.INTEGER:
            raise TypeError(f"{self.tag.name} value is not an integer.")
        return self.value

    def as_float(self) -> float:
        if self.tag is SQLType.INTEGER:
            return float(self.value)
        if self.tag is not SQLType.FLOAT:
            raise TypeError(f"{self.tag.name} value is not a float.")
        return self.value

    def as_text(self) -> str:
        if self.tag is not SQLType.TEXT:
            raise TypeError(f"{self.tag.name} value is not text.")
        return self.value

    def as_blob(self) -> bytes:
        if self.tag is not SQLType.BLOB:
            raise TypeError(f"{self.tag.name} value is not a blob.")
        return self.value

    def __repr__(self) -> str:
        if self.tag is SQLType.BLOB:
            return f"TypedValue(BLOB, {len(self.value)} bytes)"
        return f"TypedValue({self.tag.name}, {self.value!r})"
