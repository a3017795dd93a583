import pytest

from async_sqlite_orm.base.exceptions import BindError
from async_sqlite_orm.base.types import INT64_MAX, INT64_MIN, SQLType, TypedValue


# =============================================================================
# Tests for SQLType
# =============================================================================

def test_keywords_match_sql():
    assert SQLType.INTEGER.value == "INTEGER"
    assert SQLType.FLOAT.value == "FLOAT"
    assert SQLType.TEXT.value == "TEXT"
    assert SQLType.BLOB.value == "BLOB"
    assert SQLType.NULL.value == "NULL"


def test_unknown_is_not_persistent():
    assert not SQLType.UNKNOWN.is_persistent
    assert all(t.is_persistent for t in SQLType if t is not SQLType.UNKNOWN)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, SQLType.NULL),
        (3, SQLType.INTEGER),
        (2.5, SQLType.FLOAT),
        ("x", SQLType.TEXT),
        (b"\x00", SQLType.BLOB),
        (object(), SQLType.UNKNOWN),
    ],
)
def test_for_value_classifies_cells(raw, expected):
    assert SQLType.for_value(raw) is expected


# =============================================================================
# Tests for TypedValue construction
# =============================================================================

def test_from_python_tags_each_storage_class():
    assert TypedValue.from_python(None) == TypedValue.null()
    assert TypedValue.from_python(42) == TypedValue.integer(42)
    assert TypedValue.from_python(1.25) == TypedValue.real(1.25)
    assert TypedValue.from_python("hi") == TypedValue.text("hi")
    assert TypedValue.from_python(b"ab") == TypedValue.blob(b"ab")


def test_from_python_stores_bool_as_integer():
    assert TypedValue.from_python(True) == TypedValue.integer(1)
    assert TypedValue.from_python(False) == TypedValue.integer(0)


def test_from_python_passes_typed_value_through():
    value = TypedValue.text("same")
    assert TypedValue.from_python(value) is value


def test_from_python_rejects_unsupported_types():
    with pytest.raises(BindError):
        TypedValue.from_python({"a": 1})


def test_integer_range_is_64_bit():
    assert TypedValue.integer(INT64_MAX).value == INT64_MAX
    assert TypedValue.integer(INT64_MIN).value == INT64_MIN
    with pytest.raises(BindError):
        TypedValue.from_python(INT64_MAX + 1)


def test_blob_is_copied():
    """Mutating the source buffer does not change the stored value."""
    buffer = bytearray(b"abc")
    value = TypedValue.blob(buffer)
    buffer[0] = ord("z")
    assert value.as_blob() == b"abc"


def test_tag_and_value_must_agree():
    with pytest.raises(BindError):
        TypedValue(SQLType.TEXT, 5)
    with pytest.raises(BindError):
        TypedValue(SQLType.UNKNOWN, None)


def test_typed_value_is_immutable():
    value = TypedValue.integer(1)
    with pytest.raises(AttributeError):
        value.value = 2


# =============================================================================
# Tests for coerce_to
# =============================================================================

def test_null_binds_to_any_declared_type():
    for declared in (SQLType.INTEGER, SQLType.FLOAT, SQLType.TEXT, SQLType.BLOB):
        assert TypedValue.null().coerce_to(declared).is_null


def test_integer_widens_to_float():
    coerced = TypedValue.integer(3).coerce_to(SQLType.FLOAT)
    assert coerced.tag is SQLType.FLOAT
    assert coerced.value == 3.0


def test_text_into_integer_is_rejected():
    with pytest.raises(BindError):
        TypedValue.text("abc").coerce_to(SQLType.INTEGER)


def test_float_into_integer_is_rejected():
    with pytest.raises(BindError):
        TypedValue.real(1.5).coerce_to(SQLType.INTEGER)


def test_matching_tag_is_returned_unchanged():
    value = TypedValue.blob(b"x")
    assert value.coerce_to(SQLType.BLOB) is value


# =============================================================================
# Tests for accessors
# =============================================================================

def test_accessors_check_the_tag():
    assert TypedValue.integer(7).as_int() == 7
    assert TypedValue.integer(7).as_float() == 7.0
    assert TypedValue.text("t").as_text() == "t"
    with pytest.raises(TypeError):
        TypedValue.text("t").as_int()
    with pytest.raises(TypeError):
        TypedValue.null().as_blob()


def test_repr_hides_blob_contents():
    assert repr(TypedValue.blob(b"1234")) == "TypedValue(BLOB, 4 bytes)"
    assert repr(TypedValue.text("a")) == "TypedValue(TEXT, 'a')"
