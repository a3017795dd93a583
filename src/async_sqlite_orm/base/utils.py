import re
from typing import Iterable, List

from .definition_exceptions import InvalidIdentifierError

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_identifier(identifier: str, kind: str = "identifier") -> str:
    """
    Check that a name can be interpolated into SQL text unquoted.

    Table and column names are written directly into generated statements
    (only values go through `?` placeholders), so anything outside
    `[A-Za-z_][A-Za-z0-9_]*` is rejected, as is the reserved `sqlite_` prefix.

    Args:
        identifier: The candidate name.
        kind: Human readable description used in the error message.

    Returns:
        The identifier, unchanged.

    Raises:
        InvalidIdentifierError: If the name is not a safe SQL identifier.
    """
    if not isinstance(identifier, str) or not _IDENTIFIER_PATTERN.match(identifier):
        raise InvalidIdentifierError(
            f"Invalid {kind} {identifier!r}: must match {_IDENTIFIER_PATTERN.pattern}"
        )
    if identifier.lower().startswith("sqlite_"):
        raise InvalidIdentifierError(
            f"Invalid {kind} {identifier!r}: names starting with 'sqlite_' are reserved"
        )
    return identifier


def join_columns(columns: Iterable[str]) -> str:
    """Comma-join already validated identifiers."""
    return ", ".join(columns)


def placeholders(count: int) -> str:
    """Return `count` positional placeholders, comma separated."""
    parts: List[str] = ["?"] * count
    return ", ".join(parts)
