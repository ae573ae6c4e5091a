"""Identifier check/quote primitive.

Every place that embeds a table, column, schema or index name in SQL text
goes through this module. Values are always passed as bind parameters;
identifiers cannot be bound portably, so they are checked here and then
quoted by the connection dialect's own preparer.
"""
from sqlalchemy.engine import Dialect

from .errors import InvalidIdentifierError

MAX_IDENTIFIER_LENGTH = 128


def check_identifier(name: object) -> str:
    """Return `name` unchanged if it may be embedded in SQL, else raise.

    Raises:
        InvalidIdentifierError: name is not a string, is empty, exceeds
            MAX_IDENTIFIER_LENGTH, or contains control characters.
    """
    if not isinstance(name, str):
        raise InvalidIdentifierError(repr(name), "identifier must be a string")
    if not name or not name.strip():
        raise InvalidIdentifierError(name, "identifier is empty")
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(name, f"identifier exceeds {MAX_IDENTIFIER_LENGTH} characters")
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in name):
        raise InvalidIdentifierError(name, "identifier contains control characters")
    return name


def quote_identifier(name: str, dialect: Dialect) -> str:
    """Check `name` and quote it for `dialect`, escaping embedded quote chars."""
    return dialect.identifier_preparer.quote_identifier(check_identifier(name))


def qualified_name(schema: str, name: str, dialect: Dialect) -> str:
    """Quoted `schema.name` for catalog functions such as to_regclass/OBJECT_ID."""
    return f"{quote_identifier(schema, dialect)}.{quote_identifier(name, dialect)}"
