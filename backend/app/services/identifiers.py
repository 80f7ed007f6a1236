"""Identifier and SQL type grammar checks."""

from __future__ import annotations

import re

from app.services.errors import InvalidIdentifier, InvalidSchemaChange

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SQL_TYPE_PATTERN = re.compile(
    r"^[A-Za-z][A-Za-z0-9_]*(?: [A-Za-z][A-Za-z0-9_]*)*(?:\s*\(\s*\d+\s*(?:,\s*\d+\s*)?\))?(?:\[\])?$"
)


def is_valid_identifier(name: object) -> bool:
    return isinstance(name, str) and bool(_IDENTIFIER_PATTERN.fullmatch(name))


def validate_identifier(name: object) -> str:
    """Return ``name`` unchanged if it is safe to interpolate into SQL.

    Identifiers cannot be bound as parameters, so this check is the only
    thing standing between a table or column name and the query text.
    """

    if not is_valid_identifier(name):
        raise InvalidIdentifier(name)
    return name  # type: ignore[return-value]


def validate_sql_type(type_name: object) -> str:
    """Accept type names such as ``DATE``, ``double precision`` or ``NUMERIC(12, 2)``."""

    if not isinstance(type_name, str) or not _SQL_TYPE_PATTERN.fullmatch(type_name.strip()):
        raise InvalidSchemaChange(f"Invalid column type: {type_name}")
    return type_name.strip()
