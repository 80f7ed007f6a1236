"""SQL statement builders for the dynamic table tools.

Every builder returns a :class:`Statement`. Names are interpolated into the
SQL text only after passing the identifier grammar; every value travels as a
bind parameter (``:p1``, ``:p2``, ...), numbers included.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from app.services.errors import (
    EmptyInput,
    InvalidInput,
    InvalidJoinType,
    InvalidSchemaChange,
    InvalidUpdate,
    UnsupportedConstraint,
    UnsupportedOperator,
    UnsupportedType,
)
from app.services.identifiers import validate_identifier, validate_sql_type


@dataclass(frozen=True, slots=True)
class Statement:
    sql: str
    params: tuple[Any, ...] = ()

    @property
    def bindings(self) -> dict[str, Any]:
        """Positional params keyed by the names used in the SQL text."""

        return {f"p{index}": value for index, value in enumerate(self.params, start=1)}


def _placeholder(index: int) -> str:
    return f":p{index}"


def _escape_colons(fragment: str) -> str:
    # text() reads ":name" as a bind parameter; raw fragments must stay literal.
    return fragment.replace(":", "\\:")


class ColumnType(str, Enum):
    INTEGER = "integer"
    TEXT = "text"
    TIMESTAMP = "timestamp"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"


_COLUMN_TEMPLATES: dict[ColumnType, str] = {
    ColumnType.INTEGER: "{name} SERIAL{primary_key}",
    ColumnType.TEXT: "{name} TEXT NOT NULL",
    ColumnType.TIMESTAMP: "{name} TIMESTAMPTZ DEFAULT NOW()",
    ColumnType.BOOLEAN: "{name} BOOLEAN DEFAULT FALSE",
    ColumnType.DECIMAL: "{name} DECIMAL(10,2)",
}


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    name: str
    type: ColumnType
    primary_key: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "ColumnSpec":
        name = validate_identifier(raw.get("name"))
        try:
            column_type = ColumnType(raw.get("type"))
        except ValueError as exc:
            raise UnsupportedType(raw.get("type")) from exc
        return cls(name=name, type=column_type, primary_key=bool(raw.get("primaryKey", False)))

    def definition(self) -> str:
        primary_key = " PRIMARY KEY" if self.primary_key else ""
        return _COLUMN_TEMPLATES[self.type].format(name=self.name, primary_key=primary_key)


BASELINE_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("id", ColumnType.INTEGER, primary_key=True),
    ColumnSpec("created_at", ColumnType.TIMESTAMP),
    ColumnSpec("updated_at", ColumnType.TIMESTAMP),
)
_BASELINE_NAMES = frozenset(column.name for column in BASELINE_COLUMNS)


def build_create_table(table_name: str, columns: Any) -> Statement:
    """Build ``CREATE TABLE IF NOT EXISTS`` with the baseline columns first.

    Caller columns that reuse a baseline name are dropped before their type
    is looked at, so the baseline definition always wins.
    """

    table = validate_identifier(table_name)
    if not isinstance(columns, (list, tuple)) or not columns:
        raise InvalidInput('The "columns" parameter must be a non-empty array.')

    specs = list(BASELINE_COLUMNS)
    for raw in columns:
        if not isinstance(raw, Mapping):
            raise InvalidInput("Each column must be an object with a name and a type.")
        if isinstance(raw.get("name"), str) and raw["name"] in _BASELINE_NAMES:
            continue
        specs.append(ColumnSpec.from_mapping(raw))

    definitions = ", ".join(spec.definition() for spec in specs)
    return Statement(f"CREATE TABLE IF NOT EXISTS {table} ({definitions})")


def build_table_exists(table_name: str) -> Statement:
    return Statement(
        "SELECT EXISTS (SELECT 1 FROM information_schema.tables WHERE table_name = :p1) AS table_exists",
        (table_name,),
    )


def build_table_columns(table_name: str) -> Statement:
    return Statement(
        "SELECT column_name, data_type, is_nullable FROM information_schema.columns WHERE table_name = :p1",
        (table_name,),
    )


def build_insert(table_name: str, data: Any) -> Statement:
    """Build one multi-row ``INSERT ... RETURNING *``.

    The column list comes from the first row; placeholders are numbered in
    row-major order.
    """

    table = validate_identifier(table_name)
    if not data:
        raise EmptyInput("No data provided.")

    rows = [data] if isinstance(data, Mapping) else data
    if not isinstance(rows, (list, tuple)) or not all(isinstance(row, Mapping) for row in rows):
        raise InvalidInput("Data must be an object or an array of objects.")

    columns = [validate_identifier(key) for key in rows[0]]
    if not columns:
        raise InvalidInput("Rows must contain at least one column.")

    expected = set(columns)
    params: list[Any] = []
    groups: list[str] = []
    for row in rows:
        if set(row) != expected:
            raise InvalidInput("All rows must provide the same columns as the first row.")
        start = len(params)
        groups.append("(" + ", ".join(_placeholder(start + offset + 1) for offset in range(len(columns))) + ")")
        params.extend(row[column] for column in columns)

    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES {', '.join(groups)} RETURNING *"
    return Statement(sql, tuple(params))


def build_update(table_name: str, entry: Any) -> Statement:
    """Build one ``UPDATE`` for ``{"id": ..., "data": {...}}``.

    Placeholders are numbered per statement; the id always binds last.
    """

    table = validate_identifier(table_name)
    if not isinstance(entry, Mapping):
        raise InvalidUpdate('Each update must have an "id" and non-empty "data".')

    row_id = entry.get("id")
    data = entry.get("data")
    if not row_id or not isinstance(data, Mapping) or not data:
        raise InvalidUpdate('Each update must have an "id" and non-empty "data".')

    assignments = [f"{validate_identifier(column)} = {_placeholder(index)}" for index, column in enumerate(data, start=1)]
    params = (*data.values(), row_id)
    sql = (
        f"UPDATE {table} SET {', '.join(assignments)}, updated_at = NOW() "
        f"WHERE id = {_placeholder(len(params))} RETURNING *"
    )
    return Statement(sql, params)


def build_updates(table_name: str, updates: Sequence[Any]) -> list[Statement]:
    return [build_update(table_name, entry) for entry in updates]


def _unique_constraint(table: str, column: str) -> list[Statement]:
    constraint_name = f"{table}_{column}_constraint"
    return [
        Statement(f"ALTER TABLE {table} DROP CONSTRAINT IF EXISTS {constraint_name}"),
        Statement(f"ALTER TABLE {table} ADD CONSTRAINT {constraint_name} UNIQUE ({column})"),
    ]


def _set_not_null(table: str, column: str) -> list[Statement]:
    return [Statement(f"ALTER TABLE {table} ALTER COLUMN {column} SET NOT NULL")]


def _drop_not_null(table: str, column: str) -> list[Statement]:
    return [Statement(f"ALTER TABLE {table} ALTER COLUMN {column} DROP NOT NULL")]


_CONSTRAINT_BUILDERS: dict[str, Callable[[str, str], list[Statement]]] = {
    "UNIQUE": _unique_constraint,
    "NOT NULL": _set_not_null,
    "NULL": _drop_not_null,
}


def build_schema_change(table_name: str, change: Any) -> list[Statement]:
    """Translate one schema change into ordered ``ALTER TABLE`` statements.

    A type change always comes before the constraint change of the same
    request. ``UNIQUE`` is managed under the generated name
    ``<table>_<column>_constraint``, one per column.
    """

    table = validate_identifier(table_name)
    if not isinstance(change, Mapping):
        raise InvalidSchemaChange('Each schema change must have a "column" and either "type" or "constraint".')

    column = change.get("column")
    type_name = change.get("type")
    constraint = change.get("constraint")
    if not column or (not type_name and not constraint):
        raise InvalidSchemaChange('Each schema change must have a "column" and either "type" or "constraint".')
    column = validate_identifier(column)

    statements: list[Statement] = []
    if type_name:
        statements.append(
            Statement(f"ALTER TABLE {table} ALTER COLUMN {column} SET DATA TYPE {validate_sql_type(type_name)}")
        )

    if constraint:
        builder = _CONSTRAINT_BUILDERS.get(constraint.upper()) if isinstance(constraint, str) else None
        if builder is None:
            raise UnsupportedConstraint(constraint)
        statements.extend(builder(table, column))

    return statements


def build_schema_changes(table_name: str, changes: Sequence[Any]) -> list[Statement]:
    statements: list[Statement] = []
    for change in changes:
        statements.extend(build_schema_change(table_name, change))
    return statements


# Lookup order matters: the first operator present in a criteria value wins.
COMPARISON_OPERATORS: dict[str, str] = {
    "$lt": "<",
    "$gt": ">",
    "$lte": "<=",
    "$gte": ">=",
    "$ne": "<>",
}


def build_search(table_name: str, criteria: Mapping[str, Any] | None = None) -> Statement:
    """Build ``SELECT *`` with AND-joined conditions from flat criteria.

    ``{"age": 30}`` is equality, ``{"age": {"$gt": 30}}`` a comparison.
    """

    table = validate_identifier(table_name)
    criteria = criteria or {}
    if not isinstance(criteria, Mapping):
        raise InvalidInput("Search criteria must be an object.")

    conditions: list[str] = []
    params: list[Any] = []
    for key, value in criteria.items():
        column = validate_identifier(key)
        if isinstance(value, Mapping):
            operator = next((op for op in COMPARISON_OPERATORS if op in value), None)
            if operator is None:
                raise UnsupportedOperator(key)
            params.append(value[operator])
            conditions.append(f"{column} {COMPARISON_OPERATORS[operator]} {_placeholder(len(params))}")
        elif isinstance(value, (list, tuple, set)):
            raise UnsupportedOperator(key)
        else:
            params.append(value)
            conditions.append(f"{column} = {_placeholder(len(params))}")

    sql = f"SELECT * FROM {table}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    return Statement(sql, tuple(params))


def build_delete(table_name: str, ids: Any) -> Statement:
    table = validate_identifier(table_name)
    if not ids:
        raise EmptyInput("No IDs provided.")

    id_list = list(ids) if isinstance(ids, (list, tuple)) else [ids]
    return Statement(f"DELETE FROM {table} WHERE id = ANY(CAST(:p1 AS INTEGER[])) RETURNING *", (id_list,))


JOIN_TYPES: tuple[str, ...] = ("INNER", "LEFT", "RIGHT", "FULL")


def build_join(table1: str, table2: str, join_type: str | None = "INNER", on_condition: Any = None) -> Statement:
    """Build ``SELECT * FROM a <JOIN> JOIN b ON <condition>``.

    The ON predicate is caller-trusted and embedded verbatim: it names
    columns, which cannot be bound.
    """

    left = validate_identifier(table1)
    right = validate_identifier(table2)

    join_type = join_type or "INNER"
    normalized = join_type.upper() if isinstance(join_type, str) else None
    if normalized not in JOIN_TYPES:
        raise InvalidJoinType(f"Invalid join type: {join_type}. Allowed: {', '.join(JOIN_TYPES)}")

    if not isinstance(on_condition, str) or not on_condition.strip():
        raise InvalidInput("Join condition must be provided as a valid SQL condition string.")

    return Statement(f"SELECT * FROM {left} {normalized} JOIN {right} ON {_escape_colons(on_condition.strip())}")
