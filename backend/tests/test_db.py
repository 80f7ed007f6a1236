"""Parameter handling between built statements and the PostgreSQL driver."""

from __future__ import annotations

import pytest
from conftest import RecordingExecutor

from app.core import db
from app.core.config import AppSettings
from app.services.tools import DynamicTableTools


class _Result:
    returns_rows = False


class _RecordingConnection:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []

    async def execute(self, clause, params):
        self.calls.append((str(clause), params))
        return _Result()


@pytest.mark.asyncio
async def test_timestamp_values_reach_the_driver_as_iso_text(executor: RecordingExecutor) -> None:
    tools = DynamicTableTools(executor)
    await tools.insert_rows("people", {"name": "Ada", "date_of_birth": "1990-01-01"})
    await tools.search_rows("people", {"created_at": {"$gt": "2026-01-01"}, "id": 3})

    connection = _RecordingConnection()
    for statement in executor.statements:
        await db._execute(connection, statement)

    (insert_sql, insert_params), (search_sql, search_params) = connection.calls
    assert insert_sql == "INSERT INTO people (name, date_of_birth) VALUES (:p1, :p2) RETURNING *"
    assert insert_params == {"p1": "Ada", "p2": "1990-01-01"}
    assert search_sql == "SELECT * FROM people WHERE created_at > :p1 AND id = :p2"
    assert search_params == {"p1": "2026-01-01", "p2": "3"}


@pytest.mark.asyncio
async def test_update_and_delete_ids_are_sent_as_text(executor: RecordingExecutor) -> None:
    tools = DynamicTableTools(executor)
    await tools.update_rows("people", updates=[{"id": "3", "data": {"age": 41, "active": True}}])
    await tools.remove_rows("people", [3, "4"])

    connection = _RecordingConnection()
    for statement in executor.statements:
        await db._execute(connection, statement)

    update_params = connection.calls[0][1]
    delete_sql, delete_params = connection.calls[1]
    assert update_params == {"p1": "41", "p2": "true", "p3": "3"}
    assert "CAST(:p1 AS INTEGER[])" in delete_sql
    assert delete_params == {"p1": ["3", "4"]}


def test_untyped_text_keeps_nulls_and_encodes_objects() -> None:
    assert db.as_untyped_text(None) is None
    assert db.as_untyped_text(12.5) == "12.5"
    assert db.as_untyped_text(False) == "false"
    assert db.as_untyped_text({"tags": ["a"]}) == '{"tags": ["a"]}'


def test_database_url_uses_psycopg_driver() -> None:
    assert AppSettings().database_url.startswith("postgresql+psycopg://")
    assert AppSettings(database_url="postgres://u:p@db:5432/app").database_url == "postgresql+psycopg://u:p@db:5432/app"
    assert AppSettings(database_url="postgresql://u@db/app").database_url == "postgresql+psycopg://u@db/app"
