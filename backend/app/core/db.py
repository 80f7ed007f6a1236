"""Database engine and statement execution."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .config import get_settings
from .logging import get_logger
from app.services.sql import Statement

logger = get_logger(__name__)

_async_engine: AsyncEngine | None = None
_executor: StatementExecutor | None = None


def get_engine() -> AsyncEngine:
    """Return a singleton instance of the async engine."""

    global _async_engine
    if _async_engine is None:
        settings = get_settings()
        url = make_url(settings.database_url)
        logger.info("db.engine.init", driver=url.drivername, host=url.host, database=url.database)
        _async_engine = create_async_engine(url, echo=settings.database_echo, pool_pre_ping=True)
    return _async_engine


async def dispose_engine() -> None:
    """Close pooled connections and forget the shared engine."""

    global _async_engine, _executor
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _executor = None


class ConnectionScope:
    """Run statements on one connection inside an open transaction."""

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection

    async def fetch(self, statement: Statement) -> list[dict[str, Any]]:
        return await _execute(self._connection, statement)


class StatementExecutor:
    """Execute built statements against the shared connection pool.

    ``fetch`` takes a pooled connection per call and commits on success.
    ``transaction`` pins one connection for several statements and rolls all
    of them back if any fails.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def fetch(self, statement: Statement) -> list[dict[str, Any]]:
        async with self._engine.begin() as connection:
            return await _execute(connection, statement)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[ConnectionScope]:
        async with self._engine.begin() as connection:
            yield ConnectionScope(connection)


def get_executor() -> StatementExecutor:
    """Return the executor bound to the shared engine."""

    global _executor
    if _executor is None:
        _executor = StatementExecutor(get_engine())
    return _executor


def as_untyped_text(value: Any) -> Any:
    """Render a JSON value as text for the server to cast against the column.

    psycopg sends ``str`` parameters with the unknown type, so PostgreSQL
    infers the target type from the statement (``"1990-01-01"`` into a
    ``TIMESTAMPTZ`` column, ``"3"`` compared with an ``id``).
    """

    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return [as_untyped_text(item) for item in value]
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def driver_parameters(statement: Statement) -> dict[str, Any]:
    return {name: as_untyped_text(value) for name, value in statement.bindings.items()}


async def _execute(connection: AsyncConnection, statement: Statement) -> list[dict[str, Any]]:
    result = await connection.execute(text(statement.sql), driver_parameters(statement))
    if not result.returns_rows:
        return []
    return [dict(row) for row in result.mappings().all()]
