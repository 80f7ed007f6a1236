"""Dynamic table tools exposed to the chat agent."""

from __future__ import annotations

import asyncio
from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger
from app.models.tools import ColumnInfo, ToolResult
from app.services import sql
from app.services.errors import CatalogQueryFailed, InvalidInput, ToolError
from app.services.identifiers import validate_identifier
from app.services.sql import Statement

logger = get_logger(__name__)


class StatementRunner(Protocol):
    async def fetch(self, statement: Statement) -> list[dict[str, Any]]: ...


class Executor(StatementRunner, Protocol):
    def transaction(self) -> AbstractAsyncContextManager[StatementRunner]: ...


class DynamicTableTools:
    """CRUD, schema evolution and joins over tables created at runtime.

    Every public coroutine returns a :class:`ToolResult`. Locally detected
    problems are reported with their message; database errors are logged
    and replaced by a generic message.
    """

    def __init__(self, executor: Executor, *, atomic_updates: bool = True) -> None:
        self._executor = executor
        self.atomic_updates = atomic_updates

    async def create_table(self, schema_name: str, columns: Any = None) -> ToolResult:
        try:
            await self._executor.fetch(sql.build_create_table(schema_name, columns))
        except ToolError as exc:
            logger.warning("tools.create_table.rejected", table=schema_name, error=str(exc))
            return ToolResult.failure(str(exc))
        except SQLAlchemyError as exc:
            logger.exception("tools.create_table.failed", table=schema_name, exc_info=exc)
            return ToolResult.failure(f"Failed to create {schema_name} table.")

        logger.info("tools.create_table.done", table=schema_name)
        return ToolResult(success=True, message=f"{schema_name} table created successfully.")

    async def table_exists(self, table_name: str) -> bool:
        try:
            rows = await self._executor.fetch(sql.build_table_exists(table_name))
        except SQLAlchemyError as exc:
            logger.exception("tools.table_exists.failed", table=table_name, exc_info=exc)
            raise CatalogQueryFailed(f"Error checking table existence for '{table_name}'.") from exc
        return bool(rows and rows[0].get("table_exists"))

    async def get_columns(self, table_name: str) -> ToolResult:
        """Report name, declared type and nullability of each column."""

        try:
            if not await self.table_exists(table_name):
                return ToolResult.failure(f"Table '{table_name}' does not exist.")
            rows = await self._executor.fetch(sql.build_table_columns(table_name))
        except CatalogQueryFailed as exc:
            return ToolResult.failure(f"Error fetching columns: {exc}")
        except SQLAlchemyError as exc:
            logger.exception("tools.get_columns.failed", table=table_name, exc_info=exc)
            return ToolResult.failure(f"Error fetching columns for table '{table_name}'.")

        columns = [
            ColumnInfo(name=row["column_name"], type=row["data_type"], nullable=row["is_nullable"] == "YES")
            for row in rows
        ]
        return ToolResult(success=True, columns=columns)

    async def insert_rows(self, table_name: str, data: Any = None) -> ToolResult:
        return await self._fetch_rows("insert", lambda: sql.build_insert(table_name, data), "Failed to add data.")

    async def update_rows(
        self,
        table_name: str,
        updates: list[Any] | None = None,
        schema_changes: list[Any] | None = None,
    ) -> ToolResult:
        """Apply row updates by id and column alterations in one request.

        The whole request is validated before the first statement is sent.
        With ``atomic_updates`` everything runs in one transaction; otherwise
        row updates run concurrently and schema statements one at a time,
        each committed on its own.
        """

        updates = updates or []
        schema_changes = schema_changes or []

        try:
            table = validate_identifier(table_name)
            if not isinstance(updates, list) or not isinstance(schema_changes, list):
                raise InvalidInput("'updates' and 'schemaChanges' must be arrays.")
            if not updates and not schema_changes:
                raise InvalidInput("Either 'updates' or 'schemaChanges' must be provided.")

            update_statements = sql.build_updates(table, updates)
            schema_statements = sql.build_schema_changes(table, schema_changes)

            for entry in updates:
                logger.info("tools.update.row", table=table, row_id=entry["id"], columns=list(entry["data"]))

            if self.atomic_updates:
                rows = await self._apply_atomically(update_statements, schema_statements)
            else:
                rows = await self._apply_best_effort(update_statements, schema_statements)
        except ToolError as exc:
            logger.warning("tools.update.rejected", table=table_name, error=str(exc))
            return ToolResult.failure(str(exc))
        except SQLAlchemyError as exc:
            logger.exception("tools.update.failed", table=table_name, atomic=self.atomic_updates, exc_info=exc)
            return ToolResult.failure("Failed to update data/schema.")

        return ToolResult(success=True, data=rows)

    async def search_rows(self, table_name: str, criteria: dict[str, Any] | None = None) -> ToolResult:
        return await self._fetch_rows("search", lambda: sql.build_search(table_name, criteria), "Failed to search data.")

    async def remove_rows(self, table_name: str, ids: Any = None) -> ToolResult:
        return await self._fetch_rows("remove", lambda: sql.build_delete(table_name, ids), "Failed to remove data.")

    async def join_tables(
        self,
        table1: str,
        table2: str,
        join_type: str | None = "INNER",
        on_condition: Any = None,
    ) -> ToolResult:
        try:
            rows = await self._executor.fetch(sql.build_join(table1, table2, join_type, on_condition))
        except ToolError as exc:
            logger.warning("tools.join.rejected", table1=table1, table2=table2, error=str(exc))
            return ToolResult.failure(f"Failed to join tables: {exc}")
        except SQLAlchemyError as exc:
            logger.exception("tools.join.failed", table1=table1, table2=table2, exc_info=exc)
            return ToolResult.failure("Failed to join tables.")

        return ToolResult(success=True, data=rows)

    async def _fetch_rows(self, operation: str, build: Callable[[], Statement], failure_message: str) -> ToolResult:
        try:
            rows = await self._executor.fetch(build())
        except ToolError as exc:
            logger.warning(f"tools.{operation}.rejected", error=str(exc))
            return ToolResult.failure(str(exc))
        except SQLAlchemyError as exc:
            logger.exception(f"tools.{operation}.failed", exc_info=exc)
            return ToolResult.failure(failure_message)

        logger.debug(f"tools.{operation}.done", row_count=len(rows))
        return ToolResult(success=True, data=rows)

    async def _apply_atomically(
        self,
        update_statements: list[Statement],
        schema_statements: list[Statement],
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        async with self._executor.transaction() as scope:
            for statement in update_statements:
                rows.extend(await scope.fetch(statement))
            for statement in schema_statements:
                logger.info("tools.schema_change.execute", sql=statement.sql)
                await scope.fetch(statement)
        return rows

    async def _apply_best_effort(
        self,
        update_statements: list[Statement],
        schema_statements: list[Statement],
    ) -> list[dict[str, Any]]:
        batch = asyncio.gather(*(self._executor.fetch(statement) for statement in update_statements))
        try:
            # DDL on one table must not overlap; updates stay in flight meanwhile.
            for statement in schema_statements:
                logger.info("tools.schema_change.execute", sql=statement.sql)
                await self._executor.fetch(statement)
        except BaseException:
            await asyncio.gather(batch, return_exceptions=True)
            raise

        results = await batch
        return [row for rows in results for row in rows]
