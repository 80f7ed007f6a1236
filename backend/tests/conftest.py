"""Shared test doubles for the tool layer and the agent loop."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest
from langchain_core.messages import AIMessage
from sqlalchemy.exc import SQLAlchemyError

from app.services.sql import Statement


class RecordingExecutor:
    """In-memory stand-in for the statement executor.

    ``responses`` maps a SQL fragment to the rows returned for the first
    statement containing it. ``fail_on`` makes matching statements raise a
    store error.
    """

    def __init__(self) -> None:
        self.responses: dict[str, list[dict[str, Any]]] = {}
        self.fail_on: set[str] = set()
        self.statements: list[Statement] = []
        self.transactional: list[Statement] = []
        self.committed = False
        self.rolled_back = False
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, statement: Statement) -> list[dict[str, Any]]:
        self.statements.append(statement)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if any(fragment in statement.sql for fragment in self.fail_on):
                raise SQLAlchemyError("boom: internal store detail")
            for fragment, rows in self.responses.items():
                if fragment in statement.sql:
                    return [dict(row) for row in rows]
            return []
        finally:
            self.in_flight -= 1

    @asynccontextmanager
    async def transaction(self):
        scope = _TransactionScope(self)
        try:
            yield scope
        except BaseException:
            self.rolled_back = True
            raise
        self.committed = True


class _TransactionScope:
    def __init__(self, executor: RecordingExecutor) -> None:
        self._executor = executor

    async def fetch(self, statement: Statement) -> list[dict[str, Any]]:
        self._executor.transactional.append(statement)
        return await self._executor.fetch(statement)


class StubLLM:
    """Async chat model stub replaying canned JSON replies."""

    def __init__(self, replies: list[str], *, default: str | None = None, error: Exception | None = None) -> None:
        self._replies = replies
        self._default = default
        self._error = error
        self.calls = 0
        self.last_messages: list[Any] | None = None

    async def ainvoke(self, messages) -> AIMessage:
        self.last_messages = list(messages)
        if self._error is not None:
            raise self._error
        if self.calls < len(self._replies):
            reply = self._replies[self.calls]
        elif self._default is not None:
            reply = self._default
        else:  # pragma: no cover - defensive guard
            raise AssertionError("StubLLM received more calls than configured")

        self.calls += 1
        return AIMessage(content=reply)


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()
