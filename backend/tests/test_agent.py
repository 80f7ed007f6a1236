"""Unit tests for the plan/action/observation loop."""

from __future__ import annotations

import json

import pytest
from conftest import StubLLM

from app.core.config import AppSettings
from app.services.agent import AgentContext, build_agent_context, run_agent
from app.services.errors import AgentStepLimitExceeded, UnknownToolError
from app.services.tools import DynamicTableTools


def _context(llm: StubLLM, executor, **overrides) -> AgentContext:
    settings = AppSettings(openai_api_key="stub", **overrides)
    return AgentContext(llm=llm, tools=DynamicTableTools(executor), settings=settings)


def _observations(llm: StubLLM) -> list[dict]:
    payloads = []
    for message in llm.last_messages or []:
        try:
            payload = json.loads(message.content)
        except (TypeError, ValueError):
            continue
        if isinstance(payload, dict) and payload.get("type") == "observation":
            payloads.append(payload)
    return payloads


@pytest.mark.asyncio
async def test_run_agent_returns_encoded_output(executor) -> None:
    llm = StubLLM([json.dumps({"type": "output", "output": "Hello there!"})])

    output = await run_agent("hi", context=_context(llm, executor))

    assert output == '"Hello there!"'
    assert llm.calls == 1
    first_user = json.loads(llm.last_messages[1].content)
    assert first_user == {"type": "user", "user": "hi"}


@pytest.mark.asyncio
async def test_run_agent_executes_action_and_feeds_observation_back(executor) -> None:
    llm = StubLLM(
        [
            json.dumps({"type": "plan", "plan": "Create the widgets table."}),
            json.dumps(
                {
                    "type": "action",
                    "function": "createDynamicTable",
                    "input": {"schemaName": "widgets", "columns": [{"name": "title", "type": "text"}]},
                }
            ),
            json.dumps({"type": "output", "output": {"message": "Table widgets is ready."}}),
        ]
    )

    output = await run_agent("make me a widgets table", context=_context(llm, executor))

    assert json.loads(output) == {"message": "Table widgets is ready."}
    assert llm.calls == 3
    assert executor.statements[0].sql.startswith("CREATE TABLE IF NOT EXISTS widgets")
    assert _observations(llm) == [
        {
            "type": "observation",
            "success": True,
            "observation": {"success": True, "message": "widgets table created successfully."},
        }
    ]


@pytest.mark.asyncio
async def test_run_agent_reports_invalid_tool_input_as_failed_observation(executor) -> None:
    llm = StubLLM(
        [
            json.dumps({"type": "action", "function": "getTableColumns", "input": {"table": "widgets"}}),
            json.dumps({"type": "output", "output": "Could not read the table."}),
        ]
    )

    await run_agent("columns?", context=_context(llm, executor))

    (observation,) = _observations(llm)
    assert observation["success"] is False
    assert observation["observation"]["message"].startswith("Invalid input for getTableColumns: tableName")
    assert executor.statements == []


@pytest.mark.asyncio
async def test_run_agent_rejects_unknown_tool(executor) -> None:
    llm = StubLLM([json.dumps({"type": "action", "function": "dropEverything", "input": {}})])

    with pytest.raises(UnknownToolError) as excinfo:
        await run_agent("drop it all", context=_context(llm, executor))

    assert str(excinfo.value) == "Invalid function"


@pytest.mark.asyncio
async def test_run_agent_stops_after_step_limit(executor) -> None:
    llm = StubLLM([], default=json.dumps({"type": "plan", "plan": "Thinking..."}))

    with pytest.raises(AgentStepLimitExceeded):
        await run_agent("loop forever", context=_context(llm, executor, agent_max_steps=3))

    assert llm.calls == 3


@pytest.mark.asyncio
async def test_run_agent_tolerates_code_fences_and_garbage(executor) -> None:
    llm = StubLLM(
        [
            "not json at all",
            '```json\n{"type": "output", "output": "fenced"}\n```',
        ]
    )

    output = await run_agent("hello", context=_context(llm, executor))

    assert output == '"fenced"'
    assert llm.calls == 2


@pytest.mark.asyncio
async def test_run_agent_maps_camel_case_update_input(executor) -> None:
    executor.responses["UPDATE user_data"] = [{"id": 3}]
    llm = StubLLM(
        [
            json.dumps(
                {
                    "type": "action",
                    "function": "updateDataInTable",
                    "input": {
                        "tableName": "user_data",
                        "updates": [{"id": 3, "data": {"email": "new@example.com"}}],
                        "schemaChanges": [{"column": "email", "constraint": "UNIQUE"}],
                    },
                }
            ),
            json.dumps({"type": "output", "output": "Done."}),
        ]
    )

    await run_agent("update user 3", context=_context(llm, executor))

    assert [statement.sql.split(" ")[0] for statement in executor.statements] == ["UPDATE", "ALTER", "ALTER"]
    (observation,) = _observations(llm)
    assert observation["observation"] == {"success": True, "data": [{"id": 3}]}


def test_build_agent_context_requires_api_key() -> None:
    with pytest.raises(RuntimeError):
        build_agent_context(AppSettings(openai_api_key=None))
