"""Plan/action/observation loop driving the dynamic table tools."""

from __future__ import annotations

import json
from dataclasses import dataclass
from json import JSONDecodeError
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI
from langsmith import traceable
from pydantic import BaseModel, ValidationError

from app.core.config import AppSettings, get_settings
from app.core.db import get_executor
from app.core.logging import get_logger
from app.models.tools import (
    CreateTableInput,
    GetColumnsInput,
    InsertInput,
    JoinInput,
    RemoveInput,
    SearchInput,
    ToolResult,
    UpdateInput,
)
from app.services.errors import AgentStepLimitExceeded, UnknownToolError
from app.services.prompts import SYSTEM_PROMPT
from app.services.tools import DynamicTableTools

logger = get_logger(__name__)


@dataclass(slots=True)
class AgentContext:
    """Container for the chat model and the tools it may call."""

    llm: Runnable
    tools: DynamicTableTools
    settings: AppSettings


@dataclass(frozen=True, slots=True)
class ToolBinding:
    input_model: type[BaseModel]
    method: str


TOOL_BINDINGS: dict[str, ToolBinding] = {
    "createDynamicTable": ToolBinding(CreateTableInput, "create_table"),
    "getTableColumns": ToolBinding(GetColumnsInput, "get_columns"),
    "addDataToTable": ToolBinding(InsertInput, "insert_rows"),
    "updateDataInTable": ToolBinding(UpdateInput, "update_rows"),
    "searchDataInTable": ToolBinding(SearchInput, "search_rows"),
    "removeDataFromTable": ToolBinding(RemoveInput, "remove_rows"),
    "joinTables": ToolBinding(JoinInput, "join_tables"),
}


_context: AgentContext | None = None


def build_agent_context(settings: AppSettings) -> AgentContext:
    """Instantiate the chat model and bind the tools to the shared pool."""

    if not settings.openai_api_key:
        logger.error("agent.context.missing_api_key", message="OpenAI-compatible API key not configured")
        raise RuntimeError("API key required for the chat agent.")

    llm = ChatOpenAI(
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        openai_api_key=settings.openai_api_key,
        openai_api_base=settings.openai_api_base,
    ).bind(response_format={"type": "json_object"})

    tools = DynamicTableTools(get_executor(), atomic_updates=settings.atomic_updates)
    return AgentContext(llm=llm, tools=tools, settings=settings)


def get_agent_context(settings: AppSettings | None = None) -> AgentContext:
    """Return a cached agent context."""

    global _context
    settings = settings or get_settings()

    if _context is None or _context.settings is not settings:
        _context = build_agent_context(settings)

    return _context


@traceable(name="agent.run")
async def run_agent(user_input: str, *, context: AgentContext) -> str:
    """Drive the model until it emits an OUTPUT message.

    Returns the JSON-encoded ``output`` value. Raises
    :class:`UnknownToolError` when the model names a tool that does not exist
    and :class:`AgentStepLimitExceeded` when no output arrives within
    ``agent_max_steps`` model calls.
    """

    messages: list[BaseMessage] = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=json.dumps({"type": "user", "user": user_input}, ensure_ascii=False)),
    ]

    max_steps = context.settings.agent_max_steps
    for step in range(1, max_steps + 1):
        reply = await context.llm.ainvoke(messages)
        raw_content = _message_content_to_text(reply)
        messages.append(AIMessage(content=raw_content))

        payload = _parse_json_content(raw_content)
        message_type = payload.get("type")
        logger.debug("agent.step", step=step, message_type=message_type)

        if message_type == "output":
            return json.dumps(payload.get("output"), ensure_ascii=False)

        if message_type == "action":
            result = await _dispatch_action(payload, context.tools)
            observation = {
                "type": "observation",
                "success": result.success,
                "observation": result.as_observation(),
            }
            messages.append(SystemMessage(content=json.dumps(observation, ensure_ascii=False)))

    logger.warning("agent.step_limit", max_steps=max_steps)
    raise AgentStepLimitExceeded(max_steps)


@traceable(name="agent.dispatch_action")
async def _dispatch_action(payload: dict[str, Any], tools: DynamicTableTools) -> ToolResult:
    tool_name = payload.get("function")
    binding = TOOL_BINDINGS.get(tool_name) if isinstance(tool_name, str) else None
    if binding is None:
        logger.warning("agent.tool.unknown", tool_name=tool_name)
        raise UnknownToolError(tool_name)

    raw_input = payload.get("input") or {}
    logger.info("agent.action", tool_name=tool_name, input=raw_input)

    try:
        arguments = binding.input_model.model_validate(raw_input)
    except ValidationError as exc:
        logger.warning("agent.tool.invalid_input", tool_name=tool_name, errors=exc.error_count())
        return ToolResult.failure(f"Invalid input for {tool_name}: {_summarize_errors(exc)}")

    result: ToolResult = await getattr(tools, binding.method)(**arguments.model_dump())
    logger.info("agent.observation", tool_name=tool_name, success=result.success)
    return result


def _summarize_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(item) for item in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def _message_content_to_text(message: Any) -> str:
    """Coerce message content into a string for downstream parsing."""

    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts)
    return str(content)


def _parse_json_content(raw: str) -> dict[str, Any]:
    """Parse a JSON object from a model reply, tolerating code fences."""

    if not raw:
        return {}

    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = _strip_code_fence(cleaned)

    try:
        data = json.loads(cleaned)
    except JSONDecodeError:
        logger.warning("agent.json.parse_failed", content=cleaned[:200])
        return {}

    return data if isinstance(data, dict) else {}


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("```", 2)[1] if stripped.count("```") >= 2 else stripped.lstrip("`")
    if stripped.lower().startswith("json"):
        stripped = stripped[4:]
    return stripped.strip()
