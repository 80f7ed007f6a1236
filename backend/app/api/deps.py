"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, status

from app.core.config import AppSettings, get_settings
from app.core.db import StatementExecutor, get_executor
from app.models.chat import ChatRequest
from app.services import agent


def get_app_settings() -> AppSettings:
    """Expose application settings as a dependency."""

    return get_settings()


def get_statement_executor() -> StatementExecutor:
    """Provide the executor bound to the shared connection pool."""

    return get_executor()


def get_agent_context(
    settings: AppSettings = Depends(get_app_settings),
) -> agent.AgentContext:
    """Construct or retrieve a cached agent context.

    A missing model API key surfaces as a 500 with the usual error body.
    """

    try:
        return agent.get_agent_context(settings)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc


def validate_chat(request: ChatRequest) -> ChatRequest:
    """Reject input that is blank once surrounding whitespace is removed."""

    user_input = request.user_input.strip()
    if not user_input:
        raise ValueError("userInput must not be empty.")
    return ChatRequest(user_input=user_input)
