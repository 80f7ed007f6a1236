"""Pydantic schemas for chat interactions."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_input: str = Field(..., alias="userInput", description="Free-text request for the agent.")


class ChatResponse(BaseModel):
    output: str = Field(..., description="JSON-encoded OUTPUT payload produced by the agent.")


class ErrorResponse(BaseModel):
    error: str
