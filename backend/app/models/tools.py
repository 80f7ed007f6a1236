"""Pydantic schemas for tool inputs and the result envelope."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ColumnInfo(BaseModel):
    name: str
    type: str
    nullable: bool


class ToolResult(BaseModel):
    """Uniform envelope returned by every tool operation."""

    success: bool
    message: str | None = None
    data: list[dict[str, Any]] | None = None
    columns: list[ColumnInfo] | None = None

    @classmethod
    def failure(cls, message: str) -> "ToolResult":
        return cls(success=False, message=message)

    def as_observation(self) -> dict[str, Any]:
        """JSON-safe payload fed back to the model."""

        return self.model_dump(mode="json", exclude_none=True)


class ToolInput(BaseModel):
    """Tool arguments as the model sends them (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CreateTableInput(ToolInput):
    schema_name: str = Field(..., alias="schemaName")
    columns: Any = None


class GetColumnsInput(ToolInput):
    table_name: str = Field(..., alias="tableName")


class InsertInput(ToolInput):
    table_name: str = Field(..., alias="tableName")
    data: Any = None


class UpdateInput(ToolInput):
    table_name: str = Field(..., alias="tableName")
    updates: list[Any] | None = None
    schema_changes: list[Any] | None = Field(default=None, alias="schemaChanges")


class SearchInput(ToolInput):
    table_name: str = Field(..., alias="tableName")
    criteria: dict[str, Any] | None = None


class RemoveInput(ToolInput):
    table_name: str = Field(..., alias="tableName")
    ids: Any = None


class JoinInput(ToolInput):
    table1: str
    table2: str
    join_type: str | None = Field(default="INNER", alias="joinType")
    on_condition: Any = Field(default=None, alias="onCondition")
