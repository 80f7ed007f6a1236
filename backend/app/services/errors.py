"""Errors raised by the dynamic table tools and the agent loop."""

from __future__ import annotations


class ToolError(Exception):
    """Request rejected locally, before or instead of reaching the database."""


class InvalidIdentifier(ToolError):
    def __init__(self, name: object) -> None:
        super().__init__(f"Invalid table/schema name: {name}")
        self.name = name


class InvalidInput(ToolError):
    pass


class EmptyInput(InvalidInput):
    pass


class UnsupportedType(ToolError):
    def __init__(self, type_name: object) -> None:
        super().__init__(f"Unsupported column type: {type_name}")
        self.type_name = type_name


class UnsupportedOperator(ToolError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Unsupported operator in criteria for key: {key}")
        self.key = key


class UnsupportedConstraint(ToolError):
    def __init__(self, constraint: object) -> None:
        super().__init__(f"Unsupported constraint: {constraint}")
        self.constraint = constraint


class InvalidJoinType(ToolError):
    pass


class InvalidUpdate(ToolError):
    pass


class InvalidSchemaChange(ToolError):
    pass


class CatalogQueryFailed(ToolError):
    """The catalog lookup itself failed; store detail is logged, not carried."""


class AgentError(Exception):
    """Base error for the chat agent loop."""


class UnknownToolError(AgentError):
    def __init__(self, name: object) -> None:
        super().__init__("Invalid function")
        self.name = name


class AgentStepLimitExceeded(AgentError):
    def __init__(self, max_steps: int) -> None:
        super().__init__(f"Agent did not produce an output within {max_steps} steps.")
        self.max_steps = max_steps
