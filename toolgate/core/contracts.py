# Purpose: Wire contracts for a single tool call and its outcome.
# Relationships: Produced and consumed by core/invoker.py; core/llm_query.py
#               builds ToolCall from model responses and feeds
#               InvocationOutcome.to_tool_content() back into the conversation.

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

OUTPUT_STRING = "string"
OUTPUT_JSON = "application/json"


class ToolCallDeclined(Exception):
    """Raised when the human approver declines a tool call."""


class _Contract(BaseModel):
    # Dumps use camelCase (by_alias=True) to match what the model is told.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolCall(_Contract):
    function_name: str
    arguments_json: str = "{}"
    id: str | None = None

    @field_validator("arguments_json", mode="before")
    @classmethod
    def _encode_mapping(cls, value: Any) -> Any:
        # Some providers hand over already-decoded arguments.
        if isinstance(value, dict):
            return json.dumps(value)
        if value is None:
            return "{}"
        return value


class ToolCallError(_Contract):
    message: str
    exception_class: str
    exception_thrown: bool = True


class InvocationOutcome(_Contract):
    function_name: str
    exposed: bool = False
    reason: str | None = None
    unfiltered_arguments: dict[str, Any] = Field(default_factory=dict)
    filtered_arguments: dict[str, Any] = Field(default_factory=dict)
    output: str | None = None
    output_type: Literal["string", "application/json"] | None = None
    error: ToolCallError | None = None
    warnings: list[str] = Field(default_factory=list)
    execution_errors: list[str] = Field(default_factory=list)

    def to_tool_content(self) -> str:
        """Text returned to the model as the tool result."""
        if self.output is not None:
            return self.output
        return self.model_dump_json(
            by_alias=True,
            exclude_none=True,
            include={"function_name", "exposed", "reason", "error", "warnings", "execution_errors"},
        )
