"""Webhook payload models for agent lifecycle hooks.

Agents post camelCase JSON; the models expose snake_case attributes and
keep unknown fields so the raw payload can be archived as sent.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HookEventKind(str, Enum):
    """Kinds of lifecycle notification an agent can send."""

    PRE_TOOL_USE = "pre_tool_use"
    POST_TOOL_USE = "post_tool_use"
    SESSION_END = "session_end"
    USER_PROMPT_SUBMIT = "user_prompt_submit"


class SessionEndReason(str, Enum):
    """Why an agent session finished."""

    TASK_COMPLETE = "task_complete"
    ERROR = "error"
    TIMEOUT = "timeout"
    MANUAL_STOP = "manual_stop"


class HookPayload(BaseModel):
    """Fields shared by every hook payload."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    agent_id: str = Field(..., alias="agentId", min_length=1)
    agent_name: str = Field(default="", alias="agentName")
    session_id: str = Field(..., alias="sessionId", min_length=1)
    timestamp: str = Field(..., description="Event time as reported by the agent")
    callsign: str | None = None
    branch: str | None = None

    def raw(self) -> dict[str, Any]:
        """Return the payload in its wire form, extra fields included."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PreToolUsePayload(HookPayload):
    """Sent before the agent executes a tool."""

    tool_name: str = Field(..., alias="toolName", min_length=1)
    tool_params: dict[str, Any] = Field(default_factory=dict, alias="toolParams")


class ToolResult(BaseModel):
    """Outcome of a tool call."""

    model_config = ConfigDict(extra="allow")

    success: bool
    output: str | None = None
    error: str | None = None


class PostToolUsePayload(HookPayload):
    """Sent after a tool call completes, successfully or not."""

    tool_name: str = Field(..., alias="toolName", min_length=1)
    result: ToolResult
    execution_time_ms: float = Field(default=0, alias="executionTimeMs", ge=0)


class SessionEndPayload(HookPayload):
    """Sent when an agent session finishes."""

    reason: SessionEndReason
    summary: str = ""
    tasks_completed: int = Field(default=0, alias="tasksCompleted", ge=0)
    total_execution_time_ms: float = Field(default=0, alias="totalExecutionTimeMs", ge=0)


class UserPromptSubmitPayload(HookPayload):
    """Sent when a user hands a prompt to the agent."""

    prompt: str


PAYLOAD_MODELS: dict[HookEventKind, type[HookPayload]] = {
    HookEventKind.PRE_TOOL_USE: PreToolUsePayload,
    HookEventKind.POST_TOOL_USE: PostToolUsePayload,
    HookEventKind.SESSION_END: SessionEndPayload,
    HookEventKind.USER_PROMPT_SUBMIT: UserPromptSubmitPayload,
}
