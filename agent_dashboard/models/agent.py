"""Agent model - an externally run autonomous worker tracked by the dashboard."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AgentStatus(str, Enum):
    """Agent lifecycle status.

    Normal operation cycles idle -> executing -> active -> idle.
    STOPPED and ERROR are terminal for hook processing.
    """

    IDLE = "idle"
    """No session activity, waiting for work."""

    EXECUTING = "executing"
    """A tool call is in flight."""

    ACTIVE = "active"
    """Inside a session, between tool calls."""

    STOPPED = "stopped"
    """Stopped by an administrative command."""

    ERROR = "error"
    """Escalated by the alert policy."""


class Agent(BaseModel):
    """An autonomous agent as held by the Event Store.

    Identity fields (id, name, role, callsign, branch) are provisioned
    out-of-band. Everything else is written by hook processing.
    """

    id: str = Field(..., description="Stable agent identifier")
    name: str = Field(default="", description="Display name")
    role: str | None = Field(default=None, description="Role within the team")
    specialty: str | None = Field(default=None, description="Specialty from the identity card")
    callsign: str | None = Field(default=None, description="Short radio-style callsign")
    branch: str | None = Field(default=None, description="Assigned source-control branch")
    status: AgentStatus = Field(default=AgentStatus.IDLE)
    last_activity: str | None = Field(
        default=None,
        description="Timestamp of the last hook event, as sent by the agent",
    )
    completed_tasks: int = Field(default=0, ge=0)

    # Hook bookkeeping
    current_tool: str | None = None
    last_tool: str | None = None
    last_tool_success: bool | None = None
    last_session: str | None = None
    last_session_end: str | None = None
    last_session_reason: str | None = None
    stop_reason: str | None = None


class AgentActivityUpdate(BaseModel):
    """Typed partial update for an Agent node.

    Only fields that were explicitly set are written; anything else is
    rejected at construction time.
    """

    model_config = ConfigDict(extra="forbid")

    status: AgentStatus | None = None
    current_tool: str | None = None
    last_tool: str | None = None
    last_tool_success: bool | None = None
    last_activity: str | None = None
    last_session: str | None = None
    last_session_end: str | None = None
    last_session_reason: str | None = None
    stop_reason: str | None = None

    def to_properties(self) -> dict:
        """Return the explicitly set fields as plain property values."""
        return self.model_dump(mode="json", exclude_unset=True)


class AgentContext(BaseModel):
    """Collaboration context of an agent in the graph."""

    collaborators: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
