"""Append-only history records held by the Event Archive."""

import threading
import time
from typing import Any

from pydantic import BaseModel, Field

from agent_dashboard.models.hook import HookEventKind, SessionEndReason

_id_lock = threading.Lock()
_last_ns = 0


def _next_sequence() -> int:
    """Return a process-wide strictly increasing nanosecond stamp."""
    global _last_ns
    with _id_lock:
        _last_ns = max(time.time_ns(), _last_ns + 1)
        return _last_ns


def new_record_id(agent_id: str, session_id: str) -> str:
    """Build a never-reused archive id for one agent session event."""
    return f"{agent_id}-{session_id}-{_next_sequence()}"


class HookEventRecord(BaseModel):
    """One immutable hook notification."""

    record_id: str
    agent_id: str
    session_id: str
    kind: HookEventKind
    timestamp: str
    tool_name: str | None = None
    success: bool | None = None
    execution_time_ms: float | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def create(
        cls,
        agent_id: str,
        session_id: str,
        kind: HookEventKind,
        timestamp: str,
        **fields: Any,
    ) -> "HookEventRecord":
        """Create a record with a fresh id."""
        return cls(
            record_id=new_record_id(agent_id, session_id),
            agent_id=agent_id,
            session_id=session_id,
            kind=kind,
            timestamp=timestamp,
            **fields,
        )

    @property
    def sequence(self) -> int:
        """Ordering stamp taken from the record id (0 if it has none)."""
        try:
            return int(self.record_id.rsplit("-", 1)[1])
        except (IndexError, ValueError):
            return 0

    def metadata(self) -> dict[str, Any]:
        """Flat metadata for vector-store indexing."""
        meta: dict[str, Any] = {
            "agentId": self.agent_id,
            "sessionId": self.session_id,
            "type": self.kind.value,
            "timestamp": self.timestamp,
            "sequence": self.sequence,
        }
        if self.tool_name is not None:
            meta["toolName"] = self.tool_name
        if self.success is not None:
            meta["success"] = self.success
        if self.execution_time_ms is not None:
            meta["executionTimeMs"] = self.execution_time_ms
        return meta


class SessionSummary(BaseModel):
    """Final summary of one agent session. One per (agent, session)."""

    agent_id: str
    session_id: str
    reason: SessionEndReason
    summary: str = ""
    tasks_completed: int = Field(default=0, ge=0)
    total_execution_time_ms: float = Field(default=0, ge=0)
    timestamp: str

    @property
    def record_id(self) -> str:
        return f"{self.agent_id}-{self.session_id}"

    def to_document(self) -> str:
        """Render the summary as the text stored for semantic search."""
        return (
            f"Session for {self.agent_id}: {self.summary}. "
            f"Completed {self.tasks_completed} tasks in {self.total_execution_time_ms:g}ms. "
            f"Reason: {self.reason.value}"
        )


class PromptRecord(BaseModel):
    """A prompt submitted to an agent, stored in full."""

    record_id: str
    agent_id: str
    session_id: str
    prompt: str
    timestamp: str

    @classmethod
    def create(cls, agent_id: str, session_id: str, prompt: str, timestamp: str) -> "PromptRecord":
        return cls(
            record_id=new_record_id(agent_id, session_id),
            agent_id=agent_id,
            session_id=session_id,
            prompt=prompt,
            timestamp=timestamp,
        )
