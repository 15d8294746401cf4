"""HookProcessor - Service for processing agent lifecycle hooks.

This service receives validated hook payloads (via the dispatcher queue)
and turns each into a fixed sequence of side effects:

1. Patch the agent's activity in the Event Store
2. Append history to the Event Archive
3. Broadcast a notification on the EventBus

Events received:
- pre_tool_use: agent is about to run a tool (status -> executing)
- post_tool_use: tool finished (status -> active; failures raise an alert)
- session_end: agent session finished (status -> idle, summary archived)
- user_prompt_submit: user handed the agent a prompt (archived, preview broadcast)

Processing is best-effort: a failing store or archive write is logged and
the event is dropped. Nothing is retried.
"""

import logging
import threading
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from agent_dashboard.models.agent import AgentActivityUpdate, AgentStatus
from agent_dashboard.models.archive import HookEventRecord, PromptRecord, SessionSummary
from agent_dashboard.models.hook import (
    HookEventKind,
    HookPayload,
    PostToolUsePayload,
    PreToolUsePayload,
    SessionEndPayload,
    UserPromptSubmitPayload,
)
from agent_dashboard.services.agent_state_machine import AgentStatusMachine, StatusTrigger
from agent_dashboard.services.alert_policy import AlertPolicy, NeverEscalate

if TYPE_CHECKING:
    from agent_dashboard.services.event_archive import EventArchive
    from agent_dashboard.services.event_bus import EventBus
    from agent_dashboard.services.event_store import EventStore

logger = logging.getLogger(__name__)

PROMPT_PREVIEW_LENGTH = 100


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def prompt_preview(prompt: str, length: int = PROMPT_PREVIEW_LENGTH) -> str:
    """Truncate a prompt for broadcasting."""
    if len(prompt) <= length:
        return prompt
    return prompt[:length] + "..."


@dataclass
class ToolCallMarker:
    """Start marker of an in-flight tool call (latency bookkeeping only)."""

    agent_id: str
    session_id: str
    tool_name: str
    started_at: float


@dataclass
class HookResult:
    """Result of processing a hook event."""

    success: bool
    kind: HookEventKind | None = None
    agent_id: str | None = None
    new_status: AgentStatus | None = None
    message: str = ""


class HookProcessor:
    """Service applying agent hook events to the stores and the event bus.

    This service:
    1. Moves the agent through its status machine
    2. Records every event in the archive
    3. Raises alerts for failed tools and consults the alert policy
    4. Emits realtime events for the dashboard

    It owns no persistent state. The active tool-call map and counters are
    process-local and lost on restart.
    """

    def __init__(
        self,
        event_store: "EventStore",
        event_archive: "EventArchive",
        event_bus: "EventBus",
        state_machine: AgentStatusMachine | None = None,
        alert_policy: AlertPolicy | None = None,
    ):
        """Initialize the HookProcessor.

        Args:
            event_store: Current agent/task state.
            event_archive: Event history.
            event_bus: Realtime broadcast channel.
            state_machine: Status transition rules.
            alert_policy: Decides when tool failures escalate to error.
        """
        self._store = event_store
        self._archive = event_archive
        self._event_bus = event_bus
        self._machine = state_machine or AgentStatusMachine()
        self._alert_policy = alert_policy or NeverEscalate()

        # Thread lock for protecting shared state
        self._lock = threading.Lock()

        # In-flight tool calls: (session_id, tool_name, started_at) -> marker
        self._active_calls: dict[tuple[str, str, float], ToolCallMarker] = {}

        # Consecutive failed tool calls per agent
        self._failure_streaks: dict[str, int] = {}

        self._processed: Counter = Counter()
        self._failed = 0
        self._last_event_time: float = 0

    def process(self, kind: HookEventKind, payload: HookPayload) -> HookResult:
        """Process one hook event. Never raises.

        This is the entry point used by the dispatcher workers.

        Args:
            kind: The hook event kind.
            payload: The validated payload for that kind.

        Returns:
            HookResult with processing outcome.
        """
        handlers: dict[HookEventKind, Callable[[HookPayload], HookResult]] = {
            HookEventKind.PRE_TOOL_USE: self._pre_tool_use,
            HookEventKind.POST_TOOL_USE: self._post_tool_use,
            HookEventKind.SESSION_END: self._session_end,
            HookEventKind.USER_PROMPT_SUBMIT: self._user_prompt_submit,
        }

        with self._lock:
            self._last_event_time = time.time()
            self._processed[kind] += 1

        try:
            return handlers[kind](payload)
        except Exception:
            logger.exception(
                f"[HookProcessor] Error processing {kind.value} for agent {payload.agent_id}"
            )
            with self._lock:
                self._failed += 1
            return HookResult(
                success=False,
                kind=kind,
                agent_id=payload.agent_id,
                message=f"Failed to process {kind.value}",
            )

    def handle_pre_tool_use(self, payload: PreToolUsePayload) -> HookResult:
        return self.process(HookEventKind.PRE_TOOL_USE, payload)

    def handle_post_tool_use(self, payload: PostToolUsePayload) -> HookResult:
        return self.process(HookEventKind.POST_TOOL_USE, payload)

    def handle_session_end(self, payload: SessionEndPayload) -> HookResult:
        return self.process(HookEventKind.SESSION_END, payload)

    def handle_user_prompt_submit(self, payload: UserPromptSubmitPayload) -> HookResult:
        return self.process(HookEventKind.USER_PROMPT_SUBMIT, payload)

    # =========================================================================
    # Per-kind handlers
    # =========================================================================

    def _pre_tool_use(self, payload: PreToolUsePayload) -> HookResult:
        marker = ToolCallMarker(
            agent_id=payload.agent_id,
            session_id=payload.session_id,
            tool_name=payload.tool_name,
            started_at=time.monotonic(),
        )
        with self._lock:
            self._active_calls[(marker.session_id, marker.tool_name, marker.started_at)] = marker

        new_status = self._apply_activity(
            payload.agent_id,
            StatusTrigger.TOOL_STARTED,
            current_tool=payload.tool_name,
            last_activity=payload.timestamp,
        )

        self._archive.store_hook_event(
            HookEventRecord.create(
                payload.agent_id,
                payload.session_id,
                HookEventKind.PRE_TOOL_USE,
                payload.timestamp,
                tool_name=payload.tool_name,
                payload=payload.raw(),
            )
        )

        self._event_bus.emit(
            "agent:tool:start",
            {
                "agentId": payload.agent_id,
                "agentName": payload.agent_name,
                "sessionId": payload.session_id,
                "toolName": payload.tool_name,
                "toolParams": payload.tool_params,
                "timestamp": payload.timestamp,
            },
        )

        logger.info(
            f"Agent {payload.agent_name or payload.agent_id} starting tool: {payload.tool_name}"
        )
        return HookResult(
            success=True,
            kind=HookEventKind.PRE_TOOL_USE,
            agent_id=payload.agent_id,
            new_status=new_status,
            message="Tool started",
        )

    def _post_tool_use(self, payload: PostToolUsePayload) -> HookResult:
        marker = self._pop_tool_call(payload.session_id, payload.tool_name)
        if marker:
            observed_ms = (time.monotonic() - marker.started_at) * 1000
            logger.debug(
                f"[HookProcessor] {payload.tool_name} observed {observed_ms:.0f}ms, "
                f"reported {payload.execution_time_ms:g}ms"
            )

        result = payload.result
        new_status = self._apply_activity(
            payload.agent_id,
            StatusTrigger.TOOL_FINISHED,
            current_tool=None,
            last_tool=payload.tool_name,
            last_tool_success=result.success,
            last_activity=payload.timestamp,
        )

        self._archive.store_hook_event(
            HookEventRecord.create(
                payload.agent_id,
                payload.session_id,
                HookEventKind.POST_TOOL_USE,
                payload.timestamp,
                tool_name=payload.tool_name,
                success=result.success,
                execution_time_ms=payload.execution_time_ms,
                payload=payload.raw(),
            )
        )

        if result.success:
            with self._lock:
                self._failure_streaks.pop(payload.agent_id, None)
        else:
            escalated = self._handle_tool_error(payload)
            if escalated is not None:
                new_status = escalated

        self._event_bus.emit(
            "agent:tool:complete",
            {
                "agentId": payload.agent_id,
                "agentName": payload.agent_name,
                "sessionId": payload.session_id,
                "toolName": payload.tool_name,
                "success": result.success,
                "executionTimeMs": payload.execution_time_ms,
                "error": result.error,
                "timestamp": payload.timestamp,
            },
        )

        logger.info(
            f"Agent {payload.agent_name or payload.agent_id} completed tool: "
            f"{payload.tool_name} ({payload.execution_time_ms:g}ms)"
        )
        return HookResult(
            success=True,
            kind=HookEventKind.POST_TOOL_USE,
            agent_id=payload.agent_id,
            new_status=new_status,
            message="Tool completed" if result.success else "Tool failed",
        )

    def _session_end(self, payload: SessionEndPayload) -> HookResult:
        new_status = self._apply_activity(
            payload.agent_id,
            StatusTrigger.SESSION_ENDED,
            current_tool=None,
            last_session=payload.session_id,
            last_session_end=payload.timestamp,
            last_session_reason=payload.reason.value,
        )

        self._archive.store_session_summary(
            SessionSummary(
                agent_id=payload.agent_id,
                session_id=payload.session_id,
                reason=payload.reason,
                summary=payload.summary,
                tasks_completed=payload.tasks_completed,
                total_execution_time_ms=payload.total_execution_time_ms,
                timestamp=payload.timestamp,
            )
        )

        if payload.tasks_completed > 0:
            self._store.increment_agent_task_count(payload.agent_id, payload.tasks_completed)

        with self._lock:
            self._failure_streaks.pop(payload.agent_id, None)
            for key in [k for k in self._active_calls if k[0] == payload.session_id]:
                del self._active_calls[key]

        self._event_bus.emit(
            "agent:session:end",
            {
                "agentId": payload.agent_id,
                "agentName": payload.agent_name,
                "sessionId": payload.session_id,
                "reason": payload.reason.value,
                "summary": payload.summary,
                "tasksCompleted": payload.tasks_completed,
                "totalExecutionTimeMs": payload.total_execution_time_ms,
                "timestamp": payload.timestamp,
            },
        )

        logger.info(
            f"Agent {payload.agent_name or payload.agent_id} session ended: {payload.reason.value} "
            f"({payload.tasks_completed} tasks, {payload.total_execution_time_ms:g}ms)"
        )
        return HookResult(
            success=True,
            kind=HookEventKind.SESSION_END,
            agent_id=payload.agent_id,
            new_status=new_status,
            message="Session ended",
        )

    def _user_prompt_submit(self, payload: UserPromptSubmitPayload) -> HookResult:
        self._archive.store_prompt(
            PromptRecord.create(
                payload.agent_id,
                payload.session_id,
                payload.prompt,
                payload.timestamp,
            )
        )

        self._event_bus.emit(
            "agent:prompt:received",
            {
                "agentId": payload.agent_id,
                "agentName": payload.agent_name,
                "sessionId": payload.session_id,
                "promptPreview": prompt_preview(payload.prompt),
                "timestamp": payload.timestamp,
            },
        )

        logger.info(f"Agent {payload.agent_name or payload.agent_id} received user prompt")
        return HookResult(
            success=True,
            kind=HookEventKind.USER_PROMPT_SUBMIT,
            agent_id=payload.agent_id,
            message="Prompt received",
        )

    # =========================================================================
    # Alerts
    # =========================================================================

    def _handle_tool_error(self, payload: PostToolUsePayload) -> AgentStatus | None:
        """Alert on a failed tool and escalate if the policy says so.

        Returns:
            AgentStatus.ERROR if the agent was escalated, else None.
        """
        error = payload.result.error or "unknown error"
        logger.error(
            f"Tool error for agent {payload.agent_name or payload.agent_id}: "
            f"{payload.tool_name}: {error}"
        )

        self._event_bus.emit(
            "agent:alert",
            {
                "agentId": payload.agent_id,
                "agentName": payload.agent_name,
                "severity": "error",
                "message": f"Tool {payload.tool_name} failed: {error}",
                "timestamp": _now_iso(),
            },
        )

        with self._lock:
            streak = self._failure_streaks.get(payload.agent_id, 0) + 1
            self._failure_streaks[payload.agent_id] = streak

        if not self._alert_policy.should_escalate(
            payload.agent_id, payload.tool_name, payload.result.error, streak
        ):
            return None

        new_status = self._apply_activity(payload.agent_id, StatusTrigger.ALERT_THRESHOLD_EXCEEDED)
        if new_status is None:
            return None

        logger.warning(
            f"Agent {payload.agent_id} escalated to error after {streak} consecutive failures"
        )
        self._event_bus.emit(
            "agent:alert",
            {
                "agentId": payload.agent_id,
                "agentName": payload.agent_name,
                "severity": "critical",
                "message": f"{streak} consecutive tool failures, agent moved to error",
                "timestamp": _now_iso(),
            },
        )
        return new_status

    # =========================================================================
    # Administrative commands
    # =========================================================================

    def stop_agent(self, agent_id: str, reason: str = "manual_stop") -> HookResult:
        """Stop an agent. Storage errors propagate to the caller.

        Args:
            agent_id: The agent to stop.
            reason: Why it is being stopped.

        Returns:
            HookResult; success is False if the agent is unknown or
            already stopped.
        """
        agent = self._store.get_agent_identity(agent_id)
        if agent is None:
            return HookResult(success=False, agent_id=agent_id, message="Agent not found")

        stopped = self._store.update_agent_activity(
            agent_id,
            AgentActivityUpdate(status=AgentStatus.STOPPED),
            expected_status=self._machine.allowed_sources(StatusTrigger.STOP_REQUESTED),
        )
        if not stopped:
            current = self._store.get_agent_identity(agent_id) or agent
            return HookResult(
                success=False,
                agent_id=agent_id,
                new_status=current.status,
                message=f"Agent cannot be stopped from {current.status.value}",
            )

        self._store.update_agent_activity(
            agent_id,
            AgentActivityUpdate(
                current_tool=None,
                stop_reason=reason,
                last_activity=_now_iso(),
            ),
        )

        event = {
            "agentId": agent_id,
            "agentName": agent.name,
            "reason": reason,
            "timestamp": _now_iso(),
        }
        self._event_bus.emit("agent:stopped", event)
        if agent.name:
            self._event_bus.emit("agent:command", {**event, "command": "stop"}, room=agent.name)

        logger.info(f"Stopped agent: {agent.name or agent_id} (reason: {reason})")
        return HookResult(
            success=True,
            agent_id=agent_id,
            new_status=AgentStatus.STOPPED,
            message="Agent stopped",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _apply_activity(
        self, agent_id: str, trigger: StatusTrigger, **fields
    ) -> AgentStatus | None:
        """Write activity fields plus the status `trigger` leads to.

        The store only writes the status when the agent's stored status
        allows the trigger; the other fields are written either way.
        Agents the store does not know get the patch anyway (a no-op there).

        Returns:
            The status written, or None if the status was not changed.
        """
        target = self._machine.target_status(trigger)
        applied = self._store.update_agent_activity(
            agent_id,
            AgentActivityUpdate(status=target, **fields),
            expected_status=self._machine.allowed_sources(trigger),
        )
        if not applied:
            logger.warning(
                f"[HookProcessor] Agent {agent_id} status not changed by {trigger.value}"
            )
            return None
        return target

    def _pop_tool_call(self, session_id: str, tool_name: str) -> ToolCallMarker | None:
        """Remove and return the oldest in-flight call for a session and tool."""
        with self._lock:
            keys = [k for k in self._active_calls if k[0] == session_id and k[1] == tool_name]
            if not keys:
                return None
            return self._active_calls.pop(min(keys, key=lambda k: k[2]))

    def get_active_tool_calls(self) -> list[ToolCallMarker]:
        """Get the in-flight tool calls."""
        with self._lock:
            return list(self._active_calls.values())

    def get_stats(self) -> dict:
        """Get hook processing statistics."""
        with self._lock:
            return {
                "activeToolCalls": len(self._active_calls),
                "totalProcessed": sum(self._processed.values()),
                "failed": self._failed,
                "byKind": {k.value: v for k, v in self._processed.items()},
                "lastEventTime": self._last_event_time or None,
                "secondsSinceLastEvent": (
                    time.time() - self._last_event_time if self._last_event_time > 0 else None
                ),
            }
