"""Agent status state machine.

Normal operation:

    idle -> executing -> active -> executing -> ... -> active -> idle

Administrative stop and alert escalation leave the cycle:

    * -> stopped   (terminal)
    * -> error     (only leaves via stop)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from agent_dashboard.models.agent import AgentStatus


class StatusTrigger(str, Enum):
    """Triggers that cause status transitions."""

    TOOL_STARTED = "tool_started"
    """PreToolUse hook (idle/active -> executing)."""

    TOOL_FINISHED = "tool_finished"
    """PostToolUse hook, whatever the tool outcome (executing -> active)."""

    SESSION_ENDED = "session_ended"
    """SessionEnd hook (active -> idle)."""

    STOP_REQUESTED = "stop_requested"
    """Administrative stop command (* -> stopped)."""

    ALERT_THRESHOLD_EXCEEDED = "alert_threshold_exceeded"
    """Alert policy escalation (* -> error)."""


@dataclass
class TransitionResult:
    """Result of a status transition."""

    from_status: AgentStatus
    to_status: AgentStatus
    trigger: StatusTrigger
    timestamp: datetime


class InvalidTransitionError(Exception):
    """Raised when a trigger is not allowed from the current status."""

    def __init__(self, from_status: AgentStatus, trigger: StatusTrigger):
        self.from_status = from_status
        self.trigger = trigger
        super().__init__(f"Invalid transition from {from_status.value} (trigger: {trigger.value})")


_LIVE = frozenset({AgentStatus.IDLE, AgentStatus.ACTIVE, AgentStatus.EXECUTING})

# trigger -> (allowed source statuses, target status)
TRANSITIONS: dict[StatusTrigger, tuple[frozenset[AgentStatus], AgentStatus]] = {
    StatusTrigger.TOOL_STARTED: (_LIVE, AgentStatus.EXECUTING),
    StatusTrigger.TOOL_FINISHED: (
        frozenset({AgentStatus.EXECUTING, AgentStatus.ACTIVE}),
        AgentStatus.ACTIVE,
    ),
    StatusTrigger.SESSION_ENDED: (_LIVE, AgentStatus.IDLE),
    StatusTrigger.STOP_REQUESTED: (_LIVE | {AgentStatus.ERROR}, AgentStatus.STOPPED),
    StatusTrigger.ALERT_THRESHOLD_EXCEEDED: (_LIVE, AgentStatus.ERROR),
}


class AgentStatusMachine:
    """Decides agent status transitions.

    Self-transitions (executing on a replayed PreToolUse, active on a
    replayed PostToolUse) are allowed so duplicate hooks converge.
    """

    def can_apply(self, current: AgentStatus, trigger: StatusTrigger) -> bool:
        """Check whether `trigger` is allowed from `current`."""
        sources, _ = TRANSITIONS[trigger]
        return current in sources

    def allowed_sources(self, trigger: StatusTrigger) -> frozenset[AgentStatus]:
        """Get the statuses `trigger` may be applied from."""
        sources, _ = TRANSITIONS[trigger]
        return sources

    def target_status(self, trigger: StatusTrigger) -> AgentStatus:
        """Get the status `trigger` leads to."""
        _, target = TRANSITIONS[trigger]
        return target

    def next_status(self, current: AgentStatus, trigger: StatusTrigger) -> AgentStatus:
        """Get the status `trigger` leads to from `current`.

        Raises:
            InvalidTransitionError: If the trigger is not allowed.
        """
        sources, target = TRANSITIONS[trigger]
        if current not in sources:
            raise InvalidTransitionError(current, trigger)
        return target

    def transition(self, current: AgentStatus, trigger: StatusTrigger) -> TransitionResult:
        """Like next_status, with the transition metadata."""
        return TransitionResult(
            from_status=current,
            to_status=self.next_status(current, trigger),
            trigger=trigger,
            timestamp=datetime.now(),
        )

    def get_valid_triggers(self, current: AgentStatus) -> list[StatusTrigger]:
        """Get all triggers allowed from a status."""
        return [t for t, (sources, _) in TRANSITIONS.items() if current in sources]
