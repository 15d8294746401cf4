"""Alert policies deciding when tool failures put an agent in error.

The hook processor consults the policy after every failed tool call.
No threshold is assumed: the default policy never escalates.
"""

from abc import ABC, abstractmethod

from agent_dashboard.models.config import AlertConfig


class AlertPolicy(ABC):
    """Decides whether a failed tool call escalates the agent to error."""

    @abstractmethod
    def should_escalate(
        self,
        agent_id: str,
        tool_name: str,
        error: str | None,
        consecutive_failures: int,
    ) -> bool:
        """Return True to move the agent to the error status.

        Args:
            agent_id: The failing agent.
            tool_name: The tool that failed.
            error: Error text reported by the agent.
            consecutive_failures: Failures in a row, this one included.
        """


class NeverEscalate(AlertPolicy):
    """Report failures as alerts only."""

    def should_escalate(self, agent_id, tool_name, error, consecutive_failures) -> bool:
        return False


class ConsecutiveFailurePolicy(AlertPolicy):
    """Escalate once an agent fails `threshold` tool calls in a row."""

    def __init__(self, threshold: int):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold

    def should_escalate(self, agent_id, tool_name, error, consecutive_failures) -> bool:
        return consecutive_failures >= self.threshold


def build_alert_policy(config: AlertConfig) -> AlertPolicy:
    """Create the policy described by the alerts config section."""
    if config.consecutive_failure_threshold is None:
        return NeverEscalate()
    return ConsecutiveFailurePolicy(config.consecutive_failure_threshold)
