"""Services for the agent activity tracker.

The Neo4j and Chroma backends are not exported here; they need optional
drivers and are imported only when configured.
"""

from agent_dashboard.services.agent_state_machine import (
    AgentStatusMachine,
    InvalidTransitionError,
    StatusTrigger,
    TransitionResult,
)
from agent_dashboard.services.alert_policy import (
    AlertPolicy,
    ConsecutiveFailurePolicy,
    NeverEscalate,
    build_alert_policy,
)
from agent_dashboard.services.config_service import ConfigService
from agent_dashboard.services.event_archive import (
    DuplicateSessionSummaryError,
    EventArchive,
    InMemoryEventArchive,
)
from agent_dashboard.services.event_bus import Event, EventBus
from agent_dashboard.services.event_store import (
    EventStore,
    InMemoryEventStore,
    StorageWriteError,
)
from agent_dashboard.services.hook_dispatcher import (
    DispatcherClosedError,
    DispatchQueueFullError,
    HookDispatcher,
)
from agent_dashboard.services.hook_processor import HookProcessor, HookResult
from agent_dashboard.services.hook_reporter import HookReporter
from agent_dashboard.services.task_planner import (
    CyclicDependencyError,
    ExecutionPlan,
    TaskPlanner,
)
from agent_dashboard.services.webhook_auth import WebhookAuthError, verify_bearer

__all__ = [
    "AgentStatusMachine",
    "AlertPolicy",
    "ConfigService",
    "ConsecutiveFailurePolicy",
    "CyclicDependencyError",
    "DispatcherClosedError",
    "DispatchQueueFullError",
    "DuplicateSessionSummaryError",
    "Event",
    "EventArchive",
    "EventBus",
    "EventStore",
    "ExecutionPlan",
    "HookDispatcher",
    "HookProcessor",
    "HookReporter",
    "HookResult",
    "InMemoryEventArchive",
    "InMemoryEventStore",
    "InvalidTransitionError",
    "NeverEscalate",
    "StatusTrigger",
    "StorageWriteError",
    "TaskPlanner",
    "TransitionResult",
    "WebhookAuthError",
    "build_alert_policy",
    "verify_bearer",
]
