"""Domain models for the agent activity tracker."""

from agent_dashboard.models.agent import Agent, AgentActivityUpdate, AgentContext, AgentStatus
from agent_dashboard.models.archive import (
    HookEventRecord,
    PromptRecord,
    SessionSummary,
    new_record_id,
)
from agent_dashboard.models.config import (
    AlertConfig,
    ApiLimitsConfig,
    AppConfig,
    EventArchiveConfig,
    EventStoreConfig,
    HookConfig,
    WebhookConfig,
)
from agent_dashboard.models.hook import (
    PAYLOAD_MODELS,
    HookEventKind,
    HookPayload,
    PostToolUsePayload,
    PreToolUsePayload,
    SessionEndPayload,
    SessionEndReason,
    ToolResult,
    UserPromptSubmitPayload,
)
from agent_dashboard.models.task import Task, TaskPriority, TaskStatus

__all__ = [
    # Agent
    "Agent",
    "AgentActivityUpdate",
    "AgentContext",
    "AgentStatus",
    # Task
    "Task",
    "TaskPriority",
    "TaskStatus",
    # Hooks
    "PAYLOAD_MODELS",
    "HookEventKind",
    "HookPayload",
    "PostToolUsePayload",
    "PreToolUsePayload",
    "SessionEndPayload",
    "SessionEndReason",
    "ToolResult",
    "UserPromptSubmitPayload",
    # Archive
    "HookEventRecord",
    "PromptRecord",
    "SessionSummary",
    "new_record_id",
    # Config
    "AlertConfig",
    "ApiLimitsConfig",
    "AppConfig",
    "EventArchiveConfig",
    "EventStoreConfig",
    "HookConfig",
    "WebhookConfig",
]
