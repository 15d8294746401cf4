"""Task model for work assigned to an agent."""

from enum import Enum

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """Task status values."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"


class TaskPriority(str, Enum):
    """Task priority values."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


UNRESOLVED_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS})


class Task(BaseModel):
    """A unit of work assigned to an agent.

    `dependencies` lists the ids of tasks that must finish first. The
    relation among an agent's unresolved tasks is expected to be acyclic;
    the store does not enforce it, the planner does.
    """

    id: str = Field(..., description="Unique task identifier")
    title: str = Field(default="")
    description: str | None = None
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM)
    dependencies: list[str] = Field(
        default_factory=list,
        description="Ordered ids of tasks this one depends on",
    )
    estimated_hours: float | None = Field(default=None, ge=0)

    @property
    def is_unresolved(self) -> bool:
        """Whether the task still needs to run."""
        return self.status in UNRESOLVED_STATUSES
