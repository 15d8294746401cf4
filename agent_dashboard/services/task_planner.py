"""Task execution planning.

Orders an agent's unresolved tasks so every task comes after the
unresolved tasks it depends on (depth-first topological sort).
"""

import logging
from dataclasses import dataclass, field

from agent_dashboard.models.task import Task
from agent_dashboard.services.event_store import EventStore

logger = logging.getLogger(__name__)


class CyclicDependencyError(Exception):
    """Raised when an agent's unresolved tasks depend on each other in a cycle."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Circular dependency detected involving task {task_id}")


@dataclass
class ExecutionPlan:
    """Dependency-respecting execution order for one agent."""

    agent_id: str
    execution_order: list[Task] = field(default_factory=list)

    @property
    def total_tasks(self) -> int:
        return len(self.execution_order)

    def to_dict(self) -> dict:
        return {
            "agent": self.agent_id,
            "executionOrder": [t.model_dump(mode="json") for t in self.execution_order],
            "totalTasks": self.total_tasks,
        }


def plan_execution_order(tasks: list[Task]) -> list[Task]:
    """Topologically sort unresolved tasks.

    Only pending and in-progress tasks are planned. Dependencies on tasks
    outside that set count as satisfied. Ties keep input order, so the
    result is stable for unchanged input.

    Args:
        tasks: Tasks in stored order.

    Returns:
        Unresolved tasks, each after its unresolved dependencies.

    Raises:
        CyclicDependencyError: If the unresolved tasks contain a cycle.
    """
    unresolved = [t for t in tasks if t.is_unresolved]
    by_id = {t.id: t for t in unresolved}

    visited: set[str] = set()
    visiting: set[str] = set()
    order: list[Task] = []

    for task in unresolved:
        if task.id in visited:
            continue

        # (task id, remaining dependency ids) per level of the walk
        visiting.add(task.id)
        stack = [(task.id, iter(task.dependencies))]
        while stack:
            task_id, remaining = stack[-1]
            for dep_id in remaining:
                if dep_id not in by_id or dep_id in visited:
                    continue
                if dep_id in visiting:
                    raise CyclicDependencyError(dep_id)
                visiting.add(dep_id)
                stack.append((dep_id, iter(by_id[dep_id].dependencies)))
                break
            else:
                stack.pop()
                visiting.discard(task_id)
                visited.add(task_id)
                order.append(by_id[task_id])

    return order


class TaskPlanner:
    """Builds execution plans from the Event Store."""

    def __init__(self, event_store: EventStore):
        self._store = event_store

    def get_task_execution_plan(self, agent_id: str) -> ExecutionPlan:
        """Compute the execution order of an agent's unresolved tasks.

        Raises:
            CyclicDependencyError: If the tasks cannot be ordered.
        """
        tasks = self._store.get_agent_tasks(agent_id)
        try:
            order = plan_execution_order(tasks)
        except CyclicDependencyError as e:
            logger.error(f"Error getting execution plan for agent {agent_id}: {e}")
            raise
        return ExecutionPlan(agent_id=agent_id, execution_order=order)
