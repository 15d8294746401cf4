"""Event Store - current Agent and Task state.

Defines the store contract used by the hook processor and the planner,
plus an in-memory implementation. The memory backend can be seeded from a
YAML file so a dashboard can run without a graph database.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Collection
from pathlib import Path

import yaml

from agent_dashboard.models.agent import Agent, AgentActivityUpdate, AgentContext, AgentStatus
from agent_dashboard.models.task import Task

logger = logging.getLogger(__name__)


class StorageWriteError(Exception):
    """Raised when the Event Store or Event Archive cannot complete a write."""


class EventStore(ABC):
    """Abstract interface for the current-state store.

    Event stores provide:
    - Agent identity and collaboration context lookups
    - An agent's task list with dependencies
    - Typed property patches and an atomic completed-task counter
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier (e.g., 'memory', 'neo4j')."""

    def connect(self) -> None:
        """Open connections. Called once by the process entry point."""

    def close(self) -> None:
        """Release connections."""

    @abstractmethod
    def health_check(self) -> dict:
        """Return {'connected': bool, ...} for the health endpoint."""

    @abstractmethod
    def get_agent_identity(self, agent_id: str) -> Agent | None:
        """Get an agent by id.

        Returns:
            The Agent, or None if it was never provisioned.
        """

    @abstractmethod
    def get_agent_tasks(self, agent_id: str) -> list[Task]:
        """Get an agent's tasks in stored order (priority, then creation)."""

    @abstractmethod
    def get_agent_context(self, agent_id: str) -> AgentContext:
        """Get collaborator and dependency names for an agent."""

    @abstractmethod
    def update_agent_activity(
        self,
        agent_id: str,
        update: AgentActivityUpdate,
        expected_status: Collection[AgentStatus] | None = None,
    ) -> bool:
        """Apply the set fields of `update` to the agent.

        With `expected_status`, the status in `update` is only written when
        the agent's stored status is one of them; the other fields are
        written either way. The check and the write happen atomically.
        Unknown agents are ignored.

        Returns:
            False if the agent is unknown or the status was held back.

        Raises:
            StorageWriteError: If the backend fails.
        """

    @abstractmethod
    def increment_agent_task_count(self, agent_id: str, count: int = 1) -> None:
        """Atomically add `count` to the agent's completed-task counter.

        Raises:
            StorageWriteError: If the backend fails.
        """

    @abstractmethod
    def get_all_agents(self) -> list[Agent]:
        """List all agents ordered by name."""


class InMemoryEventStore(EventStore):
    """Thread-safe in-process event store.

    Agents and tasks are provisioned with `add_agent` / `add_task` or loaded
    from a seed file; hook processing only ever patches them.
    """

    def __init__(self, seed_file: str | Path | None = None):
        """Initialize the store.

        Args:
            seed_file: Optional YAML file with an `agents` section (see load_seed).
        """
        self._seed_file = Path(seed_file) if seed_file else None
        self._agents: dict[str, Agent] = {}
        self._tasks: dict[str, list[Task]] = {}
        self._contexts: dict[str, AgentContext] = {}
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def connect(self) -> None:
        if self._seed_file:
            self.load_seed(self._seed_file)

    def health_check(self) -> dict:
        with self._lock:
            return {"connected": True, "agents": len(self._agents)}

    # =========================================================================
    # Provisioning
    # =========================================================================

    def add_agent(self, agent: Agent, context: AgentContext | None = None) -> Agent:
        """Provision an agent (replaces an existing one with the same id)."""
        with self._lock:
            self._agents[agent.id] = agent.model_copy(deep=True)
            self._tasks.setdefault(agent.id, [])
            if context is not None:
                self._contexts[agent.id] = context
        return agent

    def add_task(self, agent_id: str, task: Task) -> Task:
        """Assign a task to an agent, appended in stored order."""
        with self._lock:
            self._tasks.setdefault(agent_id, []).append(task.model_copy(deep=True))
        return task

    def load_seed(self, path: str | Path) -> int:
        """Load agents and tasks from a YAML seed file.

        Format:
            agents:
              - id: a1
                name: Sarah Chen
                collaborators: [a2]
                tasks:
                  - id: t1
                    title: Schema migration
                    dependencies: []

        Returns:
            Number of agents loaded.
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Seed file not found: {path}")
            return 0

        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        count = 0
        for entry in raw.get("agents", []):
            entry = dict(entry)
            tasks = entry.pop("tasks", [])
            context = AgentContext(
                collaborators=entry.pop("collaborators", []),
                dependencies=entry.pop("depends_on", []),
            )
            agent = self.add_agent(Agent(**entry), context)
            for task in tasks:
                self.add_task(agent.id, Task(**task))
            count += 1

        logger.info(f"Loaded {count} agents from {path}")
        return count

    # =========================================================================
    # Reads
    # =========================================================================

    def get_agent_identity(self, agent_id: str) -> Agent | None:
        with self._lock:
            agent = self._agents.get(agent_id)
            return agent.model_copy(deep=True) if agent else None

    def get_agent_tasks(self, agent_id: str) -> list[Task]:
        with self._lock:
            return copy.deepcopy(self._tasks.get(agent_id, []))

    def get_agent_context(self, agent_id: str) -> AgentContext:
        with self._lock:
            context = self._contexts.get(agent_id)
            return context.model_copy(deep=True) if context else AgentContext()

    def get_all_agents(self) -> list[Agent]:
        with self._lock:
            agents = [a.model_copy(deep=True) for a in self._agents.values()]
        return sorted(agents, key=lambda a: a.name)

    # =========================================================================
    # Writes
    # =========================================================================

    def update_agent_activity(
        self,
        agent_id: str,
        update: AgentActivityUpdate,
        expected_status: Collection[AgentStatus] | None = None,
    ) -> bool:
        changes = update.model_dump(exclude_unset=True)
        applied = True
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                logger.debug(f"update_agent_activity: unknown agent {agent_id}, ignored")
                return False
            if (
                expected_status is not None
                and "status" in changes
                and agent.status not in expected_status
            ):
                del changes["status"]
                applied = False
            self._agents[agent_id] = agent.model_copy(update=changes)
        logger.debug(f"Updated agent {agent_id} activity: {changes}")
        return applied

    def increment_agent_task_count(self, agent_id: str, count: int = 1) -> None:
        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                return
            agent.completed_tasks += count
