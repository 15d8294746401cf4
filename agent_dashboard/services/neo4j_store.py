"""Neo4j-backed Event Store.

Agents, identity cards and tasks live in the graph:

    (:Agent)-[:HAS_IDENTITY_CARD]->(:AgentIdentityCard)
    (:Agent)-[:HAS_TASK]->(:Task)-[:DEPENDS_ON]->(:Task)
    (:Agent)-[:COLLABORATES_WITH|DEPENDS_ON]->(:Agent)

Node properties use the graph's camelCase names; only the fields of
AgentActivityUpdate can ever be written.
"""

import logging
from collections.abc import Collection

from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from agent_dashboard.models.agent import Agent, AgentActivityUpdate, AgentContext, AgentStatus
from agent_dashboard.models.task import Task, TaskPriority, TaskStatus
from agent_dashboard.services.event_store import EventStore, StorageWriteError

logger = logging.getLogger(__name__)

# AgentActivityUpdate field -> Agent node property
ACTIVITY_PROPERTIES = {
    "status": "status",
    "current_tool": "currentTool",
    "last_tool": "lastTool",
    "last_tool_success": "lastToolSuccess",
    "last_activity": "lastActivity",
    "last_session": "lastSession",
    "last_session_end": "lastSessionEnd",
    "last_session_reason": "lastSessionReason",
    "stop_reason": "stopReason",
}

IDENTITY_QUERY = """
MATCH (a:Agent {id: $agentId})
OPTIONAL MATCH (a)-[:HAS_IDENTITY_CARD]->(ic:AgentIdentityCard)
RETURN a, ic
"""

TASKS_QUERY = """
MATCH (a:Agent {id: $agentId})-[:HAS_TASK]->(t:Task)
OPTIONAL MATCH (t)-[:DEPENDS_ON]->(dep:Task)
RETURN t, collect(dep.id) AS dependencies
ORDER BY t.priority DESC, t.created ASC
"""

CONTEXT_QUERY = """
MATCH (a:Agent {id: $agentId})
OPTIONAL MATCH (a)-[:COLLABORATES_WITH]->(collab:Agent)
OPTIONAL MATCH (a)-[:DEPENDS_ON]->(dep:Agent)
RETURN collect(DISTINCT collab.name) AS collaborators,
       collect(DISTINCT dep.name) AS dependencies
"""

UPDATE_QUERY = """
MATCH (a:Agent {id: $agentId})
SET a += $props
RETURN a.id AS id
"""

# The first SET takes the node's write lock before the status is compared
GUARDED_UPDATE_QUERY = """
MATCH (a:Agent {id: $agentId})
SET a += $props, a.lastUpdate = timestamp()
WITH a, toLower(coalesce(a.status, 'idle')) IN $expected AS applied
SET a.status = CASE WHEN applied THEN $status ELSE a.status END
RETURN applied
"""

INCREMENT_QUERY = """
MATCH (a:Agent {id: $agentId})
SET a.completed_tasks = coalesce(a.completed_tasks, 0) + $count
RETURN a.completed_tasks AS completed
"""

ALL_AGENTS_QUERY = """
MATCH (a:Agent)
OPTIONAL MATCH (a)-[:HAS_IDENTITY_CARD]->(ic:AgentIdentityCard)
RETURN a, ic
ORDER BY a.name
"""


def _enum_or_default(enum_cls, value, default):
    if value is None:
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return default


def _agent_from_nodes(agent_props: dict, card_props: dict | None) -> Agent:
    """Build an Agent from Agent and AgentIdentityCard node properties."""
    card = card_props or {}
    return Agent(
        id=agent_props["id"],
        name=agent_props.get("name") or card.get("agent_name") or "",
        role=agent_props.get("role") or card.get("role"),
        specialty=card.get("specialty") or agent_props.get("specialty"),
        callsign=card.get("callsign"),
        branch=agent_props.get("branch") or agent_props.get("github_branch"),
        status=_enum_or_default(AgentStatus, agent_props.get("status"), AgentStatus.IDLE),
        last_activity=agent_props.get("lastActivity"),
        completed_tasks=int(agent_props.get("completed_tasks") or 0),
        current_tool=agent_props.get("currentTool"),
        last_tool=agent_props.get("lastTool"),
        last_tool_success=agent_props.get("lastToolSuccess"),
        last_session=agent_props.get("lastSession"),
        last_session_end=agent_props.get("lastSessionEnd"),
        last_session_reason=agent_props.get("lastSessionReason"),
        stop_reason=agent_props.get("stopReason"),
    )


def _task_from_node(props: dict, dependencies: list) -> Task:
    """Build a Task from a Task node and its collected dependency ids."""
    status = str(props.get("status") or "pending").lower().replace("_", "-")
    return Task(
        id=props["id"],
        title=props.get("title") or props.get("name") or "",
        description=props.get("description"),
        status=_enum_or_default(TaskStatus, status, TaskStatus.PENDING),
        priority=_enum_or_default(TaskPriority, props.get("priority"), TaskPriority.MEDIUM),
        dependencies=[d for d in dependencies if d],
        estimated_hours=props.get("estimated_hours"),
    )


class Neo4jEventStore(EventStore):
    """Event store on a Neo4j graph via the official bolt driver."""

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        user: str = "neo4j",
        password: str | None = None,
        connection_timeout: float = 15.0,
        driver=None,
    ):
        """Initialize the store. No connection is made until connect().

        Args:
            uri: Bolt URI.
            user: Database user.
            password: Database password.
            connection_timeout: Driver connection timeout in seconds.
            driver: Pre-built driver (tests).
        """
        self._uri = uri
        self._user = user
        self._password = password
        self._connection_timeout = connection_timeout
        self._driver = driver

    @property
    def backend_name(self) -> str:
        return "neo4j"

    def connect(self) -> None:
        """Create the driver and verify connectivity.

        Raises:
            ValueError: If no password is configured.
        """
        if self._driver is None:
            if not self._password:
                raise ValueError("NEO4J_PASSWORD not configured")
            self._driver = GraphDatabase.driver(
                self._uri,
                auth=(self._user, self._password),
                connection_timeout=self._connection_timeout,
            )
        self._driver.verify_connectivity()
        logger.info(f"Connected to Neo4j at {self._uri}")

    def close(self) -> None:
        if self._driver is not None:
            self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")

    def health_check(self) -> dict:
        if self._driver is None:
            return {"connected": False, "error": "Driver not initialized"}
        try:
            self._run("RETURN 1")
            return {"connected": True}
        except (DriverError, Neo4jError) as e:
            return {"connected": False, "error": str(e)}

    def _run(self, query: str, **params) -> list:
        """Run a query in a fresh session and materialize the records."""
        if self._driver is None:
            raise DriverError("Driver not initialized")
        with self._driver.session() as session:
            return list(session.run(query, params))

    def _write(self, query: str, **params) -> list:
        try:
            return self._run(query, **params)
        except (DriverError, Neo4jError) as e:
            raise StorageWriteError(f"Neo4j write failed: {e}") from e

    # =========================================================================
    # Reads
    # =========================================================================

    def get_agent_identity(self, agent_id: str) -> Agent | None:
        records = self._run(IDENTITY_QUERY, agentId=agent_id)
        if not records:
            return None
        record = records[0]
        card = record["ic"]
        return _agent_from_nodes(dict(record["a"]), dict(card) if card is not None else None)

    def get_agent_tasks(self, agent_id: str) -> list[Task]:
        records = self._run(TASKS_QUERY, agentId=agent_id)
        return [_task_from_node(dict(r["t"]), r["dependencies"]) for r in records]

    def get_agent_context(self, agent_id: str) -> AgentContext:
        records = self._run(CONTEXT_QUERY, agentId=agent_id)
        if not records:
            return AgentContext()
        record = records[0]
        return AgentContext(
            collaborators=[c for c in record["collaborators"] if c],
            dependencies=[d for d in record["dependencies"] if d],
        )

    def get_all_agents(self) -> list[Agent]:
        records = self._run(ALL_AGENTS_QUERY)
        agents = []
        for record in records:
            card = record["ic"]
            agents.append(
                _agent_from_nodes(dict(record["a"]), dict(card) if card is not None else None)
            )
        return agents

    # =========================================================================
    # Writes
    # =========================================================================

    def update_agent_activity(
        self,
        agent_id: str,
        update: AgentActivityUpdate,
        expected_status: Collection[AgentStatus] | None = None,
    ) -> bool:
        props = {ACTIVITY_PROPERTIES[k]: v for k, v in update.to_properties().items()}
        if not props:
            return True

        if expected_status is not None and "status" in props:
            status = props.pop("status")
            records = self._write(
                GUARDED_UPDATE_QUERY,
                agentId=agent_id,
                props=props,
                status=status,
                expected=sorted(s.value for s in expected_status),
            )
            applied = bool(records) and bool(records[0]["applied"])
        else:
            records = self._write(UPDATE_QUERY, agentId=agent_id, props=props)
            applied = bool(records)

        logger.debug(f"Updated agent {agent_id} activity: {props} (status applied: {applied})")
        return applied

    def increment_agent_task_count(self, agent_id: str, count: int = 1) -> None:
        self._write(INCREMENT_QUERY, agentId=agent_id, count=count)
