"""Pytest configuration and shared fixtures for agent activity tracker tests."""

import tempfile
from pathlib import Path

import pytest

from agent_dashboard.models import Agent, AgentContext, Task
from agent_dashboard.services.event_archive import InMemoryEventArchive
from agent_dashboard.services.event_bus import EventBus
from agent_dashboard.services.event_store import InMemoryEventStore
from agent_dashboard.services.hook_processor import HookProcessor

AGENT_ID = "agent-sarah"
AGENT_NAME = "Sarah Chen"
SESSION_ID = "sess-001"
TIMESTAMP = "2025-01-15T10:30:00Z"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for config and seed files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store():
    """Create an in-memory EventStore with one provisioned agent."""
    store = InMemoryEventStore()
    store.add_agent(
        Agent(id=AGENT_ID, name=AGENT_NAME, role="Backend Engineer", callsign="Atlas"),
        AgentContext(collaborators=["agent-marcus"]),
    )
    return store


@pytest.fixture
def archive():
    """Create an empty in-memory EventArchive."""
    return InMemoryEventArchive()


@pytest.fixture
def event_bus():
    """Create a fresh EventBus for testing."""
    return EventBus()


@pytest.fixture
def captured(event_bus):
    """Record every event emitted on the bus."""
    events = []
    event_bus.subscribe("*", events.append)
    return events


@pytest.fixture
def processor(store, archive, event_bus):
    """Create a HookProcessor over the in-memory backends."""
    return HookProcessor(event_store=store, event_archive=archive, event_bus=event_bus)


def make_payload(**fields) -> dict:
    """Build a camelCase hook body with the common fields filled in."""
    body = {
        "agentId": AGENT_ID,
        "agentName": AGENT_NAME,
        "sessionId": SESSION_ID,
        "timestamp": TIMESTAMP,
    }
    body.update(fields)
    return body


def make_task(task_id: str, status: str = "pending", dependencies=None) -> Task:
    """Build a task with the given dependencies."""
    return Task(id=task_id, title=task_id, status=status, dependencies=dependencies or [])
