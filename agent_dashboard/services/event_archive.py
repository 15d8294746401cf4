"""Event Archive - append-only history of hook events, sessions and prompts."""

import logging
import threading
from abc import ABC, abstractmethod

from agent_dashboard.models.archive import HookEventRecord, PromptRecord, SessionSummary
from agent_dashboard.services.event_store import StorageWriteError

logger = logging.getLogger(__name__)

HOOK_EVENTS_COLLECTION = "hook_events"
SESSIONS_COLLECTION = "agent_sessions"
PROMPTS_COLLECTION = "agent_prompts"


class DuplicateSessionSummaryError(StorageWriteError):
    """Raised when a summary already exists for an (agent, session) pair."""


class EventArchive(ABC):
    """Abstract interface for the history archive.

    Records are written once and never updated or deleted.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier (e.g., 'memory', 'chroma')."""

    def connect(self) -> None:
        """Open connections and make sure the collections exist."""

    def close(self) -> None:
        """Release connections."""

    @abstractmethod
    def health_check(self) -> dict:
        """Return {'connected': bool, ...} for the health endpoint."""

    @abstractmethod
    def store_hook_event(self, record: HookEventRecord) -> None:
        """Append a hook event.

        Raises:
            StorageWriteError: If the backend fails.
        """

    @abstractmethod
    def store_session_summary(self, summary: SessionSummary) -> None:
        """Store the summary of a finished session.

        Raises:
            DuplicateSessionSummaryError: If the session already has one.
            StorageWriteError: If the backend fails.
        """

    @abstractmethod
    def store_prompt(self, record: PromptRecord) -> None:
        """Append a submitted prompt (full text).

        Raises:
            StorageWriteError: If the backend fails.
        """

    @abstractmethod
    def query_agent_history(self, agent_id: str, limit: int = 10) -> list[HookEventRecord]:
        """Get up to `limit` of an agent's hook events, newest first."""


class InMemoryEventArchive(EventArchive):
    """Thread-safe in-process archive."""

    def __init__(self):
        self._hook_events: list[HookEventRecord] = []
        self._sessions: dict[str, SessionSummary] = {}
        self._prompts: list[PromptRecord] = []
        self._lock = threading.Lock()

    @property
    def backend_name(self) -> str:
        return "memory"

    def health_check(self) -> dict:
        return {
            "connected": True,
            "collections": [HOOK_EVENTS_COLLECTION, SESSIONS_COLLECTION, PROMPTS_COLLECTION],
        }

    def store_hook_event(self, record: HookEventRecord) -> None:
        with self._lock:
            self._hook_events.append(record)
        logger.debug(f"Stored hook event: {record.kind.value} for {record.agent_id}")

    def store_session_summary(self, summary: SessionSummary) -> None:
        with self._lock:
            if summary.record_id in self._sessions:
                raise DuplicateSessionSummaryError(
                    f"Session summary already stored for {summary.record_id}"
                )
            self._sessions[summary.record_id] = summary
        logger.debug(f"Stored session summary for {summary.agent_id}")

    def store_prompt(self, record: PromptRecord) -> None:
        with self._lock:
            self._prompts.append(record)
        logger.debug(f"Stored prompt for {record.agent_id}")

    def query_agent_history(self, agent_id: str, limit: int = 10) -> list[HookEventRecord]:
        with self._lock:
            matching = [r for r in self._hook_events if r.agent_id == agent_id]
        return list(reversed(matching))[:limit]

    # Read helpers for the dashboard and tests

    def get_hook_events(self, agent_id: str | None = None) -> list[HookEventRecord]:
        with self._lock:
            return [r for r in self._hook_events if agent_id is None or r.agent_id == agent_id]

    def get_session_summary(self, agent_id: str, session_id: str) -> SessionSummary | None:
        with self._lock:
            return self._sessions.get(f"{agent_id}-{session_id}")

    def get_prompts(self, agent_id: str | None = None) -> list[PromptRecord]:
        with self._lock:
            return [r for r in self._prompts if agent_id is None or r.agent_id == agent_id]
