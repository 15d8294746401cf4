"""ChromaDB-backed Event Archive.

Three collections hold the history: hook_events (raw payload as JSON
document), agent_sessions (rendered summary text) and agent_prompts (full
prompt text). Metadata carries the ids used for filtering.
"""

import json
import logging
import time

import chromadb

from agent_dashboard.models.archive import HookEventRecord, PromptRecord, SessionSummary
from agent_dashboard.models.hook import HookEventKind
from agent_dashboard.services.event_archive import (
    HOOK_EVENTS_COLLECTION,
    PROMPTS_COLLECTION,
    SESSIONS_COLLECTION,
    DuplicateSessionSummaryError,
    EventArchive,
)
from agent_dashboard.services.event_store import StorageWriteError

logger = logging.getLogger(__name__)

COLLECTION_DESCRIPTIONS = {
    HOOK_EVENTS_COLLECTION: "Agent hook events",
    SESSIONS_COLLECTION: "Agent session summaries",
    PROMPTS_COLLECTION: "User prompts to agents",
}

# Span of the first history window; later windows double it
HISTORY_WINDOW_NS = 60 * 60 * 10**9


class ChromaEventArchive(EventArchive):
    """Event archive on a ChromaDB server."""

    def __init__(self, host: str = "localhost", port: int = 3710, client=None):
        """Initialize the archive. No connection is made until connect().

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            client: Pre-built client (tests).
        """
        self._host = host
        self._port = port
        self._client = client
        self._collections: dict = {}

    @property
    def backend_name(self) -> str:
        return "chroma"

    def connect(self) -> None:
        """Connect and create the collections if needed."""
        if self._client is None:
            self._client = chromadb.HttpClient(host=self._host, port=self._port)

        for name, description in COLLECTION_DESCRIPTIONS.items():
            self._collections[name] = self._client.get_or_create_collection(
                name=name,
                metadata={"description": description},
            )
        logger.info(f"Connected to ChromaDB at {self._host}:{self._port}")

    def close(self) -> None:
        self._collections.clear()
        self._client = None

    def health_check(self) -> dict:
        if self._client is None:
            return {"connected": False, "error": "Client not initialized"}
        try:
            self._client.heartbeat()
        except Exception as e:
            return {"connected": False, "error": str(e)}
        return {"connected": True, "collections": sorted(self._collections)}

    def _collection(self, name: str):
        collection = self._collections.get(name)
        if collection is None:
            raise StorageWriteError(f"Collection {name} not initialized")
        return collection

    def _add(self, name: str, record_id: str, document: str, metadata: dict) -> None:
        collection = self._collection(name)
        try:
            collection.add(ids=[record_id], documents=[document], metadatas=[metadata])
        except Exception as e:
            raise StorageWriteError(f"ChromaDB write to {name} failed: {e}") from e

    def store_hook_event(self, record: HookEventRecord) -> None:
        self._add(
            HOOK_EVENTS_COLLECTION,
            record.record_id,
            json.dumps(record.payload, default=str),
            record.metadata(),
        )
        logger.debug(f"Stored hook event: {record.kind.value} for {record.agent_id}")

    def store_session_summary(self, summary: SessionSummary) -> None:
        collection = self._collection(SESSIONS_COLLECTION)
        existing = collection.get(ids=[summary.record_id])
        if existing and existing.get("ids"):
            raise DuplicateSessionSummaryError(
                f"Session summary already stored for {summary.record_id}"
            )
        self._add(
            SESSIONS_COLLECTION,
            summary.record_id,
            summary.to_document(),
            {
                "agentId": summary.agent_id,
                "sessionId": summary.session_id,
                "reason": summary.reason.value,
                "tasksCompleted": summary.tasks_completed,
                "timestamp": summary.timestamp,
            },
        )
        logger.debug(f"Stored session summary for {summary.agent_id}")

    def store_prompt(self, record: PromptRecord) -> None:
        self._add(
            PROMPTS_COLLECTION,
            record.record_id,
            record.prompt,
            {
                "agentId": record.agent_id,
                "sessionId": record.session_id,
                "timestamp": record.timestamp,
            },
        )
        logger.debug(f"Stored prompt for {record.agent_id}")

    def query_agent_history(self, agent_id: str, limit: int = 10) -> list[HookEventRecord]:
        """Newest-first history, read in time windows stepping back from now.

        Each window doubles the span of the previous one, so an agent with
        recent activity is answered from a small slice of the archive.
        """
        collection = self._collections.get(HOOK_EVENTS_COLLECTION)
        if collection is None or limit <= 0:
            return []

        existing = collection.get(where={"agentId": agent_id}, limit=1, include=[])
        if not existing or not existing.get("ids"):
            return []

        now = time.time_ns()
        window = HISTORY_WINDOW_NS
        upper = None
        records: list[HookEventRecord] = []
        while len(records) < limit:
            lower = max(now - window, 0)
            clauses = [{"agentId": agent_id}, {"sequence": {"$gte": lower}}]
            if upper is not None:
                clauses.append({"sequence": {"$lt": upper}})

            result = collection.get(
                where={"$and": clauses}, include=["documents", "metadatas"]
            )
            batch = self._records_from(result, agent_id)
            batch.sort(key=lambda r: r.sequence, reverse=True)
            records.extend(batch)

            if lower == 0:
                break
            upper = lower
            window *= 2

        return records[:limit]

    def _records_from(self, result: dict, agent_id: str) -> list[HookEventRecord]:
        rows = zip(
            result.get("ids") or [],
            result.get("documents") or [],
            result.get("metadatas") or [],
            strict=False,
        )

        records = []
        for record_id, document, meta in rows:
            meta = meta or {}
            try:
                payload = json.loads(document) if document else {}
            except json.JSONDecodeError:
                payload = {"document": document}
            records.append(
                HookEventRecord(
                    record_id=record_id,
                    agent_id=meta.get("agentId", agent_id),
                    session_id=meta.get("sessionId", ""),
                    kind=HookEventKind(meta.get("type", HookEventKind.PRE_TOOL_USE.value)),
                    timestamp=str(meta.get("timestamp", "")),
                    tool_name=meta.get("toolName"),
                    success=meta.get("success"),
                    execution_time_ms=meta.get("executionTimeMs"),
                    payload=payload,
                )
            )
        return records
