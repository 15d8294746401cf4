"""Tests for the in-memory EventArchive."""

import pytest

from agent_dashboard.models import (
    HookEventKind,
    HookEventRecord,
    PromptRecord,
    SessionEndReason,
    SessionSummary,
)
from agent_dashboard.services.event_archive import DuplicateSessionSummaryError
from agent_dashboard.services.event_store import StorageWriteError


def _event(agent_id="a1", tool="Bash"):
    return HookEventRecord.create(
        agent_id, "s1", HookEventKind.PRE_TOOL_USE, "2025-01-15T10:30:00Z", tool_name=tool
    )


def _summary(session_id="s1"):
    return SessionSummary(
        agent_id="a1",
        session_id=session_id,
        reason=SessionEndReason.TASK_COMPLETE,
        summary="done",
        tasks_completed=2,
        timestamp="2025-01-15T10:30:00Z",
    )


class TestHookEvents:
    """Tests for hook event storage and history queries."""

    def test_history_newest_first(self, archive):
        for tool in ("Read", "Edit", "Bash"):
            archive.store_hook_event(_event(tool=tool))

        history = archive.query_agent_history("a1")
        assert [r.tool_name for r in history] == ["Bash", "Edit", "Read"]

    def test_history_limit(self, archive):
        for _ in range(5):
            archive.store_hook_event(_event())
        assert len(archive.query_agent_history("a1", limit=2)) == 2

    def test_history_filters_by_agent(self, archive):
        archive.store_hook_event(_event(agent_id="a1"))
        archive.store_hook_event(_event(agent_id="a2"))
        assert len(archive.query_agent_history("a2")) == 1

    def test_same_event_twice_makes_two_records(self, archive):
        archive.store_hook_event(_event())
        archive.store_hook_event(_event())

        records = archive.get_hook_events("a1")
        assert len(records) == 2
        assert records[0].record_id != records[1].record_id


class TestSessionSummaries:
    """Tests for one-summary-per-session storage."""

    def test_store_and_get(self, archive):
        archive.store_session_summary(_summary())
        assert archive.get_session_summary("a1", "s1").tasks_completed == 2

    def test_duplicate_rejected(self, archive):
        archive.store_session_summary(_summary())
        with pytest.raises(DuplicateSessionSummaryError):
            archive.store_session_summary(_summary())

    def test_duplicate_is_a_storage_error(self):
        assert issubclass(DuplicateSessionSummaryError, StorageWriteError)

    def test_other_session_accepted(self, archive):
        archive.store_session_summary(_summary("s1"))
        archive.store_session_summary(_summary("s2"))
        assert archive.get_session_summary("a1", "s2") is not None


class TestPrompts:
    def test_store_prompt(self, archive):
        archive.store_prompt(PromptRecord.create("a1", "s1", "fix the build", "t"))
        assert [p.prompt for p in archive.get_prompts("a1")] == ["fix the build"]
