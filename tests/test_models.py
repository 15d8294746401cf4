"""Tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from agent_dashboard.models import (
    Agent,
    AgentActivityUpdate,
    AgentStatus,
    AppConfig,
    HookEventKind,
    HookEventRecord,
    PostToolUsePayload,
    PreToolUsePayload,
    PromptRecord,
    SessionEndPayload,
    SessionEndReason,
    SessionSummary,
    Task,
    TaskStatus,
    UserPromptSubmitPayload,
    new_record_id,
)
from conftest import make_payload


class TestAgent:
    """Tests for Agent model."""

    def test_defaults(self):
        """A freshly provisioned agent is idle with no completed tasks."""
        agent = Agent(id="a1", name="Sarah Chen")
        assert agent.status == AgentStatus.IDLE
        assert agent.completed_tasks == 0
        assert agent.current_tool is None

    def test_completed_tasks_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            Agent(id="a1", completed_tasks=-1)


class TestAgentActivityUpdate:
    """Tests for the typed partial update."""

    def test_only_set_fields_are_written(self):
        """Unset fields are left out, explicit None is kept."""
        update = AgentActivityUpdate(status=AgentStatus.ACTIVE, current_tool=None)
        assert update.to_properties() == {"status": "active", "current_tool": None}

    def test_unknown_field_rejected(self):
        """Arbitrary keys cannot sneak into the agent node."""
        with pytest.raises(ValidationError):
            AgentActivityUpdate(name="renamed")


class TestTask:
    """Tests for Task model."""

    def test_unresolved_statuses(self):
        assert Task(id="t1", status=TaskStatus.PENDING).is_unresolved
        assert Task(id="t2", status=TaskStatus.IN_PROGRESS).is_unresolved
        assert not Task(id="t3", status=TaskStatus.COMPLETED).is_unresolved
        assert not Task(id="t4", status=TaskStatus.BLOCKED).is_unresolved

    def test_status_from_wire_value(self):
        assert Task(id="t1", status="in-progress").status == TaskStatus.IN_PROGRESS


class TestHookPayloads:
    """Tests for webhook payload models."""

    def test_camel_case_aliases(self):
        """Payloads read the camelCase wire names."""
        payload = PreToolUsePayload.model_validate(
            make_payload(toolName="Edit", toolParams={"file": "a.py"})
        )
        assert payload.agent_id == "agent-sarah"
        assert payload.session_id == "sess-001"
        assert payload.tool_name == "Edit"
        assert payload.tool_params == {"file": "a.py"}

    def test_tool_params_default_empty(self):
        payload = PreToolUsePayload.model_validate(make_payload(toolName="Read"))
        assert payload.tool_params == {}

    def test_missing_agent_id_rejected(self):
        body = make_payload(toolName="Read")
        del body["agentId"]
        with pytest.raises(ValidationError):
            PreToolUsePayload.model_validate(body)

    def test_missing_timestamp_rejected(self):
        body = make_payload(prompt="hello")
        del body["timestamp"]
        with pytest.raises(ValidationError):
            UserPromptSubmitPayload.model_validate(body)

    def test_post_tool_use_result(self):
        payload = PostToolUsePayload.model_validate(
            make_payload(
                toolName="Bash",
                result={"success": False, "error": "disk full"},
                executionTimeMs=12.5,
            )
        )
        assert payload.result.success is False
        assert payload.result.error == "disk full"
        assert payload.execution_time_ms == 12.5

    def test_session_end_reason_validated(self):
        with pytest.raises(ValidationError):
            SessionEndPayload.model_validate(make_payload(reason="bored"))

    def test_session_end_defaults(self):
        payload = SessionEndPayload.model_validate(make_payload(reason="task_complete"))
        assert payload.reason == SessionEndReason.TASK_COMPLETE
        assert payload.tasks_completed == 0
        assert payload.summary == ""

    def test_raw_keeps_extra_fields(self):
        """Unknown fields survive into the archived raw payload."""
        payload = UserPromptSubmitPayload.model_validate(
            make_payload(prompt="hi", workspace="/repo")
        )
        raw = payload.raw()
        assert raw["workspace"] == "/repo"
        assert raw["agentId"] == "agent-sarah"
        assert raw["prompt"] == "hi"


class TestArchiveRecords:
    """Tests for archive record models."""

    def test_record_ids_unique_and_increasing(self):
        """Ids never repeat, even when created back to back."""
        ids = [new_record_id("a1", "s1") for _ in range(50)]
        assert len(set(ids)) == 50
        sequences = [int(i.rsplit("-", 1)[1]) for i in ids]
        assert sequences == sorted(sequences)
        assert all(i.startswith("a1-s1-") for i in ids)

    def test_hook_event_metadata(self):
        record = HookEventRecord.create(
            "a1",
            "s1",
            HookEventKind.POST_TOOL_USE,
            "2025-01-15T10:30:00Z",
            tool_name="Bash",
            success=True,
            execution_time_ms=40,
        )
        metadata = record.metadata()
        assert metadata["agentId"] == "a1"
        assert metadata["type"] == "post_tool_use"
        assert metadata["toolName"] == "Bash"
        assert metadata["success"] is True
        assert metadata["sequence"] == int(record.record_id.rsplit("-", 1)[1])

    def test_session_summary_id(self):
        summary = SessionSummary(
            agent_id="a1",
            session_id="s1",
            reason=SessionEndReason.TIMEOUT,
            timestamp="2025-01-15T10:30:00Z",
        )
        assert summary.record_id == "a1-s1"

    def test_prompt_record_keeps_full_text(self):
        record = PromptRecord.create("a1", "s1", "x" * 500, "2025-01-15T10:30:00Z")
        assert len(record.prompt) == 500


class TestAppConfig:
    """Tests for AppConfig model."""

    def test_defaults(self):
        config = AppConfig()
        assert config.port == 5050
        assert config.webhook.secret is None
        assert config.hooks.workers == 4
        assert config.event_store.backend == "memory"
        assert config.event_archive.port == 3710
        assert config.alerts.consecutive_failure_threshold is None

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            AppConfig(event_store={"backend": "sqlite"})
