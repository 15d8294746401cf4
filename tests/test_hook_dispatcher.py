"""Tests for HookDispatcher."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from agent_dashboard.models import (
    AgentStatus,
    HookEventKind,
    PostToolUsePayload,
    PreToolUsePayload,
)
from agent_dashboard.services.event_store import InMemoryEventStore
from agent_dashboard.services.hook_dispatcher import (
    DispatcherClosedError,
    DispatchQueueFullError,
    HookDispatcher,
)
from agent_dashboard.services.hook_processor import HookProcessor
from conftest import AGENT_ID, make_payload


def _payload(tool="Bash"):
    return PreToolUsePayload.model_validate(make_payload(toolName=tool))


@pytest.fixture
def dispatcher(processor):
    dispatcher = HookDispatcher(processor, workers=2, queue_size=10)
    dispatcher.start()
    yield dispatcher
    dispatcher.shutdown(drain=False, timeout=2)


class TestDispatch:
    """Tests for queued processing."""

    def test_submit_and_join(self, dispatcher, store, archive):
        dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())
        dispatcher.join()

        assert store.get_agent_identity(AGENT_ID).status == AgentStatus.EXECUTING
        assert len(archive.get_hook_events(AGENT_ID)) == 1

    def test_status(self, dispatcher):
        status = dispatcher.get_status()
        assert status == {"running": True, "workers": 2, "queueDepth": 0, "queueCapacity": 10}

    def test_failing_job_does_not_kill_worker(self):
        processor = MagicMock()
        processor.process.side_effect = [RuntimeError("boom"), None]
        dispatcher = HookDispatcher(processor, workers=1, queue_size=10)
        dispatcher.start()
        try:
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())
            dispatcher.join()
        finally:
            dispatcher.shutdown()

        assert processor.process.call_count == 2


class TestBackpressure:
    """Tests for the bounded queue."""

    def test_queue_full(self):
        release = threading.Event()
        processor = MagicMock()
        processor.process.side_effect = lambda kind, payload: release.wait(5)

        dispatcher = HookDispatcher(processor, workers=1, queue_size=1)
        dispatcher.start()
        try:
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())
            # Wait until the worker holds the first job so the queue is empty again
            for _ in range(100):
                if processor.process.called:
                    break
                time.sleep(0.01)
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())

            with pytest.raises(DispatchQueueFullError):
                dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())
        finally:
            release.set()
            dispatcher.shutdown()

    def test_submit_before_start(self, processor):
        dispatcher = HookDispatcher(processor)
        with pytest.raises(DispatcherClosedError):
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())


class TestShutdown:
    """Tests for draining on shutdown."""

    def test_shutdown_drains_queue(self):
        gate = threading.Event()
        processed = []

        def process(kind, payload):
            gate.wait(5)
            processed.append(payload.tool_name)

        processor = MagicMock()
        processor.process.side_effect = process
        dispatcher = HookDispatcher(processor, workers=1, queue_size=10)
        dispatcher.start()

        for tool in ("Read", "Edit", "Bash"):
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload(tool))
        gate.set()
        dispatcher.shutdown(drain=True, timeout=5)

        assert processed == ["Read", "Edit", "Bash"]
        assert not dispatcher.is_running

    def test_submit_after_shutdown(self, dispatcher):
        dispatcher.shutdown()
        with pytest.raises(DispatcherClosedError):
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())

    def test_shutdown_is_idempotent(self, dispatcher):
        dispatcher.shutdown()
        dispatcher.shutdown()


class SlowEventStore(InMemoryEventStore):
    """Store whose writes take long enough for workers to overlap."""

    def update_agent_activity(self, agent_id, update, expected_status=None):
        time.sleep(0.05)
        return super().update_agent_activity(agent_id, update, expected_status)


class TestPerAgentOrdering:
    """Tests for routing an agent's hooks to a single worker."""

    def test_in_order_hooks_reach_active_on_slow_store(self, store, archive, event_bus):
        slow_store = SlowEventStore()
        slow_store.add_agent(store.get_agent_identity(AGENT_ID))
        processor = HookProcessor(slow_store, archive, event_bus)
        dispatcher = HookDispatcher(processor, workers=4, queue_size=100)
        dispatcher.start()
        try:
            dispatcher.submit(HookEventKind.PRE_TOOL_USE, _payload())
            dispatcher.submit(
                HookEventKind.POST_TOOL_USE,
                PostToolUsePayload.model_validate(
                    make_payload(toolName="Bash", result={"success": True}, executionTimeMs=5)
                ),
            )
            dispatcher.join()
        finally:
            dispatcher.shutdown()

        agent = slow_store.get_agent_identity(AGENT_ID)
        assert agent.status == AgentStatus.ACTIVE
        assert agent.current_tool is None

    def test_agent_hooks_processed_in_arrival_order(self):
        seen = []

        def process(kind, payload):
            time.sleep(0.005 if len(seen) % 2 else 0.02)
            seen.append((payload.agent_id, payload.tool_name))

        processor = MagicMock()
        processor.process.side_effect = process
        dispatcher = HookDispatcher(processor, workers=4, queue_size=100)
        dispatcher.start()
        try:
            for i in range(10):
                for agent in ("a1", "a2", "a3"):
                    payload = PreToolUsePayload.model_validate(
                        make_payload(agentId=agent, toolName=f"tool{i}")
                    )
                    dispatcher.submit(HookEventKind.PRE_TOOL_USE, payload)
            dispatcher.join()
        finally:
            dispatcher.shutdown()

        for agent in ("a1", "a2", "a3"):
            tools = [tool for a, tool in seen if a == agent]
            assert tools == [f"tool{i}" for i in range(10)]

    def test_worker_index_is_stable(self, processor):
        dispatcher = HookDispatcher(processor, workers=4)
        assert dispatcher.worker_index("a1") == dispatcher.worker_index("a1")
        assert 0 <= dispatcher.worker_index("a2") < 4

    def test_capacity_split_across_workers(self, processor):
        dispatcher = HookDispatcher(processor, workers=4, queue_size=10)
        assert dispatcher.get_status()["queueCapacity"] == 8
