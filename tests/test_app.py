"""Tests for the Flask application factory."""

import json
from unittest.mock import MagicMock

import pytest

from agent_dashboard.app import create_app, shutdown_services
from agent_dashboard.models import AppConfig
from agent_dashboard.services import (
    HookDispatcher,
    HookProcessor,
    InMemoryEventArchive,
    InMemoryEventStore,
)


@pytest.fixture
def app(temp_dir):
    """Create the app from a config file with a seed file."""
    seed = temp_dir / "agents.yaml"
    seed.write_text("agents:\n  - id: a1\n    name: Sarah Chen\n")
    config_file = temp_dir / "config.yaml"
    config_file.write_text(
        "webhook:\n  secret: app-secret\n"
        f"event_store:\n  seed_file: {seed}\n"
        "hooks:\n  workers: 1\n"
    )

    app = create_app(str(config_file))
    yield app
    shutdown_services(app)


class TestCreateApp:
    """Tests for service wiring."""

    def test_services_registered(self, app):
        assert isinstance(app.extensions["event_store"], InMemoryEventStore)
        assert isinstance(app.extensions["event_archive"], InMemoryEventArchive)
        assert isinstance(app.extensions["hook_processor"], HookProcessor)
        assert isinstance(app.extensions["hook_dispatcher"], HookDispatcher)
        assert app.extensions["hook_dispatcher"].is_running

    def test_seed_loaded(self, app):
        agents = app.test_client().get("/api/agents").get_json()["agents"]
        assert [a["id"] for a in agents] == ["a1"]

    def test_hook_end_to_end(self, app):
        client = app.test_client()
        response = client.post(
            "/hook/pre-tool-use",
            data=json.dumps(
                {
                    "agentId": "a1",
                    "agentName": "Sarah Chen",
                    "sessionId": "s1",
                    "toolName": "Bash",
                    "timestamp": "2025-01-15T10:30:00Z",
                }
            ),
            content_type="application/json",
            headers={"Authorization": "Bearer app-secret"},
        )
        assert response.status_code == 200

        app.extensions["hook_dispatcher"].join()
        agent = client.get("/api/agents/a1").get_json()
        assert agent["status"] == "executing"

    def test_injected_backends(self):
        store = MagicMock()
        archive = MagicMock()
        app = create_app(config=AppConfig(), event_store=store, event_archive=archive)
        try:
            assert app.extensions["event_store"] is store
            store.connect.assert_called_once()
            archive.connect.assert_called_once()
        finally:
            shutdown_services(app)

        store.close.assert_called_once()
        archive.close.assert_called_once()
        assert not app.extensions["hook_dispatcher"].is_running

    def test_alert_policy_from_config(self):
        config = AppConfig(alerts={"consecutive_failure_threshold": 2})
        app = create_app(config=config)
        try:
            policy = app.extensions["hook_processor"]._alert_policy
            assert policy.threshold == 2
        finally:
            shutdown_services(app)
