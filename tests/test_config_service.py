"""Tests for ConfigService."""

import yaml

from agent_dashboard.services.config_service import ConfigService


class TestConfigServiceLoad:
    """Tests for loading configuration."""

    def test_load_defaults_when_no_file(self, temp_dir):
        """Returns default config when file doesn't exist."""
        service = ConfigService(temp_dir / "nonexistent.yaml", environ={})
        config = service.load()

        assert config.port == 5050
        assert config.webhook.secret is None
        assert config.event_store.backend == "memory"

    def test_load_from_yaml(self, temp_dir):
        """Loads config from YAML file."""
        config_file = temp_dir / "config.yaml"
        config_file.write_text(
            """
hooks:
  workers: 2
  queue_size: 50
alerts:
  consecutive_failure_threshold: 3
port: 6060
"""
        )

        config = ConfigService(config_file, environ={}).load()

        assert config.hooks.workers == 2
        assert config.hooks.queue_size == 50
        assert config.alerts.consecutive_failure_threshold == 3
        assert config.port == 6060

    def test_invalid_yaml_uses_defaults(self, temp_dir):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("hooks: [unclosed")

        config = ConfigService(config_file, environ={}).load()
        assert config.hooks.workers == 4

    def test_invalid_values_use_defaults(self, temp_dir):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("hooks:\n  workers: 0\n")

        config = ConfigService(config_file, environ={}).load()
        assert config.hooks.workers == 4


class TestEnvironmentOverrides:
    """Tests for environment variable overrides."""

    def test_webhook_secret_from_env(self, temp_dir):
        environ = {"DASHBOARD_WEBHOOK_SECRET": "from-env"}
        config = ConfigService(temp_dir / "missing.yaml", environ=environ).load()
        assert config.webhook.secret == "from-env"

    def test_env_wins_over_file(self, temp_dir):
        config_file = temp_dir / "config.yaml"
        config_file.write_text(
            "event_store:\n  backend: neo4j\n  uri: bolt://file:7687\n"
            "event_archive:\n  port: 8000\n"
        )
        environ = {
            "NEO4J_URI": "bolt://env:7687",
            "NEO4J_PASSWORD": "pw",
            "CHROMA_PORT": "9000",
        }

        config = ConfigService(config_file, environ=environ).load()

        assert config.event_store.backend == "neo4j"
        assert config.event_store.uri == "bolt://env:7687"
        assert config.event_store.password == "pw"
        assert config.event_archive.port == 9000

    def test_env_survives_invalid_file(self, temp_dir):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("port: 1\n")

        environ = {"DASHBOARD_WEBHOOK_SECRET": "kept"}
        config = ConfigService(config_file, environ=environ).load()

        assert config.port == 5050
        assert config.webhook.secret == "kept"


class TestConfigServiceSave:
    """Tests for saving configuration."""

    def test_save_omits_secrets(self, temp_dir):
        config_file = temp_dir / "config.yaml"
        service = ConfigService(
            config_file,
            environ={"DASHBOARD_WEBHOOK_SECRET": "hidden", "NEO4J_PASSWORD": "pw"},
        )
        service.load()

        assert service.save() is True

        saved = yaml.safe_load(config_file.read_text())
        assert saved["webhook"]["secret"] is None
        assert saved["event_store"]["password"] is None
        assert saved["port"] == 5050

    def test_reload_picks_up_changes(self, temp_dir):
        config_file = temp_dir / "config.yaml"
        config_file.write_text("port: 6000\n")
        service = ConfigService(config_file, environ={})
        assert service.get_config().port == 6000

        config_file.write_text("port: 7000\n")
        assert service.get_config().port == 6000
        assert service.reload().port == 7000
