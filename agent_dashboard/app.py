"""Flask application factory for the agent activity tracker.

This module creates and configures the Flask application, wiring together
the services:

- ConfigService: Configuration loading with environment overrides
- EventStore: Current agent and task state (memory or Neo4j)
- EventArchive: Hook, session and prompt history (memory or ChromaDB)
- EventBus: Realtime SSE broadcasting with rooms
- HookProcessor: Applies hook events to the stores and the bus
- HookDispatcher: Bounded queue and worker pool in front of the processor
- TaskPlanner: Dependency-ordered execution plans

Usage:
    from agent_dashboard.app import create_app
    app = create_app()
    app.run(port=5050)
"""

import logging
import os
from pathlib import Path

from flask import Flask

from agent_dashboard.models import AppConfig
from agent_dashboard.routes import register_blueprints
from agent_dashboard.services import (
    AgentStatusMachine,
    ConfigService,
    EventArchive,
    EventBus,
    EventStore,
    HookDispatcher,
    HookProcessor,
    InMemoryEventArchive,
    InMemoryEventStore,
    TaskPlanner,
    build_alert_policy,
)

logger = logging.getLogger(__name__)


def _load_dotenv() -> None:
    """Load environment variables from .env file if it exists."""
    env_file = Path(".env")
    if env_file.exists():
        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")
                    if key and key not in os.environ:
                        os.environ[key] = value


def create_app(
    config_path: str = "config.yaml",
    config: AppConfig | None = None,
    event_store: EventStore | None = None,
    event_archive: EventArchive | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        config_path: Path to the configuration file.
        config: Ready configuration, skips loading config_path.
        event_store: Store to use instead of the configured backend.
        event_archive: Archive to use instead of the configured backend.

    Returns:
        Configured Flask application. Call shutdown_services() when done.
    """
    config_service = ConfigService(config_path)
    if config is None:
        config = config_service.get_config()

    app = Flask(__name__)
    app.config["TESTING"] = False

    # Store services on app for access in routes
    app.extensions["config"] = config
    app.extensions["config_service"] = config_service

    _init_services(app, config, event_store, event_archive)

    register_blueprints(app)

    return app


def _build_event_store(config: AppConfig) -> EventStore:
    store_config = config.event_store
    if store_config.backend == "neo4j":
        from agent_dashboard.services.neo4j_store import Neo4jEventStore

        return Neo4jEventStore(
            uri=store_config.uri,
            user=store_config.user,
            password=store_config.password,
            connection_timeout=store_config.connection_timeout,
        )
    return InMemoryEventStore(seed_file=store_config.seed_file)


def _build_event_archive(config: AppConfig) -> EventArchive:
    archive_config = config.event_archive
    if archive_config.backend == "chroma":
        from agent_dashboard.services.chroma_archive import ChromaEventArchive

        return ChromaEventArchive(host=archive_config.host, port=archive_config.port)
    return InMemoryEventArchive()


def _init_services(
    app: Flask,
    config: AppConfig,
    event_store: EventStore | None,
    event_archive: EventArchive | None,
) -> None:
    """Initialize all services and wire them together.

    Args:
        app: Flask application.
        config: Application configuration.
        event_store: Injected store, or None for the configured backend.
        event_archive: Injected archive, or None for the configured backend.
    """
    if event_store is None:
        event_store = _build_event_store(config)
    if event_archive is None:
        event_archive = _build_event_archive(config)

    event_store.connect()
    event_archive.connect()
    logger.info(
        f"Event store: {event_store.backend_name}, event archive: {event_archive.backend_name}"
    )
    app.extensions["event_store"] = event_store
    app.extensions["event_archive"] = event_archive

    event_bus = EventBus()
    app.extensions["event_bus"] = event_bus

    hook_processor = HookProcessor(
        event_store=event_store,
        event_archive=event_archive,
        event_bus=event_bus,
        state_machine=AgentStatusMachine(),
        alert_policy=build_alert_policy(config.alerts),
    )
    app.extensions["hook_processor"] = hook_processor

    hook_dispatcher = HookDispatcher(
        hook_processor,
        workers=config.hooks.workers,
        queue_size=config.hooks.queue_size,
    )
    hook_dispatcher.start()
    app.extensions["hook_dispatcher"] = hook_dispatcher

    app.extensions["task_planner"] = TaskPlanner(event_store)

    if not config.webhook.secret:
        logger.warning("No webhook secret configured; hook requests will be refused")

    logger.info("Services initialized")


def shutdown_services(app: Flask) -> None:
    """Drain queued hooks and close the backends.

    Args:
        app: Flask application created by create_app().
    """
    config = app.extensions.get("config")
    timeout = config.hooks.shutdown_timeout if config else 10.0

    dispatcher = app.extensions.get("hook_dispatcher")
    if dispatcher:
        dispatcher.shutdown(drain=True, timeout=timeout)

    for name in ("event_store", "event_archive"):
        backend = app.extensions.get(name)
        if backend is None:
            continue
        try:
            backend.close()
        except Exception as e:
            logger.error(f"Error closing {name}: {e}")

    logger.info("Services shut down")


def main():
    """Run the Flask application."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    _load_dotenv()

    app = create_app()
    config = app.extensions.get("config")

    port = config.port if config else 5050
    debug = config.debug if config else False

    logger.info(f"Starting agent activity tracker on port {port}")
    try:
        app.run(host="0.0.0.0", port=port, debug=debug, threaded=True, use_reloader=False)
    finally:
        shutdown_services(app)


if __name__ == "__main__":
    main()
