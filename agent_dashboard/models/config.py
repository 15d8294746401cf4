"""Application configuration models with Pydantic validation."""

from pydantic import BaseModel, Field


class WebhookConfig(BaseModel):
    """Webhook authentication configuration."""

    secret: str | None = Field(
        default=None,
        description="Shared bearer secret (DASHBOARD_WEBHOOK_SECRET overrides)",
    )


class HookConfig(BaseModel):
    """Hook ingestion configuration.

    Accepted hooks are queued and processed by a fixed worker pool so the
    HTTP response never waits on storage.
    """

    enabled: bool = Field(
        default=True,
        description="Whether to accept agent hook events",
    )
    workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Worker threads processing queued hook events",
    )
    queue_size: int = Field(
        default=1000,
        ge=1,
        le=100000,
        description="Maximum queued hook events, split across the workers",
    )
    shutdown_timeout: float = Field(
        default=10.0,
        ge=0,
        le=300,
        description="Seconds to wait for the queue to drain on shutdown",
    )


class EventStoreConfig(BaseModel):
    """Current-state store (agents and tasks)."""

    backend: str = Field(
        default="memory",
        pattern="^(memory|neo4j)$",
        description="Store backend to use",
    )
    uri: str = Field(default="bolt://localhost:7687", description="Neo4j URI (NEO4J_URI)")
    user: str = Field(default="neo4j", description="Neo4j user (NEO4J_USER)")
    password: str | None = Field(default=None, description="Neo4j password (NEO4J_PASSWORD)")
    connection_timeout: float = Field(default=15.0, ge=1, le=300)
    seed_file: str | None = Field(
        default=None,
        description="YAML file with agents and tasks to load into the memory backend",
    )


class EventArchiveConfig(BaseModel):
    """History archive (hook events, sessions, prompts)."""

    backend: str = Field(
        default="memory",
        pattern="^(memory|chroma)$",
        description="Archive backend to use",
    )
    host: str = Field(default="localhost", description="ChromaDB host (CHROMA_HOST)")
    port: int = Field(default=3710, ge=1, le=65535, description="ChromaDB port (CHROMA_PORT)")


class AlertConfig(BaseModel):
    """Escalation of repeated tool failures."""

    consecutive_failure_threshold: int | None = Field(
        default=None,
        ge=1,
        le=1000,
        description="Consecutive failed tools before an agent is put in error (unset: never)",
    )


class ApiLimitsConfig(BaseModel):
    """API bounds configuration."""

    max_history_limit: int = Field(
        default=100,
        ge=10,
        le=1000,
        description="Maximum entries for history endpoints",
    )


class AppConfig(BaseModel):
    """Root application configuration.

    Loaded from config.yaml and validated with Pydantic.
    """

    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    hooks: HookConfig = Field(default_factory=HookConfig)
    event_store: EventStoreConfig = Field(default_factory=EventStoreConfig)
    event_archive: EventArchiveConfig = Field(default_factory=EventArchiveConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    api_limits: ApiLimitsConfig = Field(default_factory=ApiLimitsConfig)
    port: int = Field(
        default=5050,
        ge=1024,
        le=65535,
        description="Port for the Flask server",
    )
    debug: bool = Field(
        default=False,
        description="Enable Flask debug mode",
    )
