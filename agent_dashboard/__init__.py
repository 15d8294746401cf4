"""Agent Activity Tracker - hook ingestion and agent status dashboard backend."""

__version__ = "1.0.0"
