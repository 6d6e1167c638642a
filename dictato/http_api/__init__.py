"""Local HTTP ingestion endpoint."""

from .server import BackgroundServer, create_app, run_server

__all__ = ["BackgroundServer", "create_app", "run_server"]
