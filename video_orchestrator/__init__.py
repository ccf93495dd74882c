"""Video ingestion and processing orchestrator."""

__version__ = "0.1.0"
