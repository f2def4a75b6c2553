"""Business logic services."""
from . import ingestion, query, retention

__all__ = ["ingestion", "query", "retention"]
