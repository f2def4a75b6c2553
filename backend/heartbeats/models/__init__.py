"""Database models."""
from .heartbeat import Heartbeat
from .heartbeat_archive import HeartbeatArchive

__all__ = ["Heartbeat", "HeartbeatArchive"]
