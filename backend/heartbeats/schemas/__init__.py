"""Pydantic schemas for API request/response models."""
from .heartbeat import (
    HeartbeatReport,
    HeartbeatAck,
)
from .analytics import (
    CountResponse,
    DeviceRow,
    DeviceListResponse,
    MetricsResponse,
)

__all__ = [
    "HeartbeatReport",
    "HeartbeatAck",
    "CountResponse",
    "DeviceRow",
    "DeviceListResponse",
    "MetricsResponse",
]
