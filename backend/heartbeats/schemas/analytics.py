"""Analytics response schemas."""
from typing import Any, Dict, List

from pydantic import BaseModel


class CountResponse(BaseModel):
    """Number of devices seen within the window."""
    since: int
    window: int
    active: int


class DeviceRow(BaseModel):
    """A device as listed; null attributes already rendered as 'Unknown'."""
    unique_id: str
    first_seen: int
    last_seen: int
    part_num: str
    fw_version: str
    sw_version: str
    country: str

    class Config:
        from_attributes = True


class DeviceListResponse(BaseModel):
    """Devices seen within the window, most recent first."""
    devices: List[DeviceRow]
    windowSec: int


class MetricsResponse(BaseModel):
    """Grouped device counts within the window."""
    window: int
    timestamp: int
    totalActive: int
    results: List[Dict[str, Any]]
