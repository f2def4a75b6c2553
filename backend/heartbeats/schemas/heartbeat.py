"""Heartbeat ingestion schemas."""
from typing import Optional

from pydantic import BaseModel


class HeartbeatReport(BaseModel):
    """A device's full current report; omitted attributes are stored as null."""
    unique_id: str
    part_num: str
    fw_version: Optional[str] = None
    sw_version: Optional[str] = None
    ciq_version: Optional[str] = None
    lang: Optional[str] = None
    feat: Optional[str] = None
    country: Optional[str] = None


class HeartbeatAck(BaseModel):
    """Acknowledgement of a stored heartbeat."""
    ok: bool = True
