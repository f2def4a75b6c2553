"""HeartbeatArchive model - rows captured when a heartbeat is deleted."""
from sqlalchemy import Column, BigInteger, Integer, String

from ..database import Base


class HeartbeatArchive(Base):
    """Append-only copy of a deleted heartbeat, written by the on-delete trigger."""

    __tablename__ = "heartbeats_archive"

    archive_id = Column(Integer, primary_key=True, autoincrement=True)
    unique_id = Column(String)
    first_seen = Column(BigInteger)
    last_seen = Column(BigInteger)
    part_num = Column(String)
    fw_version = Column(String)
    sw_version = Column(String)
    ciq_version = Column(String)
    lang = Column(String)
    feat = Column(String)
    country = Column(String)
    deleted_at = Column(BigInteger)  # epoch seconds of capture
