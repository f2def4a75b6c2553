"""Heartbeat model - one row per device identity."""
from sqlalchemy import Column, BigInteger, String

from ..database import Base


class Heartbeat(Base):
    """Latest self-reported state of a device, keyed by its anonymized id.

    The table itself is created and evolved by ``migrations``.
    """

    __tablename__ = "heartbeats"

    unique_id = Column(String, primary_key=True)
    first_seen = Column(BigInteger, nullable=False)  # epoch seconds, set once
    last_seen = Column(BigInteger, nullable=False)  # epoch seconds, overwritten per heartbeat
    part_num = Column(String(32), nullable=False)
    fw_version = Column(String(16), nullable=True)
    sw_version = Column(String(16), nullable=True)
    ciq_version = Column(String(16), nullable=True)
    lang = Column(String(16), nullable=True)
    feat = Column(String(256), nullable=True)  # free-form feature flags
    country = Column(String(8), nullable=True)  # from request origin, not the client


# Attributes overwritten on every heartbeat
MUTABLE_COLUMNS = (
    "last_seen",
    "part_num",
    "fw_version",
    "sw_version",
    "ciq_version",
    "lang",
    "feat",
    "country",
)
