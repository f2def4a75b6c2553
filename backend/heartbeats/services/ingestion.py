"""Ingestion service - create-or-update of a device's heartbeat row."""
import logging
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import BadRequestError
from ..models.heartbeat import Heartbeat, MUTABLE_COLUMNS
from ..schemas.heartbeat import HeartbeatReport

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    """Trim; empty becomes None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_report(
    uid: Optional[str],
    part: Optional[str],
    fw: Optional[str] = None,
    sw: Optional[str] = None,
    ciq: Optional[str] = None,
    lang: Optional[str] = None,
    feat: Optional[str] = None,
    country: Optional[str] = None,
) -> HeartbeatReport:
    """Validate raw request values into a report.

    Raises:
        BadRequestError: if uid or part is missing or blank
    """
    unique_id = _clean(uid)
    part_num = _clean(part)
    if not unique_id:
        raise BadRequestError("uid is required")
    if not part_num:
        raise BadRequestError("part is required")

    return HeartbeatReport(
        unique_id=unique_id,
        part_num=part_num,
        fw_version=_clean(fw),
        sw_version=_clean(sw),
        ciq_version=_clean(ciq),
        lang=_clean(lang),
        feat=_clean(feat),
        country=_clean(country),
    )


def _dialect_insert(dialect: str):
    if dialect == "postgresql":
        return postgresql.insert
    return sqlite.insert


async def record_heartbeat(db: AsyncSession, report: HeartbeatReport, now: int):
    """Insert or update the device row in a single statement.

    A new device gets first_seen = last_seen = now. A known device gets
    last_seen = now and every reported attribute overwritten, nulls included;
    first_seen is left alone.
    """
    insert = _dialect_insert(db.bind.dialect.name)
    stmt = insert(Heartbeat).values(first_seen=now, last_seen=now, **report.model_dump())
    stmt = stmt.on_conflict_do_update(
        index_elements=[Heartbeat.unique_id],
        set_={name: stmt.excluded[name] for name in MUTABLE_COLUMNS},
    )

    await db.execute(stmt)
    await db.commit()

    logger.debug(f"Heartbeat recorded: {report.unique_id[:16]}... part={report.part_num}")
