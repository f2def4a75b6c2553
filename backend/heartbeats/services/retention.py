"""Retention service - administrative removal of heartbeats.

Deletes go through the heartbeats table only; the on-delete trigger copies each
removed row into heartbeats_archive within the same statement.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Heartbeat, HeartbeatArchive

logger = logging.getLogger(__name__)


async def delete_device(db: AsyncSession, unique_id: str) -> bool:
    """Delete one device. Returns False if it did not exist."""
    result = await db.execute(
        delete(Heartbeat).where(Heartbeat.unique_id == unique_id)
    )
    await db.commit()

    removed = result.rowcount > 0
    if removed:
        logger.info(f"Device deleted (archived): {unique_id[:16]}...")
    return removed


async def purge_inactive(db: AsyncSession, older_than: int) -> int:
    """Delete every device last seen before ``older_than`` (epoch seconds)."""
    result = await db.execute(
        delete(Heartbeat).where(Heartbeat.last_seen < older_than)
    )
    await db.commit()

    logger.info(f"Purged {result.rowcount} devices last seen before {older_than}")
    return result.rowcount


async def list_archived(db: AsyncSession, unique_id: Optional[str] = None) -> List[HeartbeatArchive]:
    """Archived rows, most recent capture first."""
    query = select(HeartbeatArchive)
    if unique_id is not None:
        query = query.where(HeartbeatArchive.unique_id == unique_id)
    query = query.order_by(HeartbeatArchive.deleted_at.desc(), HeartbeatArchive.archive_id.desc())

    result = await db.execute(query)
    return list(result.scalars().all())
