"""Query service - windowed count, listing and grouped metrics over heartbeats.

Only the live heartbeats table is read; the archive never is.
"""
import re
from typing import Dict, List, Optional, Any

from sqlalchemy import func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import BadRequestError
from ..models.heartbeat import Heartbeat

SECONDS_IN_HOUR = 3600
SECONDS_IN_DAY = SECONDS_IN_HOUR * 24
SECONDS_IN_MONTH = 31 * SECONDS_IN_DAY

DEFAULT_WINDOW = SECONDS_IN_DAY
MIN_WINDOW = 1
MAX_WINDOW = SECONDS_IN_MONTH

FORMATS = ("json", "csv")
GROUPABLE_COLUMNS = ("part_num", "fw_version", "sw_version", "country")
DEFAULT_GROUPS = ["part_num"]

# Display value for null attributes
UNKNOWN = "Unknown"

LIST_COLUMNS = ("unique_id", "first_seen", "last_seen", "part_num", "fw_version", "sw_version", "country")

_INT_PREFIX_RE = re.compile(r"^\s*([+-]?[0-9]+)")


def parse_int_or_default(raw: Optional[str], default: int) -> int:
    """Leading integer of ``raw``, or ``default`` when there is none."""
    if not raw:
        return default
    match = _INT_PREFIX_RE.match(raw)
    return int(match.group(1)) if match else default


def parse_window(raw: Optional[str]) -> int:
    """Lookback seconds, clamped to [1, one month]. Junk means the default."""
    window = parse_int_or_default(raw, DEFAULT_WINDOW)
    return min(MAX_WINDOW, max(MIN_WINDOW, window))


def parse_format(raw: Optional[str]) -> str:
    output_format = (raw or "json").lower()
    if output_format not in FORMATS:
        raise BadRequestError("invalid format")
    return output_format


def parse_groups(raw: Optional[str]) -> List[str]:
    """Comma list of group columns, lowercased and de-duplicated in order."""
    if not raw:
        return list(DEFAULT_GROUPS)

    groups = []
    for name in raw.lower().split(","):
        name = name.strip()
        if name not in GROUPABLE_COLUMNS:
            raise BadRequestError("invalid groups")
        if name not in groups:
            groups.append(name)
    return groups


def _unknown_if_null(column):
    # Inline literal so SELECT and GROUP BY render the same expression
    return func.coalesce(column, literal_column(f"'{UNKNOWN}'"))


async def count_active(db: AsyncSession, since: int) -> int:
    """Devices with last_seen >= since."""
    result = await db.execute(
        select(func.count()).select_from(Heartbeat).where(Heartbeat.last_seen >= since)
    )
    return result.scalar() or 0


async def list_active(db: AsyncSession, since: int) -> List[Dict[str, Any]]:
    """Devices with last_seen >= since, most recently seen first."""
    result = await db.execute(
        select(
            Heartbeat.unique_id,
            Heartbeat.first_seen,
            Heartbeat.last_seen,
            Heartbeat.part_num,
            _unknown_if_null(Heartbeat.fw_version).label("fw_version"),
            _unknown_if_null(Heartbeat.sw_version).label("sw_version"),
            _unknown_if_null(Heartbeat.country).label("country"),
        )
        .where(Heartbeat.last_seen >= since)
        .order_by(Heartbeat.last_seen.desc(), Heartbeat.unique_id)
    )
    return [dict(row._mapping) for row in result]


async def group_active(db: AsyncSession, since: int, groups: List[str]) -> List[Dict[str, Any]]:
    """Count active devices per combination of ``groups`` values.

    Nulls are replaced with 'Unknown' before grouping, so a null and a
    reported 'Unknown' land in the same bucket. Ordered by count descending,
    then by the group values in the order requested.
    """
    group_exprs = [_unknown_if_null(Heartbeat.__table__.c[name]) for name in groups]
    count = func.count().label("count")

    result = await db.execute(
        select(*(expr.label(name) for expr, name in zip(group_exprs, groups)), count)
        .where(Heartbeat.last_seen >= since)
        .group_by(*group_exprs)
        .order_by(count.desc(), *group_exprs)
    )
    return [dict(row._mapping) for row in result]
