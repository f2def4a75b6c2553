"""Admin analytics API: device counts, listings and grouped metrics."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_now
from ..responses import csv_line, csv_response, json_response
from ..schemas.analytics import CountResponse, DeviceListResponse, DeviceRow, MetricsResponse
from ..security import require_admin_token
from ..services.query import (
    LIST_COLUMNS,
    count_active,
    group_active,
    list_active,
    parse_format,
    parse_groups,
    parse_window,
)

router = APIRouter(tags=["analytics"], dependencies=[Depends(require_admin_token)])


@router.get("/count", response_model=CountResponse)
async def count(
    window: Optional[str] = None,
    output_format: Optional[str] = Query(None, alias="format"),
    db: AsyncSession = Depends(get_db),
    now: int = Depends(get_now),
):
    """Number of devices seen in the last `window` seconds (default 1 day)."""
    window_sec = parse_window(window)
    since = now - window_sec
    output_format = parse_format(output_format)

    active = await count_active(db, since)

    if output_format == "csv":
        return csv_response("timestamp,window,active\n", f"{now},{window_sec},{active}\n")
    return json_response(CountResponse(since=since, window=window_sec, active=active).model_dump())


@router.get("/list", response_model=DeviceListResponse)
async def list_devices(
    window: Optional[str] = None,
    output_format: Optional[str] = Query(None, alias="format"),
    db: AsyncSession = Depends(get_db),
    now: int = Depends(get_now),
):
    """Devices seen in the last `window` seconds, most recent first."""
    window_sec = parse_window(window)
    since = now - window_sec
    output_format = parse_format(output_format)

    devices = await list_active(db, since)

    if output_format == "csv":
        lines = "\n".join(csv_line(device[name] for name in LIST_COLUMNS) for device in devices)
        return csv_response(",".join(LIST_COLUMNS) + "\n", lines)

    response = DeviceListResponse(
        devices=[DeviceRow(**device) for device in devices],
        windowSec=window_sec,
    )
    return json_response(response.model_dump())


@router.get("/metrics", response_model=MetricsResponse)
async def metrics(
    window: Optional[str] = None,
    group: Optional[str] = None,
    groups: Optional[str] = None,
    output_format: Optional[str] = Query(None, alias="format"),
    db: AsyncSession = Depends(get_db),
    now: int = Depends(get_now),
):
    """Devices seen in the last `window` seconds, counted per group.

    group[s] is a comma list drawn from part_num, fw_version, sw_version and
    country; default part_num.
    """
    window_sec = parse_window(window)
    since = now - window_sec
    output_format = parse_format(output_format)
    group_names = parse_groups(group or groups)

    results = await group_active(db, since, group_names)
    total_active = sum(row["count"] for row in results)

    if output_format == "csv":
        columns = [*group_names, "count"]
        lines = "\n".join(csv_line(row[name] for name in columns) for row in results)
        return csv_response(",".join(columns) + "\n", lines)

    response = MetricsResponse(
        window=window_sec,
        timestamp=now,
        totalActive=total_active,
        results=results,
    )
    return json_response(response.model_dump())
