"""Device heartbeat API endpoint."""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import get_db
from ..dependencies import get_now, get_settings
from ..responses import json_response
from ..schemas.heartbeat import HeartbeatAck
from ..security import require_client_token
from ..services.ingestion import build_report, record_heartbeat

router = APIRouter(tags=["heartbeat"])


@router.post("/heartbeat", response_model=HeartbeatAck, dependencies=[Depends(require_client_token)])
async def heartbeat(
    request: Request,
    uid: Optional[str] = None,
    part: Optional[str] = None,
    fw: Optional[str] = None,
    sw: Optional[str] = None,
    ciq: Optional[str] = None,
    lang: Optional[str] = None,
    feat: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    now: int = Depends(get_now),
    settings: Settings = Depends(get_settings),
):
    """Record an anonymized usage ping from a device.

    uid and part are required; fw, sw, ciq, lang and feat are optional and
    stored as null when omitted. Country comes from the proxy's header.
    """
    report = build_report(
        uid=uid,
        part=part,
        fw=fw,
        sw=sw,
        ciq=ciq,
        lang=lang,
        feat=feat,
        country=request.headers.get(settings.country_header),
    )
    await record_heartbeat(db, report, now)
    return json_response(HeartbeatAck().model_dump())
