from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.schemas.events import TrackVisitResult
from minglz.services import events as event_service

router = APIRouter(prefix="/api/public/events", tags=["Public Events"])


def client_ip(request: Request) -> str | None:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else None


@router.get("/{domain_code}")
async def get_public_event(domain_code: str, db: AsyncSession = Depends(get_db)):
    event = await event_service.get_public_event(db, domain_code)
    return {"success": True, "data": event}


@router.post("/{domain_code}/track-visit", response_model=TrackVisitResult, response_model_exclude_none=True)
async def track_visit(domain_code: str, request: Request, db: AsyncSession = Depends(get_db)):
    return await event_service.track_visit(
        db,
        domain_code=domain_code,
        user_agent=request.headers.get("user-agent"),
        ip_address=client_ip(request),
        referer=request.headers.get("referer"),
    )
