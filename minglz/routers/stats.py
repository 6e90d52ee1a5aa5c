from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from starlette.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.core.deps import get_current_user
from minglz.models.user import User
from minglz.services.stats import get_stats
from minglz.services.stats_pdf import build_stats_pdf

router = APIRouter(prefix="/api/stats", tags=["Stats"])


@router.get("")
async def stats(
    event_id: Optional[str] = None,
    period: str = Query(default="today"),  # today | yesterday | thisWeek | thisMonth
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = await get_stats(
        db,
        user_id=current_user.id,
        event_id=event_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )
    return {"success": True, "data": data}


@router.get("/report.pdf")
async def stats_pdf(
    event_id: Optional[str] = None,
    period: str = Query(default="today"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    data = await get_stats(
        db,
        user_id=current_user.id,
        event_id=event_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )
    pdf_bytes = build_stats_pdf(data, owner_email=current_user.email)

    filename = f"stats_{period}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
