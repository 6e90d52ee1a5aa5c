from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.schemas.coupons import LocationOut, LocationStatsOut
from minglz.services import coupons as coupon_service

router = APIRouter(prefix="/api/locations", tags=["Locations"])


@router.get("/{slug}/stats", response_model=LocationStatsOut)
async def location_stats(slug: str, db: AsyncSession = Depends(get_db)):
    stats = await coupon_service.get_location_stats(db, slug)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"'{slug}' 장소를 찾을 수 없습니다.")

    return LocationStatsOut(
        location=LocationOut.model_validate(stats.location),
        total=stats.total,
        used=stats.used,
        unused=stats.unused,
        usage_rate=stats.usage_rate,
    )
