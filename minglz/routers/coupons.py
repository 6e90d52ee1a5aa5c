from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.schemas.coupons import (
    CouponDetailsOut,
    CouponOut,
    IssueCouponRequest,
    IssueCouponResponse,
    LocationOut,
    StoreOut,
)
from minglz.services import coupons as coupon_service
from minglz.services.directory import get_location_by_slug

router = APIRouter(prefix="/api/coupons", tags=["Coupons"])


def details_out(details: coupon_service.CouponDetails) -> CouponDetailsOut:
    out = CouponDetailsOut.model_validate(details.coupon)
    if details.location is not None:
        out.location = LocationOut.model_validate(details.location)
    if details.validated_by_store is not None:
        out.validated_by_store = StoreOut.model_validate(details.validated_by_store)
    return out


@router.post("/issue", response_model=IssueCouponResponse)
async def issue_coupon(data: IssueCouponRequest, db: AsyncSession = Depends(get_db)):
    slug = data.location_slug.strip()
    if not await get_location_by_slug(db, slug):
        raise HTTPException(status_code=404, detail=f"'{slug}' 장소를 찾을 수 없습니다.")

    result = await coupon_service.issue_coupon(db, slug)
    if not result.success:
        raise HTTPException(status_code=500, detail={"error": result.error, "details": result.details})

    return IssueCouponResponse(
        coupon=CouponOut.model_validate(result.coupon),
        location=LocationOut.model_validate(result.location),
        message=result.message,
    )


@router.get("/{code}")
async def get_coupon(code: str, db: AsyncSession = Depends(get_db)):
    lookup = await coupon_service.get_coupon_by_code(db, code)
    if lookup.data is None:
        raise HTTPException(status_code=404, detail=lookup.error)
    return {"success": True, "data": details_out(lookup.data)}
