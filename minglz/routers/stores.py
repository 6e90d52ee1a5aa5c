from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.routers.coupons import details_out
from minglz.schemas.coupons import (
    CouponOut,
    LocationOut,
    StoreOut,
    StoreStatsOut,
    UseCouponResponse,
    ValidateCouponResponse,
)
from minglz.services import coupons as coupon_service

router = APIRouter(prefix="/api/stores", tags=["Stores"])

_HARD_ERROR_STATUS = {
    coupon_service.REASON_STORE_NOT_FOUND: 404,
    coupon_service.REASON_EMPTY_CODE: 400,
    coupon_service.REASON_UNEXPECTED: 500,
}


def _opt(schema, obj):
    return schema.model_validate(obj) if obj is not None else None


@router.get("/{store_slug}/coupons/{code}")
async def get_store_coupon(store_slug: str, code: str, db: AsyncSession = Depends(get_db)):
    lookup = await coupon_service.get_coupon_by_store_and_code(db, store_slug, code)
    if lookup.data is None:
        raise HTTPException(status_code=404, detail=lookup.error)
    return {"success": True, "data": details_out(lookup.data)}


@router.post("/{store_slug}/coupons/{code}/validate", response_model=ValidateCouponResponse)
async def validate_coupon(store_slug: str, code: str, db: AsyncSession = Depends(get_db)):
    verdict = await coupon_service.validate_code_at_store(db, code, store_slug)

    if not verdict.success:
        status = _HARD_ERROR_STATUS.get(verdict.reason, 500)
        raise HTTPException(status_code=status, detail={"error": verdict.error, "is_valid": False})

    # business rejections are still a 200
    return ValidateCouponResponse(
        success=True,
        is_valid=verdict.is_valid,
        is_used=verdict.is_used,
        location=_opt(LocationOut, verdict.location),
        store=_opt(StoreOut, verdict.store),
        used_at_store_name=verdict.used_at_store_name,
        message=verdict.message,
    )


@router.post("/{store_slug}/coupons/{code}/use", response_model=UseCouponResponse)
async def use_coupon(store_slug: str, code: str, db: AsyncSession = Depends(get_db)):
    result = await coupon_service.use_coupon_at_store(db, code, store_slug)
    if not result.success:
        # already used, expired or foreign codes stay a 400
        status = _HARD_ERROR_STATUS.get(result.reason, 400)
        raise HTTPException(status_code=status, detail=result.error)

    return UseCouponResponse(
        coupon=CouponOut.model_validate(result.coupon),
        location=_opt(LocationOut, result.location),
        store=_opt(StoreOut, result.store),
        message=result.message,
    )


@router.get("/{store_slug}/stats", response_model=StoreStatsOut)
async def store_stats(store_slug: str, db: AsyncSession = Depends(get_db)):
    stats = await coupon_service.get_store_stats(db, store_slug)
    if stats is None:
        raise HTTPException(status_code=404, detail="매장을 찾을 수 없습니다.")
    return StoreStatsOut(store=StoreOut.model_validate(stats.store), validated=stats.validated)
