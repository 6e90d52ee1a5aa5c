# minglz/schemas/coupons.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class LocationOut(BaseModel):
    id: UUID
    slug: str
    name: str
    description: str | None = None
    coupon_expiry_days: int | None = None
    is_active: bool

    class Config:
        from_attributes = True


class StoreOut(BaseModel):
    id: UUID
    location_id: UUID
    name: str
    slug: str
    description: str | None = None
    is_active: bool

    class Config:
        from_attributes = True


class CouponOut(BaseModel):
    id: UUID
    code: str
    location_id: UUID
    is_used: bool
    created_at: datetime
    used_at: datetime | None = None
    validated_at: datetime | None = None
    validated_by_store_id: UUID | None = None

    class Config:
        from_attributes = True


class CouponDetailsOut(CouponOut):
    location: LocationOut | None = None
    # coupons are issued per location; no issuing store is recorded
    store: StoreOut | None = None
    validated_by_store: StoreOut | None = None


class IssueCouponRequest(BaseModel):
    location_slug: str = Field(min_length=1)


class IssueCouponResponse(BaseModel):
    success: bool = True
    coupon: CouponOut
    location: LocationOut
    message: str | None = None


class ValidateCouponResponse(BaseModel):
    success: bool
    is_valid: bool
    is_used: bool | None = None
    location: LocationOut | None = None
    store: StoreOut | None = None
    used_at_store_name: str | None = None
    message: str | None = None
    error: str | None = None


class UseCouponResponse(BaseModel):
    success: bool = True
    coupon: CouponOut
    location: LocationOut | None = None
    store: StoreOut | None = None
    message: str | None = None


class LocationStatsOut(BaseModel):
    location: LocationOut
    total: int
    used: int
    unused: int
    usage_rate: int


class StoreStatsOut(BaseModel):
    store: StoreOut
    validated: int


class ResolveStoreRequest(BaseModel):
    payload: str


class ResolveStoreResponse(BaseModel):
    success: bool = True
    identifier: str
    store: StoreOut
