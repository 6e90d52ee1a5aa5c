# minglz/services/coupons.py
"""
Coupon lifecycle: code generation, issuance for a location, store-scoped
validation and the single used=false -> used=true transition.

Every public coroutine here returns a result object instead of raising, so
routers can tell hard errors (success=False) from business rejections
(success=True, is_valid=False or is_used=True).
"""
from __future__ import annotations

import secrets
import string
import time as _time
import uuid
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from loguru import logger
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.timeutils import as_aware_utc, local_tz, to_local, utcnow
from minglz.models.coupon import Coupon
from minglz.models.location import Location
from minglz.models.store import Store
from minglz.services.directory import get_location_by_slug, get_store_by_slug, get_store_name

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8

ELSEWHERE = "다른 곳"

MSG_INVALID_COUPON = "사용이 불가한 쿠폰이에요...\n확인 후 다시 인증해주세요!"
MSG_LOCATION_MISSING = "장소 정보를 찾을 수 없습니다."
MSG_EMPTY_CODE = "코드를 입력해주세요."
MSG_VALIDATE_FAILED = "코드 확인 중 오류가 발생했습니다."
MSG_USE_FAILED = "쿠폰 사용 처리 중 오류가 발생했습니다."
MSG_UNKNOWN = "알 수 없는 오류가 발생했습니다."

# why a validation or redemption failed outright
REASON_STORE_NOT_FOUND = "store_not_found"
REASON_EMPTY_CODE = "empty_code"
REASON_UNEXPECTED = "unexpected"


@dataclass
class GenerateCodeResult:
    success: bool
    code: str | None = None
    location: Location | None = None
    error: str | None = None


@dataclass
class SaveCodeResult:
    success: bool
    coupon: Coupon | None = None
    location: Location | None = None
    store: Store | None = None
    message: str | None = None
    error: str | None = None
    details: str | None = None
    reason: str | None = None


@dataclass
class ValidateCodeResult:
    success: bool
    is_valid: bool
    is_used: bool | None = None
    coupon: Coupon | None = None
    location: Location | None = None
    store: Store | None = None
    used_by_store_id: uuid.UUID | None = None
    used_at_store_name: str | None = None
    message: str | None = None
    error: str | None = None
    reason: str | None = None


@dataclass
class CouponDetails:
    coupon: Coupon
    location: Location | None
    validated_by_store: Store | None


@dataclass
class CouponLookup:
    data: CouponDetails | None
    error: str | None = None


@dataclass
class LocationStats:
    location: Location
    total: int
    used: int
    unused: int
    usage_rate: int


@dataclass
class StoreStats:
    store: Store
    validated: int


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def _random_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def _timestamp_repair(code: str, now_ms: int | None = None) -> str:
    ms = now_ms if now_ms is not None else int(_time.time() * 1000)
    return f"{code[:4]}{str(ms)[-4:]}"


async def generate_unique_code(db: AsyncSession) -> str:
    """
    One random draw, one collision check, at most one repair.
    The repaired code is not re-checked; the unique index on coupons.code
    is what finally rejects a duplicate.
    """
    code = _random_code()
    try:
        res = await db.execute(select(Coupon.code).where(Coupon.code == code).limit(1))
        taken = res.first() is not None
    except SQLAlchemyError as e:
        logger.warning("Coupon code collision check failed", error=str(e))
        return _timestamp_repair(code)

    if taken:
        logger.info("Coupon code collision, repairing with timestamp suffix", code=code)
        return _timestamp_repair(code)
    return code


def coupon_expires_at(created_at: datetime, expiry_days: int) -> datetime:
    """
    Last valid instant: end of the (expiry_days - 1)th day after issue, local time.
    expiry_days=1 means "valid through the end of the issue day".
    """
    issued_local = to_local(created_at)
    last_day = issued_local.date() + timedelta(days=expiry_days - 1)
    return datetime.combine(last_day, time(23, 59, 59, 999000), tzinfo=local_tz())


async def generate_code_for_location(db: AsyncSession, location_slug: str) -> GenerateCodeResult:
    try:
        location = await get_location_by_slug(db, location_slug)
        if not location:
            return GenerateCodeResult(
                success=False,
                error=f"'{location_slug}' 장소를 찾을 수 없습니다. 데이터베이스에 해당 장소가 존재하는지 확인해주세요.",
            )

        code = await generate_unique_code(db)
        return GenerateCodeResult(success=True, code=code, location=location)
    except Exception:
        logger.exception("Coupon code generation failed", location_slug=location_slug)
        return GenerateCodeResult(success=False, error="코드 생성 중 오류가 발생했습니다.")


async def save_code_for_location(db: AsyncSession, code: str, location_slug: str) -> SaveCodeResult:
    try:
        location = await get_location_by_slug(db, location_slug)
        if not location:
            logger.warning("Cannot save coupon, location not found", location_slug=location_slug)
            return SaveCodeResult(success=False, error="유효하지 않은 장소입니다.")

        upper_code = normalize_code(code)
        coupon = Coupon(code=upper_code, location_id=location.id, is_used=False, created_at=utcnow())
        db.add(coupon)
        await db.commit()
        await db.refresh(coupon)

        logger.info("Coupon issued", code=upper_code, location_id=str(location.id))
        return SaveCodeResult(
            success=True,
            coupon=coupon,
            location=location,
            message=f"{location.name} 방문 쿠폰\n코드: {upper_code}\n발급이 완료되었습니다!",
        )
    except Exception as e:
        await db.rollback()
        logger.exception("Coupon save failed", code=code, location_slug=location_slug)
        return SaveCodeResult(success=False, error="코드 저장 중 오류가 발생했습니다.", details=str(e))


async def issue_coupon(db: AsyncSession, location_slug: str) -> SaveCodeResult:
    generated = await generate_code_for_location(db, location_slug)
    if not generated.success:
        return SaveCodeResult(success=False, error=generated.error)
    return await save_code_for_location(db, generated.code, location_slug)


async def validate_code_at_store(
    db: AsyncSession,
    code: str,
    store_slug: str,
    *,
    now: datetime | None = None,
) -> ValidateCodeResult:
    try:
        store = await get_store_by_slug(db, store_slug)
        if not store:
            return ValidateCodeResult(
                success=False,
                is_valid=False,
                error=f"유효하지 않은 가게입니다. (slug: {store_slug})",
                reason=REASON_STORE_NOT_FOUND,
            )

        upper_code = normalize_code(code)
        if not upper_code:
            return ValidateCodeResult(
                success=False, is_valid=False, error=MSG_EMPTY_CODE, reason=REASON_EMPTY_CODE
            )

        res = await db.execute(
            select(Coupon)
            .where(Coupon.code == upper_code)
            .where(Coupon.location_id == store.location_id)
            .limit(1)
        )
        coupon = res.scalars().first()
        if not coupon:
            # foreign or garbage code: expected outcome, not an error
            logger.info("Coupon not valid for store", code=upper_code, store_id=str(store.id))
            return ValidateCodeResult(success=True, is_valid=False, message=MSG_INVALID_COUPON)

        location = await db.get(Location, coupon.location_id)
        if not location:
            logger.warning("Coupon references a missing location", code=upper_code)
            return ValidateCodeResult(success=True, is_valid=False, message=MSG_LOCATION_MISSING)

        if coupon.is_used:
            used_at_store = await get_store_name(db, coupon.validated_by_store_id) or ELSEWHERE
            return ValidateCodeResult(
                success=True,
                is_valid=True,
                is_used=True,
                coupon=coupon,
                location=location,
                store=store,
                used_by_store_id=coupon.validated_by_store_id,
                used_at_store_name=used_at_store,
                message=f"이미 {used_at_store}에서 사용된 코드입니다.",
            )

        if location.coupon_expiry_days is not None:
            current = as_aware_utc(now) if now is not None else utcnow()
            expires_at = coupon_expires_at(coupon.created_at, location.coupon_expiry_days)
            if current > expires_at:
                issued = to_local(coupon.created_at)
                return ValidateCodeResult(
                    success=True,
                    is_valid=False,
                    coupon=coupon,
                    location=location,
                    store=store,
                    message=(
                        "쿠폰이 만료되었습니다.\n"
                        f"(발급일: {issued:%Y-%m-%d}, 만료일: {expires_at:%Y-%m-%d})"
                    ),
                )

        return ValidateCodeResult(
            success=True,
            is_valid=True,
            is_used=False,
            coupon=coupon,
            location=location,
            store=store,
            message=f"✅ {location.name} 방문이 확인되었습니다!",
        )
    except Exception:
        logger.exception("Coupon validation failed", code=code, store_slug=store_slug)
        return ValidateCodeResult(
            success=False, is_valid=False, error=MSG_VALIDATE_FAILED, reason=REASON_UNEXPECTED
        )


async def use_coupon_at_store(
    db: AsyncSession,
    code: str,
    store_slug: str,
    *,
    now: datetime | None = None,
) -> SaveCodeResult:
    try:
        verdict = await validate_code_at_store(db, code, store_slug, now=now)
        if not verdict.success or not verdict.is_valid or verdict.is_used:
            return SaveCodeResult(
                success=False, error=verdict.message or verdict.error or MSG_UNKNOWN, reason=verdict.reason
            )

        store = verdict.store
        location = verdict.location
        upper_code = normalize_code(code)
        ts = as_aware_utc(now) if now is not None else utcnow()

        # compare-and-set: only an unused row may flip
        res = await db.execute(
            update(Coupon)
            .where(Coupon.code == upper_code)
            .where(Coupon.is_used.is_(False))
            .values(is_used=True, used_at=ts, validated_at=ts, validated_by_store_id=store.id)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            logger.warning("Coupon redemption lost a race", code=upper_code, store_id=str(store.id))
            await db.rollback()
            again = await validate_code_at_store(db, upper_code, store_slug, now=now)
            return SaveCodeResult(success=False, error=again.message or again.error or MSG_UNKNOWN)

        await db.commit()

        coupon = verdict.coupon
        await db.refresh(coupon)

        logger.info("Coupon redeemed", code=upper_code, store_id=str(store.id), location_id=str(location.id))
        return SaveCodeResult(
            success=True,
            coupon=coupon,
            location=location,
            store=store,
            message=f"✅ {location.name} 방문 쿠폰이 {store.name}에서 사용 완료되었습니다!",
        )
    except Exception:
        await db.rollback()
        logger.exception("Coupon redemption failed", code=code, store_slug=store_slug)
        return SaveCodeResult(success=False, error=MSG_USE_FAILED, reason=REASON_UNEXPECTED)


async def _coupon_details(db: AsyncSession, coupon: Coupon) -> CouponDetails:
    location = await db.get(Location, coupon.location_id)
    validated_by = await db.get(Store, coupon.validated_by_store_id) if coupon.validated_by_store_id else None
    return CouponDetails(coupon=coupon, location=location, validated_by_store=validated_by)


async def get_coupon_by_code(db: AsyncSession, code: str) -> CouponLookup:
    try:
        res = await db.execute(select(Coupon).where(Coupon.code == normalize_code(code)).limit(1))
        coupon = res.scalars().first()
        if not coupon:
            return CouponLookup(data=None, error="쿠폰을 찾을 수 없습니다.")
        return CouponLookup(data=await _coupon_details(db, coupon))
    except Exception:
        logger.exception("Coupon lookup failed", code=code)
        return CouponLookup(data=None, error="쿠폰 조회 중 오류가 발생했습니다.")


async def get_coupon_by_store_and_code(db: AsyncSession, store_slug: str, code: str) -> CouponLookup:
    try:
        store = await get_store_by_slug(db, store_slug)
        if not store:
            return CouponLookup(data=None, error="매장을 찾을 수 없습니다.")

        res = await db.execute(
            select(Coupon)
            .where(Coupon.code == normalize_code(code))
            .where(Coupon.location_id == store.location_id)
            .limit(1)
        )
        coupon = res.scalars().first()
        if not coupon:
            return CouponLookup(data=None, error="쿠폰을 찾을 수 없습니다.")
        return CouponLookup(data=await _coupon_details(db, coupon))
    except Exception:
        logger.exception("Coupon lookup failed", code=code, store_slug=store_slug)
        return CouponLookup(data=None, error="쿠폰 조회 중 오류가 발생했습니다.")


async def get_location_stats(db: AsyncSession, location_slug: str) -> LocationStats | None:
    location = await get_location_by_slug(db, location_slug)
    if not location:
        return None

    res = await db.execute(
        select(
            func.count(Coupon.id),
            func.coalesce(func.sum(case((Coupon.is_used.is_(True), 1), else_=0)), 0),
        ).where(Coupon.location_id == location.id)
    )
    total, used = res.one()
    total = int(total or 0)
    used = int(used or 0)

    return LocationStats(
        location=location,
        total=total,
        used=used,
        unused=total - used,
        usage_rate=int(used * 100 / total + 0.5) if total > 0 else 0,
    )


async def get_store_stats(db: AsyncSession, store_slug: str) -> StoreStats | None:
    store = await get_store_by_slug(db, store_slug)
    if not store:
        return None

    res = await db.execute(select(func.count(Coupon.id)).where(Coupon.validated_by_store_id == store.id))
    return StoreStats(store=store, validated=int(res.scalar_one() or 0))
