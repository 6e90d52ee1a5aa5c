# minglz/services/stats.py
"""
Read-only reporting over page visits and the coupon ledger, per event of
one account. Period boundaries and hourly buckets use APP_TIMEZONE.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.timeutils import local_tz, to_local, utcnow
from minglz.models.coupon import Coupon
from minglz.models.event import Event
from minglz.models.location import Location
from minglz.models.page_visit import PageVisit
from minglz.models.store import Store
from minglz.schemas.stats import EventHighlight, EventStats, HourlyPoint, StatsOut, StatsRange, StoreUsage

ALL_EVENTS = "전체"

FIRST_HOUR = 10  # 10am
HOUR_BUCKETS = 12  # through 9pm

_END_OF_DAY = time(23, 59, 59, 999000)


def hour_label(hour: int) -> str:
    if hour < 12:
        return f"{hour}am"
    if hour == 12:
        return "12pm"
    return f"{hour - 12}pm"


def _local_day_bounds(start_day: date, end_day: date) -> tuple[datetime, datetime]:
    tz = local_tz()
    return (
        datetime.combine(start_day, time.min, tzinfo=tz),
        datetime.combine(end_day, _END_OF_DAY, tzinfo=tz),
    )


def resolve_range(
    period: str,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Optional[tuple[datetime, datetime]]:
    """
    Local-time [start, end] for a named period. An explicit start/end pair
    wins; an unknown period with no dates means "all time" (None).
    """
    if start_date and end_date:
        if start_date > end_date:
            raise HTTPException(status_code=400, detail="시작일이 종료일보다 늦을 수 없습니다.")
        return _local_day_bounds(start_date, end_date)

    today = to_local(now or utcnow()).date()

    if period == "today":
        return _local_day_bounds(today, today)
    if period == "yesterday":
        y = today - timedelta(days=1)
        return _local_day_bounds(y, y)
    if period == "thisWeek":
        # weeks start on Sunday
        since_sunday = (today.weekday() + 1) % 7
        return _local_day_bounds(today - timedelta(days=since_sunday), today)
    if period == "thisMonth":
        return _local_day_bounds(today.replace(day=1), today)
    return None


def conversion_rate(issued: int, used: int) -> float:
    if issued <= 0:
        return 0.0
    return round(used / issued * 100, 1)


def _in_range(column, bounds):
    if bounds is None:
        return []
    start, end = (b.astimezone(timezone.utc) for b in bounds)
    return [column >= start, column <= end]


def _bucket(ts: datetime) -> Optional[int]:
    idx = to_local(ts).hour - FIRST_HOUR
    if 0 <= idx < HOUR_BUCKETS:
        return idx
    return None


async def _timestamps(db: AsyncSession, column, *filters) -> list[datetime]:
    res = await db.execute(select(column).where(*filters))
    return [ts for ts in res.scalars().all() if ts is not None]


async def event_stats(db: AsyncSession, event: Event, bounds) -> EventStats:
    hourly = [HourlyPoint(hour=hour_label(FIRST_HOUR + i)) for i in range(HOUR_BUCKETS)]

    visits = await _timestamps(
        db,
        PageVisit.visited_at,
        PageVisit.event_id == event.id,
        *_in_range(PageVisit.visited_at, bounds),
    )
    for ts in visits:
        idx = _bucket(ts)
        if idx is not None:
            hourly[idx].inflow += 1

    issued: list[datetime] = []
    used: list[datetime] = []
    stores: list[StoreUsage] = []

    res = await db.execute(select(Location).where(Location.slug == event.domain_code))
    location = res.scalar_one_or_none()
    if location is not None:
        issued = await _timestamps(
            db,
            Coupon.created_at,
            Coupon.location_id == location.id,
            *_in_range(Coupon.created_at, bounds),
        )
        used = await _timestamps(
            db,
            Coupon.used_at,
            Coupon.location_id == location.id,
            Coupon.is_used.is_(True),
            *_in_range(Coupon.used_at, bounds),
        )

        # range goes in the ON clause so stores without redemptions still show up
        joined = and_(
            Coupon.validated_by_store_id == Store.id,
            Coupon.is_used.is_(True),
            *_in_range(Coupon.used_at, bounds),
        )
        res = await db.execute(
            select(Store.id, Store.name, Store.slug, func.count(Coupon.id))
            .select_from(Store)
            .outerjoin(Coupon, joined)
            .where(Store.location_id == location.id)
            .group_by(Store.id, Store.name, Store.slug)
            .order_by(Store.slug.asc())
        )
        stores = [
            StoreUsage(store_id=sid, name=name, slug=slug, validated=int(cnt or 0))
            for sid, name, slug, cnt in res.all()
        ]

    for ts in issued:
        idx = _bucket(ts)
        if idx is not None:
            hourly[idx].issuance += 1
    for ts in used:
        idx = _bucket(ts)
        if idx is not None:
            hourly[idx].usage += 1

    return EventStats(
        id=event.id,
        name=event.name,
        domain_code=event.domain_code,
        conversion_rate=conversion_rate(len(issued), len(used)),
        total_inflow=len(visits),
        coupon_issued=len(issued),
        coupon_used=len(used),
        hourly_data=hourly,
        stores=stores,
    )


def _highlight(stats: EventStats) -> EventHighlight:
    return EventHighlight(
        id=stats.id,
        name=stats.name,
        conversion_rate=stats.conversion_rate,
        total_inflow=stats.total_inflow,
        coupon_issued=stats.coupon_issued,
        coupon_used=stats.coupon_used,
    )


def pick_best_worst(events: list[EventStats]) -> tuple[Optional[EventHighlight], Optional[EventHighlight]]:
    """Ties go to the event listed first."""
    if not events:
        return None, None

    best = events[0]
    worst = events[0]
    for e in events[1:]:
        if e.conversion_rate > best.conversion_rate:
            best = e
        if e.conversion_rate < worst.conversion_rate:
            worst = e
    return _highlight(best), _highlight(worst)


async def get_stats(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    event_id: Optional[str] = None,
    period: str = "today",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> StatsOut:
    bounds = resolve_range(period, start_date=start_date, end_date=end_date, now=now)

    stmt = select(Event).where(Event.user_id == user_id)
    if event_id and event_id != ALL_EVENTS:
        try:
            stmt = stmt.where(Event.id == uuid.UUID(event_id))
        except ValueError:
            raise HTTPException(status_code=400, detail="잘못된 이벤트 ID입니다.")
    res = await db.execute(stmt.order_by(Event.created_at.desc()))
    events = list(res.scalars().all())

    per_event = [await event_stats(db, e, bounds) for e in events]
    best, worst = pick_best_worst(per_event)

    return StatsOut(
        period=period,
        range=StatsRange(start=bounds[0], end=bounds[1]) if bounds else None,
        total_events=len(per_event),
        events=per_event,
        best_event=best,
        worst_event=worst,
    )
