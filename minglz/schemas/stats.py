# minglz/schemas/stats.py
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class HourlyPoint(BaseModel):
    hour: str  # "10am" .. "9pm"
    inflow: int = 0
    issuance: int = 0
    usage: int = 0


class StoreUsage(BaseModel):
    store_id: UUID
    name: str
    slug: str
    validated: int = 0


class EventHighlight(BaseModel):
    id: UUID
    name: str
    conversion_rate: float
    total_inflow: int
    coupon_issued: int
    coupon_used: int


class EventStats(EventHighlight):
    domain_code: str
    hourly_data: list[HourlyPoint]
    stores: list[StoreUsage] = []


class StatsRange(BaseModel):
    start: datetime
    end: datetime


class StatsOut(BaseModel):
    period: str
    range: StatsRange | None = None
    total_events: int
    events: list[EventStats]
    best_event: EventHighlight | None = None
    worst_event: EventHighlight | None = None
