from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException

from conftest import auth_headers, make_location, make_store
from minglz.models.coupon import Coupon
from minglz.models.event import Event
from minglz.models.page_visit import PageVisit
from minglz.services.stats import conversion_rate, get_stats, hour_label, resolve_range

SEOUL = ZoneInfo("Asia/Seoul")


def kst(*args) -> datetime:
    return datetime(*args, tzinfo=SEOUL).astimezone(timezone.utc)


@pytest.mark.parametrize("hour, label", [(10, "10am"), (11, "11am"), (12, "12pm"), (13, "1pm"), (21, "9pm")])
def test_hour_label(hour, label):
    assert hour_label(hour) == label


def test_conversion_rate():
    assert conversion_rate(0, 0) == 0.0
    assert conversion_rate(3, 1) == 33.3
    assert conversion_rate(2, 2) == 100.0


def test_resolve_named_periods():
    # Wednesday
    now = datetime(2024, 3, 6, 9, 0, tzinfo=SEOUL)

    start, end = resolve_range("today", now=now)
    assert start == datetime(2024, 3, 6, tzinfo=SEOUL)
    assert end.date() == date(2024, 3, 6) and end.hour == 23

    start, _ = resolve_range("yesterday", now=now)
    assert start.date() == date(2024, 3, 5)

    start, end = resolve_range("thisWeek", now=now)
    assert start.date() == date(2024, 3, 3)
    assert end.date() == date(2024, 3, 6)

    start, _ = resolve_range("thisMonth", now=now)
    assert start.date() == date(2024, 3, 1)

    assert resolve_range("allTime", now=now) is None


def test_resolve_this_week_on_sunday_starts_today():
    start, _ = resolve_range("thisWeek", now=datetime(2024, 3, 3, 12, 0, tzinfo=SEOUL))
    assert start.date() == date(2024, 3, 3)


def test_explicit_dates_win_and_are_validated():
    start, end = resolve_range("today", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    assert (start.date(), end.date()) == (date(2024, 1, 1), date(2024, 1, 31))

    with pytest.raises(HTTPException) as exc:
        resolve_range("today", start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))
    assert exc.value.status_code == 400


async def _seed(db, owner):
    spring = Event(user_id=owner.id, name="Spring", domain_code="spring")
    autumn = Event(user_id=owner.id, name="Autumn", domain_code="autumn")
    db.add_all([spring, autumn])
    await db.commit()

    spring_loc = await make_location(db, slug="spring")
    autumn_loc = await make_location(db, slug="autumn")
    cafe = await make_store(db, spring_loc, "spring-cafe", name="Cafe")
    await make_store(db, spring_loc, "spring-bar", name="Bar")

    db.add_all(
        [
            PageVisit(event_id=spring.id, domain_code="spring", visited_at=kst(2024, 3, 5, 11, 30)),
            PageVisit(event_id=spring.id, domain_code="spring", visited_at=kst(2024, 3, 5, 11, 45)),
            PageVisit(event_id=spring.id, domain_code="spring", visited_at=kst(2024, 3, 5, 22, 0)),
            PageVisit(event_id=autumn.id, domain_code="autumn", visited_at=kst(2024, 3, 5, 15, 0)),
            Coupon(code="SPRING01", location_id=spring_loc.id, created_at=kst(2024, 3, 5, 10, 15)),
            Coupon(
                code="SPRING02",
                location_id=spring_loc.id,
                created_at=kst(2024, 3, 5, 10, 20),
                is_used=True,
                used_at=kst(2024, 3, 5, 13, 0),
                validated_at=kst(2024, 3, 5, 13, 0),
                validated_by_store_id=cafe.id,
            ),
            Coupon(code="AUTUMN01", location_id=autumn_loc.id, created_at=kst(2024, 3, 5, 16, 0)),
            # outside the range
            Coupon(code="SPRING03", location_id=spring_loc.id, created_at=kst(2024, 3, 7, 12, 0)),
        ]
    )
    await db.commit()
    return spring, autumn


async def test_stats_for_a_day(db, owner):
    spring, autumn = await _seed(db, owner)

    stats = await get_stats(db, user_id=owner.id, start_date=date(2024, 3, 5), end_date=date(2024, 3, 5))
    assert stats.total_events == 2
    by_code = {e.domain_code: e for e in stats.events}

    s = by_code["spring"]
    assert (s.total_inflow, s.coupon_issued, s.coupon_used) == (3, 2, 1)
    assert s.conversion_rate == 50.0
    assert len(s.hourly_data) == 12
    assert s.hourly_data[0].hour == "10am" and s.hourly_data[0].issuance == 2
    assert s.hourly_data[1].inflow == 2
    assert s.hourly_data[3].hour == "1pm" and s.hourly_data[3].usage == 1
    # 10pm falls outside the buckets but still counts
    assert sum(p.inflow for p in s.hourly_data) == 2
    assert {u.slug: u.validated for u in s.stores} == {"spring-bar": 0, "spring-cafe": 1}

    a = by_code["autumn"]
    assert (a.total_inflow, a.coupon_issued, a.coupon_used, a.conversion_rate) == (1, 1, 0, 0.0)

    assert stats.best_event.id == spring.id
    assert stats.worst_event.id == autumn.id


async def test_stats_filtered_to_one_event(db, owner):
    spring, _ = await _seed(db, owner)

    stats = await get_stats(db, user_id=owner.id, event_id=str(spring.id), period="unknown")
    assert [e.name for e in stats.events] == ["Spring"]
    # all time
    assert stats.range is None
    assert stats.events[0].coupon_issued == 3

    everything = await get_stats(db, user_id=owner.id, event_id="전체", period="unknown")
    assert everything.total_events == 2


async def test_stats_with_no_events(db, owner):
    stats = await get_stats(db, user_id=owner.id)
    assert stats.total_events == 0
    assert stats.best_event is None and stats.worst_event is None


async def test_stats_bad_event_id(db, owner):
    with pytest.raises(HTTPException) as exc:
        await get_stats(db, user_id=owner.id, event_id="not-a-uuid")
    assert exc.value.status_code == 400


async def test_stats_endpoints(client, db, owner):
    await _seed(db, owner)
    params = {"start_date": "2024-03-05", "end_date": "2024-03-05"}

    r = await client.get("/api/stats", params=params, headers=auth_headers(owner))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total_events"] == 2
    assert data["best_event"]["name"] == "Spring"

    pdf = await client.get("/api/stats/report.pdf", params=params, headers=auth_headers(owner))
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.content.startswith(b"%PDF")

    assert (await client.get("/api/stats")).status_code == 401
