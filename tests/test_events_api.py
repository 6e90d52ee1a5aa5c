import json

from sqlalchemy import func, select

from conftest import auth_headers, make_user
from minglz.models.coupon import Coupon
from minglz.models.landing_page import LandingPage, PageContent
from minglz.models.location import Location
from minglz.models.page_visit import PageVisit
from minglz.models.store import Store


def _payload(**overrides):
    body = {
        "name": "Spring Fest",
        "domain_code": "spring",
        "background_color": "#101010",
        "description": "A spring event",
        "coupon_preview_image_url": "https://storage.test/storage/v1/object/public/event-images/landing-pages/u/1-a.png",
        "event_info_config": {
            "stores": [
                {"id": "tmp-1", "name": "Blue Bottle", "benefit": "Free cookie"},
                {"id": "tmp-2", "name": "카페", "benefit": "10% off"},
            ]
        },
        "editor_state": {
            "page_selections": {"1": {"page_type": "표지", "template_type": "유형2"}},
            "page_background_colors": {"1": "#FFFFFF"},
            "fields": {
                "1": {
                    "title": {"value": "Hello", "color": "#FF0000"},
                    "hero": {"value": "landing-pages/u/2-b.jpg"},
                    "empty": {"value": ""},
                }
            },
        },
    }
    body.update(overrides)
    return body


async def _create(client, owner, **overrides):
    r = await client.post("/api/events", json=_payload(**overrides), headers=auth_headers(owner))
    assert r.status_code == 200, r.text
    return r.json()["data"]


async def test_create_requires_auth(client):
    r = await client.post("/api/events", json=_payload())
    assert r.status_code == 401
    assert r.json()["success"] is False


async def test_create_event_builds_location_stores_and_pages(client, owner, db):
    data = await _create(client, owner)
    assert data["domain_code"] == "spring"

    location = (await db.execute(select(Location).where(Location.slug == "spring"))).scalar_one()
    assert location.name == "Spring Fest"

    stores = (await db.execute(select(Store).where(Store.location_id == location.id))).scalars().all()
    assert sorted(s.slug for s in stores) == ["spring-blue-bottle", "spring-store-2"]

    page_count = (await db.execute(select(func.count(LandingPage.id)))).scalar_one()
    assert page_count == 5
    contents = (await db.execute(select(PageContent.field_id))).scalars().all()
    assert sorted(contents) == ["hero", "title"]


async def test_create_validation_errors(client, owner):
    r = await client.post("/api/events", json=_payload(name="  "), headers=auth_headers(owner))
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "이벤트 이름과 도메인 코드는 필수입니다."}

    await _create(client, owner)
    dup = await client.post("/api/events", json=_payload(), headers=auth_headers(owner))
    assert dup.status_code == 400
    assert dup.json()["error"] == "이미 사용 중인 도메인 코드입니다."


async def test_check_domain_code(client, owner):
    headers = auth_headers(owner)

    r = await client.get("/api/events/check-domain-code", params={"code": "spring"}, headers=headers)
    assert r.json()["available"] is True

    await _create(client, owner)
    r = await client.get("/api/events/check-domain-code", params={"code": " spring "}, headers=headers)
    assert r.status_code == 200
    assert r.json()["available"] is False

    r = await client.get("/api/events/check-domain-code", params={"code": ""}, headers=headers)
    assert r.status_code == 400
    assert r.json()["available"] is False


async def test_list_and_detail_are_owner_scoped(client, owner, db):
    data = await _create(client, owner)
    other = await make_user(db, email="other@example.com")

    mine = await client.get("/api/events", headers=auth_headers(owner))
    assert [e["domain_code"] for e in mine.json()["data"]] == ["spring"]

    theirs = await client.get("/api/events", headers=auth_headers(other))
    assert theirs.json()["data"] == []

    r = await client.get(f"/api/events/{data['event_id']}", headers=auth_headers(other))
    assert r.status_code == 404

    detail = (await client.get(f"/api/events/{data['event_id']}", headers=auth_headers(owner))).json()["data"]
    assert len(detail["landing_pages"]) == 5
    assert sorted(s["slug"] for s in detail["stores"]) == ["spring-blue-bottle", "spring-store-2"]
    assert detail["editor_state"]["fields"]["1"]["title"] == {"value": "Hello", "color": "#FF0000", "visible": True}
    assert detail["editor_state"]["page_selections"]["1"]["template_type"] == "유형2"


async def test_update_event_switches_to_host_store(client, owner, db):
    data = await _create(client, owner)

    r = await client.put(
        f"/api/events/{data['event_id']}",
        json={"name": "Summer Fest", "event_info_config": {"is_host_same_as_store": True}},
        headers=auth_headers(owner),
    )
    assert r.status_code == 200, r.text
    body = r.json()["data"]
    assert body["name"] == "Summer Fest"
    # untouched fields keep their values
    assert body["description"] == "A spring event"

    stores = (await db.execute(select(Store))).scalars().all()
    assert [(s.slug, s.name) for s in stores] == [("spring", "Summer Fest")]
    assert json.loads(stores[0].description) == {"is_host_store": True}


async def test_update_domain_code_moves_location(client, owner, db):
    data = await _create(client, owner)

    r = await client.put(
        f"/api/events/{data['event_id']}",
        json={"domain_code": "autumn"},
        headers=auth_headers(owner),
    )
    assert r.status_code == 200, r.text

    slugs = (await db.execute(select(Location.slug))).scalars().all()
    assert slugs == ["autumn"]
    store_slugs = sorted((await db.execute(select(Store.slug))).scalars().all())
    assert store_slugs == ["autumn-blue-bottle", "autumn-store-2"]


async def test_update_replaces_pages(client, owner, db):
    data = await _create(client, owner)

    r = await client.put(
        f"/api/events/{data['event_id']}",
        json={"landing_pages": [{"page_number": 1, "page_type": "표지", "contents": [{"field_id": "only", "field_value": "x"}]}]},
        headers=auth_headers(owner),
    )
    assert r.status_code == 200

    assert (await db.execute(select(func.count(LandingPage.id)))).scalar_one() == 1
    assert (await db.execute(select(PageContent.field_id))).scalars().all() == ["only"]


async def test_delete_event_cleans_up(client, owner, db, storage):
    data = await _create(client, owner)
    headers = auth_headers(owner)

    issued = await client.post("/api/coupons/issue", json={"location_slug": "spring"})
    assert issued.status_code == 200
    await client.post("/api/public/events/spring/track-visit")

    other = await make_user(db, email="other@example.com")
    denied = await client.delete(f"/api/events/{data['event_id']}", headers=auth_headers(other))
    assert denied.status_code == 404

    r = await client.delete(f"/api/events/{data['event_id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["success"] is True

    assert sorted(storage.removed) == ["landing-pages/u/1-a.png", "landing-pages/u/2-b.jpg"]
    for model in (Location, Store, Coupon, LandingPage, PageContent, PageVisit):
        assert (await db.execute(select(func.count()).select_from(model))).scalar_one() == 0

    gone = await client.get(f"/api/events/{data['event_id']}", headers=headers)
    assert gone.status_code == 404


async def test_public_event_and_visit_tracking(client, owner, db):
    await _create(client, owner)

    r = await client.get("/api/public/events/spring")
    assert r.status_code == 200
    event = r.json()["data"]
    assert event["name"] == "Spring Fest"
    assert len(event["landing_pages"]) == 5

    missing = await client.get("/api/public/events/nope")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "이벤트를 찾을 수 없습니다."}

    r = await client.post(
        "/api/public/events/spring/track-visit",
        headers={
            "X-Forwarded-For": "203.0.113.7, 10.0.0.1",
            "User-Agent": "pytest-agent",
            "Referer": "https://instagram.com/",
        },
    )
    assert r.status_code == 200
    assert r.json() == {"success": True}

    visit = (await db.execute(select(PageVisit))).scalar_one()
    assert visit.ip_address == "203.0.113.7"
    assert visit.user_agent == "pytest-agent"
    assert visit.referer == "https://instagram.com/"
    assert visit.domain_code == "spring"

    assert (await client.post("/api/public/events/nope/track-visit")).status_code == 404
