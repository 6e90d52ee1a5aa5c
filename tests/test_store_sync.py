import json

import pytest
from sqlalchemy import select

from conftest import make_location
from minglz.models.store import Store
from minglz.services.store_sync import (
    HOST_STORE_DESCRIPTION,
    ensure_location,
    generate_store_slug,
    store_entries,
    sync_stores,
)


@pytest.mark.parametrize(
    "name, index, expected",
    [
        ("Blue Bottle", 0, "fest-blue-bottle"),
        ("  Cafe   Latte!! ", 1, "fest-cafe-latte"),
        ("A--B__C", 0, "fest-a-b__c"),
        ("카페 모카", 2, "fest-store-3"),
        ("Cafe 모카", 0, "fest-store-1"),
        ("!!!", 4, "fest-store-5"),
    ],
)
def test_generate_store_slug(name, index, expected):
    assert generate_store_slug(name, "fest", index) == expected


def test_store_entries_skip_blank_names():
    entries = store_entries(
        {"stores": [{"id": 1, "name": "Cafe"}, {"name": "   "}, {"id": 2}, {"id": "t3", "name": "Bar", "extra": 1}]}
    )
    assert [e.name for e in entries] == ["Cafe", "Bar"]
    assert store_entries({"stores": "nope"}) == []
    assert store_entries(None) == []


async def _stores(db, location_id):
    res = await db.execute(select(Store).where(Store.location_id == location_id).order_by(Store.slug))
    return list(res.scalars().all())


async def test_sync_creates_stores_with_temp_id_descriptions(db):
    loc = await make_location(db, slug="fest")
    config = {
        "stores": [
            {"id": "tmp-1", "name": "Blue Bottle", "benefit": "Free cookie"},
            {"id": "tmp-2", "name": "카페 모카", "description": "10% off"},
            {"name": "No Id"},
        ]
    }
    await sync_stores(db, location=loc, domain_code="fest", event_name="Fest", event_info_config=config)
    await db.commit()

    stores = {s.slug: s for s in await _stores(db, loc.id)}
    assert set(stores) == {"fest-blue-bottle", "fest-store-2", "fest-no-id"}
    assert json.loads(stores["fest-blue-bottle"].description) == {"tempId": "tmp-1", "description": "Free cookie"}
    assert json.loads(stores["fest-store-2"].description) == {"tempId": "tmp-2", "description": "10% off"}
    assert stores["fest-no-id"].description is None


async def test_sync_replaces_previous_stores(db):
    loc = await make_location(db, slug="fest")
    await sync_stores(
        db, location=loc, domain_code="fest", event_name="Fest",
        event_info_config={"stores": [{"name": "Old"}]},
    )
    await sync_stores(
        db, location=loc, domain_code="fest", event_name="Fest",
        event_info_config={"stores": [{"name": "New"}, {"name": "new"}]},
    )
    await db.commit()

    slugs = [s.slug for s in await _stores(db, loc.id)]
    assert slugs == ["fest-new", "fest-store-2"]


async def test_host_store_mode_keeps_single_store(db):
    loc = await make_location(db, slug="fest")
    await sync_stores(
        db, location=loc, domain_code="fest", event_name="Fest",
        event_info_config={"stores": [{"name": "Cafe"}]},
    )
    await sync_stores(
        db, location=loc, domain_code="fest", event_name="Spring Fest",
        event_info_config={"is_host_same_as_store": True, "stores": [{"name": "Cafe"}]},
    )
    await db.commit()

    stores = await _stores(db, loc.id)
    assert len(stores) == 1
    assert stores[0].slug == "fest"
    assert stores[0].name == "Spring Fest"
    assert stores[0].description == HOST_STORE_DESCRIPTION


async def test_ensure_location_creates_then_renames(db):
    created = await ensure_location(db, slug="fest", name="Fest")
    await db.commit()

    again = await ensure_location(db, slug="fest", name="Fest 2024")
    await db.commit()

    assert again.id == created.id
    assert again.name == "Fest 2024"
