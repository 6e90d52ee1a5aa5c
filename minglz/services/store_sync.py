# minglz/services/store_sync.py
from __future__ import annotations

import json
import re
from typing import Any

from loguru import logger
from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.models.location import Location
from minglz.models.store import Store
from minglz.schemas.events import StoreEntry

HOST_STORE_DESCRIPTION = json.dumps({"is_host_store": True})
DEFAULT_HOST_STORE_NAME = "이벤트 주최처"

_HANGUL = re.compile(r"[가-힣]")
_DISALLOWED = re.compile(r"[^A-Za-z0-9_\s\-가-힣]")


def generate_store_slug(name: str, domain_code: str, index: int) -> str:
    """
    `{domain_code}-{cleaned name}`; falls back to `{domain_code}-store-{index+1}`
    when nothing ASCII survives cleaning.
    """
    cleaned = _DISALLOWED.sub("", name.lower().strip())
    cleaned = re.sub(r"\s+", "-", cleaned)
    cleaned = re.sub(r"-+", "-", cleaned).strip("-")

    if not cleaned or _HANGUL.search(cleaned):
        return f"{domain_code}-store-{index + 1}"

    return f"{domain_code}-{cleaned}"


def store_entries(event_info_config: dict[str, Any] | None) -> list[StoreEntry]:
    raw = (event_info_config or {}).get("stores")
    if not isinstance(raw, list):
        return []

    entries: list[StoreEntry] = []
    for item in raw:
        try:
            entry = StoreEntry.model_validate(item)
        except ValidationError:
            logger.warning("Skipping malformed store entry", entry=item)
            continue
        if entry.name and entry.name.strip():
            entries.append(entry)
    return entries


def _entry_description(entry: StoreEntry) -> str | None:
    text = entry.benefit or entry.description or None
    if entry.id is None or entry.id == "":
        return text
    return json.dumps({"tempId": str(entry.id), "description": text}, ensure_ascii=False)


async def ensure_location(
    db: AsyncSession,
    *,
    slug: str,
    name: str,
    description: str | None = None,
) -> Location:
    """Find the location keyed by the event's domain code, creating it if missing."""
    res = await db.execute(select(Location).where(Location.slug == slug))
    loc = res.scalar_one_or_none()

    if loc is None:
        loc = Location(slug=slug, name=name, description=description, is_active=True)
        db.add(loc)
        await db.flush()
        logger.info("Location created", slug=slug)
    elif loc.name != name:
        loc.name = name

    return loc


async def sync_stores(
    db: AsyncSession,
    *,
    location: Location,
    domain_code: str,
    event_name: str,
    event_info_config: dict[str, Any] | None,
) -> list[Store]:
    """
    Replace the location's stores with the set described by event_info_config.
    Caller owns the transaction.
    """
    config = event_info_config or {}

    if config.get("is_host_same_as_store"):
        await db.execute(
            delete(Store)
            .where(Store.location_id == location.id)
            .where(Store.slug != domain_code)
        )

        res = await db.execute(select(Store).where(Store.slug == domain_code))
        host = res.scalar_one_or_none()
        if host is None:
            host = Store(
                location_id=location.id,
                name=event_name or DEFAULT_HOST_STORE_NAME,
                slug=domain_code,
                description=HOST_STORE_DESCRIPTION,
                is_active=True,
            )
            db.add(host)
        else:
            host.location_id = location.id
            host.name = event_name or DEFAULT_HOST_STORE_NAME
            host.description = HOST_STORE_DESCRIPTION
            host.is_active = True

        await db.flush()
        logger.info("Host store synced", slug=domain_code)
        return [host]

    await db.execute(delete(Store).where(Store.location_id == location.id))

    stores: list[Store] = []
    used_slugs: set[str] = set()
    for index, entry in enumerate(store_entries(config)):
        slug = generate_store_slug(entry.name, domain_code, index)
        if slug in used_slugs:
            # two entries cleaned to the same name
            slug = f"{domain_code}-store-{index + 1}"
        used_slugs.add(slug)

        store = Store(
            location_id=location.id,
            name=entry.name.strip(),
            slug=slug,
            description=_entry_description(entry),
            is_active=True,
        )
        db.add(store)
        stores.append(store)

    await db.flush()
    logger.info("Stores synced", domain_code=domain_code, count=len(stores))
    return stores
