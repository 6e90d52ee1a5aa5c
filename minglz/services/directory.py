# minglz/services/directory.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.models.location import Location
from minglz.models.store import Store


@dataclass(frozen=True)
class SlugKey:
    value: str


@dataclass(frozen=True)
class TempIdKey:
    """Editor-issued temporary id kept inside a legacy store's description JSON."""

    value: str


StoreKey = Union[SlugKey, TempIdKey]


def extract_temp_id(description: str | None) -> str | None:
    if not description:
        return None
    try:
        parsed = json.loads(description)
    except (TypeError, ValueError):
        # plain-text description
        return None
    if not isinstance(parsed, dict):
        return None
    temp_id = parsed.get("tempId")
    return str(temp_id) if temp_id is not None else None


async def get_location_by_slug(db: AsyncSession, slug: str) -> Location | None:
    stmt = (
        select(Location)
        .where(Location.slug == slug)
        .where(Location.is_active.is_(True))
        .limit(2)
    )
    res = await db.execute(stmt)
    rows = list(res.scalars().all())

    if not rows:
        logger.debug("No location found", slug=slug)
        return None

    if len(rows) > 1:
        logger.warning("Multiple locations found for slug", slug=slug)

    return rows[0]


async def _store_by_slug(db: AsyncSession, slug: str) -> Store | None:
    res = await db.execute(
        select(Store).where(Store.slug == slug).where(Store.is_active.is_(True)).limit(1)
    )
    return res.scalars().first()


async def _store_by_temp_id(db: AsyncSession, temp_id: str) -> Store | None:
    # O(active stores); only unmigrated records need this path
    res = await db.execute(
        select(Store).where(Store.is_active.is_(True)).where(Store.description.is_not(None))
    )
    for store in res.scalars().all():
        if extract_temp_id(store.description) == temp_id:
            return store
    return None


async def resolve_store(db: AsyncSession, key: StoreKey) -> Store | None:
    if isinstance(key, SlugKey):
        return await _store_by_slug(db, key.value)
    return await _store_by_temp_id(db, key.value)


async def get_store_by_slug(db: AsyncSession, identifier: str) -> Store | None:
    """
    Resolve a store by its canonical slug, falling back to the legacy temp id.
    Blank identifiers resolve to nothing.
    """
    ident = (identifier or "").strip()
    if not ident:
        return None

    for key in (SlugKey(ident), TempIdKey(ident)):
        store = await resolve_store(db, key)
        if store is not None:
            logger.debug("Store resolved", identifier=ident, via=type(key).__name__, store_id=str(store.id))
            return store

    logger.info("No store found for identifier", identifier=ident)
    return None


async def get_store_name(db: AsyncSession, store_id) -> str | None:
    if store_id is None:
        return None
    res = await db.execute(select(Store.name).where(Store.id == store_id))
    return res.scalar_one_or_none()


async def list_location_stores(db: AsyncSession, location_id, *, active_only: bool = True) -> list[Store]:
    stmt = select(Store).where(Store.location_id == location_id)
    if active_only:
        stmt = stmt.where(Store.is_active.is_(True))
    stmt = stmt.order_by(Store.created_at.asc(), Store.slug.asc())
    res = await db.execute(stmt)
    return list(res.scalars().all())
