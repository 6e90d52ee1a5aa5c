# minglz/services/events.py
"""
Event administration: an event owns its landing pages and, through its
domain code, the coupon location and that location's stores.
"""
from __future__ import annotations

import uuid

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.integrations.storage_client import StorageClient
from minglz.models.coupon import Coupon
from minglz.models.event import Event
from minglz.models.location import Location
from minglz.models.page_visit import PageVisit
from minglz.models.store import Store
from minglz.schemas.events import (
    DomainCodeCheck,
    EventBase,
    EventCreate,
    EventDetail,
    EventUpdate,
    PublicEventOut,
    TrackVisitResult,
)
from minglz.schemas.coupons import StoreOut
from minglz.schemas.landing_pages import LandingPageRecord
from minglz.services.directory import list_location_stores
from minglz.services.landing_pages import (
    content_values,
    delete_landing_pages,
    insert_landing_pages,
    load_landing_pages,
    replace_landing_pages,
)
from minglz.services.page_converter import from_flat_state, to_editor_state, to_relational
from minglz.services.store_sync import ensure_location, sync_stores

MSG_REQUIRED = "이벤트 이름과 도메인 코드는 필수입니다."
MSG_DOMAIN_TAKEN = "이미 사용 중인 도메인 코드입니다."
MSG_DOMAIN_AVAILABLE = "사용 가능한 도메인 코드입니다."
MSG_DOMAIN_EMPTY = "도메인 코드를 입력해주세요."
MSG_NOT_FOUND = "이벤트를 찾을 수 없습니다."
MSG_NOT_OWNED = "이벤트를 찾을 수 없거나 권한이 없습니다."
MSG_CREATE_FAILED = "이벤트 생성에 실패했습니다."
MSG_UPDATE_FAILED = "이벤트 수정에 실패했습니다."
MSG_DELETE_FAILED = "이벤트 삭제에 실패했습니다."
MSG_VISIT_FAILED = "방문 로그 저장에 실패했습니다."

IMAGE_MARKERS = ("storage/v1/object/public/", ".png", ".jpg", ".jpeg")

# columns copied verbatim from the payload when present
_PLAIN_FIELDS = (
    "start_date",
    "end_date",
    "description",
    "content_html",
    "coupon_preview_image_url",
    "mission_config",
    "event_info_config",
)


def resolve_page_records(data: EventBase) -> list[LandingPageRecord] | None:
    """Relational records win over editor state; None means 'leave pages alone'."""
    if data.landing_pages is not None:
        return data.landing_pages
    if data.editor_state is not None:
        return to_relational(data.editor_state)
    if data.flat_editor_state is not None:
        return to_relational(from_flat_state(data.flat_editor_state))
    return None


async def _domain_code_taken(db: AsyncSession, code: str, *, exclude_id: uuid.UUID | None = None) -> bool:
    stmt = select(Event.id).where(Event.domain_code == code)
    if exclude_id is not None:
        stmt = stmt.where(Event.id != exclude_id)
    res = await db.execute(stmt.limit(1))
    return res.scalar_one_or_none() is not None


async def check_domain_code(db: AsyncSession, code: str | None) -> DomainCodeCheck:
    trimmed = (code or "").strip()
    if not trimmed:
        raise HTTPException(status_code=400, detail={"error": MSG_DOMAIN_EMPTY, "available": False})

    available = not await _domain_code_taken(db, trimmed)
    return DomainCodeCheck(
        available=available,
        message=MSG_DOMAIN_AVAILABLE if available else MSG_DOMAIN_TAKEN,
    )


async def create_event(db: AsyncSession, *, user_id: uuid.UUID, data: EventCreate) -> Event:
    name = (data.name or "").strip()
    domain_code = (data.domain_code or "").strip()
    if not name or not domain_code:
        raise HTTPException(status_code=400, detail=MSG_REQUIRED)

    if await _domain_code_taken(db, domain_code):
        raise HTTPException(status_code=400, detail=MSG_DOMAIN_TAKEN)

    pages = resolve_page_records(data)

    try:
        event = Event(
            user_id=user_id,
            name=name,
            domain_code=domain_code,
            background_color=data.background_color or "#000000",
            **{f: getattr(data, f) for f in _PLAIN_FIELDS},
        )
        db.add(event)
        await db.flush()

        location = await ensure_location(db, slug=domain_code, name=name, description=data.description)
        await sync_stores(
            db,
            location=location,
            domain_code=domain_code,
            event_name=name,
            event_info_config=data.event_info_config,
        )

        if pages:
            await insert_landing_pages(db, event_id=event.id, pages=pages)

        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Event insert conflicted", domain_code=domain_code)
        raise HTTPException(status_code=400, detail=MSG_DOMAIN_TAKEN)
    except Exception as e:
        await db.rollback()
        logger.exception("Event creation failed", domain_code=domain_code)
        raise HTTPException(status_code=500, detail={"error": MSG_CREATE_FAILED, "details": str(e)})

    await db.refresh(event)
    logger.info("Event created", event_id=str(event.id), domain_code=domain_code)
    return event


async def list_events(db: AsyncSession, *, user_id: uuid.UUID) -> list[Event]:
    res = await db.execute(
        select(Event).where(Event.user_id == user_id).order_by(Event.created_at.desc())
    )
    return list(res.scalars().all())


async def get_owned_event(db: AsyncSession, *, event_id: uuid.UUID, user_id: uuid.UUID) -> Event:
    res = await db.execute(select(Event).where(Event.id == event_id).where(Event.user_id == user_id))
    event = res.scalar_one_or_none()
    if not event:
        raise HTTPException(status_code=404, detail=MSG_NOT_OWNED)
    return event


async def _location_for(db: AsyncSession, domain_code: str) -> Location | None:
    res = await db.execute(select(Location).where(Location.slug == domain_code))
    return res.scalar_one_or_none()


async def get_event_detail(db: AsyncSession, *, event_id: uuid.UUID, user_id: uuid.UUID) -> EventDetail:
    event = await get_owned_event(db, event_id=event_id, user_id=user_id)
    pages = await load_landing_pages(db, event_id=event.id)

    stores: list[StoreOut] = []
    location = await _location_for(db, event.domain_code)
    if location is not None:
        stores = [StoreOut.model_validate(s) for s in await list_location_stores(db, location.id)]

    detail = EventDetail.model_validate(event)
    detail.landing_pages = pages
    detail.stores = stores
    detail.editor_state = to_editor_state(pages)
    return detail


async def update_event(
    db: AsyncSession,
    *,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    data: EventUpdate,
) -> Event:
    event = await get_owned_event(db, event_id=event_id, user_id=user_id)
    sent = data.model_fields_set

    old_domain_code = event.domain_code
    new_domain_code = (data.domain_code or "").strip() or old_domain_code
    if new_domain_code != old_domain_code and await _domain_code_taken(db, new_domain_code, exclude_id=event.id):
        raise HTTPException(status_code=400, detail=MSG_DOMAIN_TAKEN)

    pages = resolve_page_records(data)

    try:
        if data.name and data.name.strip():
            event.name = data.name.strip()
        event.domain_code = new_domain_code
        if data.background_color:
            event.background_color = data.background_color
        for f in _PLAIN_FIELDS:
            if f in sent:
                setattr(event, f, getattr(data, f))

        location = await _location_for(db, old_domain_code)
        if location is None:
            location = await ensure_location(
                db, slug=new_domain_code, name=event.name, description=event.description
            )
        else:
            location.slug = new_domain_code
            location.name = event.name

        if "event_info_config" in sent or new_domain_code != old_domain_code:
            await sync_stores(
                db,
                location=location,
                domain_code=new_domain_code,
                event_name=event.name,
                event_info_config=event.event_info_config,
            )

        if pages is not None:
            await replace_landing_pages(db, event_id=event.id, pages=pages)

        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Event update conflicted", event_id=str(event_id))
        raise HTTPException(status_code=400, detail=MSG_DOMAIN_TAKEN)
    except Exception as e:
        await db.rollback()
        logger.exception("Event update failed", event_id=str(event_id))
        raise HTTPException(status_code=500, detail={"error": MSG_UPDATE_FAILED, "details": str(e)})

    await db.refresh(event)
    logger.info("Event updated", event_id=str(event.id))
    return event


async def collect_image_paths(db: AsyncSession, event: Event, storage: StorageClient) -> list[str]:
    candidates = [
        v for v in await content_values(db, event_id=event.id)
        if any(marker in v for marker in IMAGE_MARKERS)
    ]
    if event.coupon_preview_image_url:
        candidates.append(event.coupon_preview_image_url)

    paths: list[str] = []
    for url in candidates:
        path = storage.extract_path(url)
        if path and path not in paths:
            paths.append(path)
    return paths


async def delete_event(
    db: AsyncSession,
    *,
    event_id: uuid.UUID,
    user_id: uuid.UUID,
    storage: StorageClient,
) -> None:
    event = await get_owned_event(db, event_id=event_id, user_id=user_id)
    domain_code = event.domain_code

    paths = await collect_image_paths(db, event, storage)
    if paths:
        try:
            await storage.remove(paths)
        except Exception as e:
            logger.warning("Image cleanup failed", event_id=str(event_id), error=str(e))

    try:
        await db.execute(delete(PageVisit).where(PageVisit.event_id == event.id))
        await delete_landing_pages(db, event_id=event.id)

        location = await _location_for(db, domain_code)
        if location is not None:
            await db.execute(delete(Coupon).where(Coupon.location_id == location.id))
            await db.execute(delete(Store).where(Store.location_id == location.id))
            await db.execute(delete(Location).where(Location.id == location.id))

        await db.execute(delete(Event).where(Event.id == event.id))
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception("Event deletion failed", event_id=str(event_id))
        raise HTTPException(status_code=500, detail={"error": MSG_DELETE_FAILED, "details": str(e)})

    logger.info("Event deleted", event_id=str(event_id), domain_code=domain_code)


async def get_event_by_domain_code(db: AsyncSession, domain_code: str) -> Event:
    res = await db.execute(select(Event).where(Event.domain_code == domain_code))
    event = res.scalar_one_or_none()
    if not event:
        raise HTTPException(status_code=404, detail=MSG_NOT_FOUND)
    return event


async def get_public_event(db: AsyncSession, domain_code: str) -> PublicEventOut:
    event = await get_event_by_domain_code(db, domain_code)
    out = PublicEventOut.model_validate(event)
    out.landing_pages = await load_landing_pages(db, event_id=event.id)
    return out


async def track_visit(
    db: AsyncSession,
    *,
    domain_code: str,
    user_agent: str | None,
    ip_address: str | None,
    referer: str | None,
) -> TrackVisitResult:
    event = await get_event_by_domain_code(db, domain_code)
    event_id = event.id

    try:
        db.add(
            PageVisit(
                event_id=event_id,
                domain_code=domain_code,
                user_agent=user_agent,
                ip_address=ip_address,
                referer=referer,
            )
        )
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.warning("Visit log insert failed", domain_code=domain_code, error=str(e))
        return TrackVisitResult(warning=MSG_VISIT_FAILED)

    return TrackVisitResult()
