# minglz/services/landing_pages.py
from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.models.landing_page import LandingPage, PageContent
from minglz.schemas.landing_pages import LandingPageOut, LandingPageRecord, PageContentRecord
from minglz.services.page_converter import DEFAULT_BACKGROUND


async def insert_landing_pages(
    db: AsyncSession,
    *,
    event_id: uuid.UUID,
    pages: Sequence[LandingPageRecord],
) -> list[LandingPage]:
    """Caller owns the transaction."""
    created: list[LandingPage] = []

    for index, record in enumerate(pages):
        page = LandingPage(
            event_id=event_id,
            page_number=record.page_number or index + 1,
            page_type=record.page_type or "기타",
            template_type=record.template_type or "유형1",
            background_color=record.background_color or DEFAULT_BACKGROUND,
        )
        db.add(page)
        await db.flush()

        for content in record.contents:
            db.add(
                PageContent(
                    landing_page_id=page.id,
                    field_id=content.field_id,
                    field_value=content.field_value or None,
                    field_color=content.field_color or None,
                    is_visible=content.is_visible is not False,
                )
            )
        created.append(page)

    await db.flush()
    return created


async def delete_landing_pages(db: AsyncSession, *, event_id: uuid.UUID) -> None:
    page_ids = select(LandingPage.id).where(LandingPage.event_id == event_id)
    await db.execute(delete(PageContent).where(PageContent.landing_page_id.in_(page_ids)))
    await db.execute(delete(LandingPage).where(LandingPage.event_id == event_id))


async def replace_landing_pages(
    db: AsyncSession,
    *,
    event_id: uuid.UUID,
    pages: Sequence[LandingPageRecord],
) -> list[LandingPage]:
    await delete_landing_pages(db, event_id=event_id)
    return await insert_landing_pages(db, event_id=event_id, pages=pages)


async def load_landing_pages(db: AsyncSession, *, event_id: uuid.UUID) -> list[LandingPageOut]:
    res = await db.execute(
        select(LandingPage)
        .where(LandingPage.event_id == event_id)
        .order_by(LandingPage.page_number.asc())
    )
    pages = list(res.scalars().all())
    if not pages:
        return []

    res = await db.execute(
        select(PageContent)
        .where(PageContent.landing_page_id.in_([p.id for p in pages]))
        .order_by(PageContent.field_id.asc())
    )
    by_page: dict[uuid.UUID, list[PageContentRecord]] = defaultdict(list)
    for c in res.scalars().all():
        by_page[c.landing_page_id].append(PageContentRecord.model_validate(c))

    return [
        LandingPageOut(
            id=p.id,
            event_id=p.event_id,
            page_number=p.page_number,
            page_type=p.page_type,
            template_type=p.template_type,
            background_color=p.background_color,
            contents=by_page.get(p.id, []),
        )
        for p in pages
    ]


async def content_values(db: AsyncSession, *, event_id: uuid.UUID) -> list[str]:
    page_ids = select(LandingPage.id).where(LandingPage.event_id == event_id)
    res = await db.execute(
        select(PageContent.field_value)
        .where(PageContent.landing_page_id.in_(page_ids))
        .where(PageContent.field_value.is_not(None))
    )
    return [v for v in res.scalars().all() if v]
