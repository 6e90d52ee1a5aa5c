from __future__ import annotations

import uuid
from typing import Any

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.config import settings
from minglz.models.user import User
from minglz.services.auth import normalize_email


async def list_non_admin_users(db: AsyncSession) -> list[User]:
    stmt = select(User).where(User.role != "admin")

    admin_emails = [normalize_email(e) for e in settings.ADMIN_EMAILS if e]
    if admin_emails:
        stmt = stmt.where(User.email.not_in(admin_emails))

    res = await db.execute(stmt.order_by(User.created_at.desc()))
    return list(res.scalars().all())


async def user_emails(db: AsyncSession, user_ids: Any) -> dict[str, str]:
    if not isinstance(user_ids, list):
        raise HTTPException(status_code=400, detail="user_ids는 배열이어야 합니다.")

    wanted: dict[uuid.UUID, str] = {}
    for raw in user_ids:
        try:
            wanted[uuid.UUID(str(raw))] = str(raw)
        except ValueError:
            logger.warning("Skipping malformed user id", user_id=raw)

    if not wanted:
        return {}

    res = await db.execute(select(User.id, User.email).where(User.id.in_(list(wanted))))
    found = {uid: email for uid, email in res.all()}

    missing = [wanted[uid] for uid in wanted if uid not in found]
    if missing:
        logger.warning("No email for some users", user_ids=missing)

    return {wanted[uid]: email for uid, email in found.items()}
