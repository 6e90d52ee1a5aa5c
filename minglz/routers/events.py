import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.core.deps import get_current_user
from minglz.integrations.storage_client import StorageClient, get_storage_client
from minglz.models.user import User
from minglz.schemas.events import EventCreate, EventCreated, EventOut, EventSummary, EventUpdate
from minglz.services import events as event_service

router = APIRouter(prefix="/api/events", tags=["Events"])


@router.post("")
async def create_event(
    data: EventCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    event = await event_service.create_event(db, user_id=current_user.id, data=data)
    return {
        "success": True,
        "data": EventCreated(event_id=event.id, domain_code=event.domain_code),
        "message": "이벤트가 성공적으로 생성되었습니다.",
    }


@router.get("")
async def list_events(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    events = await event_service.list_events(db, user_id=current_user.id)
    return {"success": True, "data": [EventSummary.model_validate(e) for e in events]}


@router.get("/check-domain-code")
async def check_domain_code(
    code: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return await event_service.check_domain_code(db, code)


@router.get("/{event_id}")
async def get_event(
    event_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    detail = await event_service.get_event_detail(db, event_id=event_id, user_id=current_user.id)
    return {"success": True, "data": detail}


@router.put("/{event_id}")
async def update_event(
    event_id: uuid.UUID,
    data: EventUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    event = await event_service.update_event(db, event_id=event_id, user_id=current_user.id, data=data)
    return {
        "success": True,
        "data": EventOut.model_validate(event),
        "message": "이벤트가 성공적으로 수정되었습니다.",
    }


@router.delete("/{event_id}")
async def delete_event(
    event_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage_client),
):
    await event_service.delete_event(db, event_id=event_id, user_id=current_user.id, storage=storage)
    return {"success": True, "message": "이벤트가 성공적으로 삭제되었습니다."}
