from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.core.deps import require_admin
from minglz.models.user import User
from minglz.schemas.users import UserEmailsRequest, UserListItem
from minglz.services.users import list_non_admin_users, user_emails

router = APIRouter(prefix="/api/users", tags=["Admin Users"])


@router.get("/list")
async def list_users(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    users = await list_non_admin_users(db)
    return {"success": True, "data": [UserListItem.model_validate(u) for u in users]}


@router.post("/emails")
async def emails(
    data: UserEmailsRequest,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    return {"success": True, "data": await user_emails(db, data.user_ids)}
