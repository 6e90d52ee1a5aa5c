from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.db import get_db
from minglz.core.security import decode_token, TokenError
from minglz.models.user import User
from minglz.services.auth import is_admin

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _bearer_or_cookie(request: Request, token: str | None) -> str | None:
    return token or request.cookies.get(ACCESS_COOKIE)


async def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = _bearer_or_cookie(request, token)
    if not token:
        raise HTTPException(status_code=401, detail="인증이 필요합니다.")

    try:
        payload = decode_token(token)
    except TokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="인증에 실패했습니다.",
        )

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=401, detail="인증에 실패했습니다.")

    res = await db.execute(select(User).where(User.id == user_id))
    user = res.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=401, detail="인증에 실패했습니다.")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="비활성화된 계정입니다.")

    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not is_admin(current_user):
        raise HTTPException(status_code=403, detail="관리자 권한이 필요합니다.")
    return current_user
