# minglz/services/auth.py
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta

from fastapi import HTTPException
from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.config import settings
from minglz.core.security import (
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from minglz.core.timeutils import as_aware_utc, utcnow
from minglz.integrations.resend_client import ResendClient
from minglz.models.user import User
from minglz.models.verification_code import VerificationCode
from minglz.schemas.auth import SignupRequest, TokenPair

MSG_EMAIL_EXISTS = "이미 가입된 이메일입니다."
MSG_SIGNUP_FAILED = "회원가입에 실패했습니다."
MSG_BAD_CREDENTIALS = "이메일 또는 비밀번호가 올바르지 않습니다."
MSG_LOGIN_FAILED = "로그인에 실패했습니다."
MSG_EMAIL_SEND_FAILED = "이메일 전송에 실패했습니다."
MSG_BAD_CODE = "잘못된 인증 코드이거나 만료되었습니다."


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def is_admin(user: User) -> bool:
    if user.role == "admin":
        return True
    admin_emails = {normalize_email(e) for e in settings.ADMIN_EMAILS}
    return normalize_email(user.email) in admin_emails


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    res = await db.execute(select(User).where(User.email == normalize_email(email)))
    return res.scalar_one_or_none()


async def signup(db: AsyncSession, data: SignupRequest) -> User:
    email = normalize_email(data.email)
    if await get_user_by_email(db, email):
        raise HTTPException(status_code=400, detail=MSG_EMAIL_EXISTS)

    user = User(
        email=email,
        password_hash=hash_password(data.password),
        name=(data.name or "").strip() or None,
        role="user",
        is_active=True,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail=MSG_EMAIL_EXISTS)
    except Exception:
        await db.rollback()
        logger.exception("Signup failed", email=email)
        raise HTTPException(status_code=500, detail=MSG_SIGNUP_FAILED)

    await db.refresh(user)
    logger.info("User signed up", user_id=str(user.id))
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)

    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail=MSG_BAD_CREDENTIALS)

    if not user.is_active:
        raise HTTPException(status_code=401, detail=MSG_LOGIN_FAILED)

    return user


def issue_tokens(user: User) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id=str(user.id), role=user.role),
        refresh_token=create_refresh_token(user_id=str(user.id)),
    )


async def user_from_token(db: AsyncSession, token: str, *, expected_type: str = "access") -> User:
    """Raises TokenError when the token or its user is no longer good."""
    payload = decode_token(token, expected_type=expected_type)

    res = await db.execute(select(User).where(User.id == _uuid_claim(payload)))
    user = res.scalar_one_or_none()
    if not user or not user.is_active:
        raise TokenError("User not found or inactive")
    return user


async def refresh_session(db: AsyncSession, refresh_token: str) -> tuple[User, TokenPair]:
    user = await user_from_token(db, refresh_token, expected_type="refresh")
    return user, issue_tokens(user)


def _uuid_claim(payload: dict) -> uuid.UUID:
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError as e:
        raise TokenError("Invalid subject") from e


# -------------------------
# Email verification
# -------------------------
def generate_verification_code() -> str:
    return str(100000 + secrets.randbelow(900000))


async def send_verification(db: AsyncSession, email: str, *, mailer: ResendClient) -> None:
    email = normalize_email(email)
    if await get_user_by_email(db, email):
        raise HTTPException(status_code=400, detail=MSG_EMAIL_EXISTS)

    code = generate_verification_code()

    try:
        message_id = await mailer.send_verification_code(to=email, code=code)
    except Exception:
        logger.exception("Verification email failed", email=email)
        raise HTTPException(status_code=500, detail=MSG_EMAIL_SEND_FAILED)

    logger.info("Verification email sent", email=email, message_id=message_id)

    try:
        db.add(
            VerificationCode(
                email=email,
                code=code,
                expires_at=utcnow() + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES),
            )
        )
        await db.commit()
    except Exception as e:
        # mail already sent
        await db.rollback()
        logger.warning("Verification code not stored", email=email, error=str(e))


async def verify_code(db: AsyncSession, email: str, code: str, *, now: datetime | None = None) -> None:
    email = normalize_email(email)
    current = as_aware_utc(now) if now is not None else utcnow()

    res = await db.execute(
        select(VerificationCode)
        .where(VerificationCode.email == email)
        .where(VerificationCode.code == (code or "").strip())
        .where(VerificationCode.used.is_(False))
        .where(VerificationCode.expires_at > current)
        .order_by(VerificationCode.created_at.desc())
        .limit(1)
    )
    row = res.scalars().first()
    if not row:
        raise HTTPException(status_code=400, detail=MSG_BAD_CODE)

    row_id = row.id
    try:
        await db.execute(update(VerificationCode).where(VerificationCode.id == row_id).values(used=True))
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.warning("Verification code not marked used", code_id=str(row_id), error=str(e))

    logger.info("Email verified", email=email)
