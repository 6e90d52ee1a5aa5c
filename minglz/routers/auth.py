from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from minglz.core.config import settings
from minglz.core.db import get_db
from minglz.core.deps import ACCESS_COOKIE, REFRESH_COOKIE, oauth2_scheme
from minglz.core.security import TokenError
from minglz.integrations.resend_client import ResendClient, get_email_client
from minglz.schemas.auth import (
    LoginRequest,
    LoginResponse,
    SendVerificationRequest,
    SessionResponse,
    SignupRequest,
    TokenPair,
    UserOut,
    VerifyCodeRequest,
)
from minglz.services import auth as auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])

COOKIE_MAX_AGE = 60 * 60 * 24 * 7  # 7 days


def _set_auth_cookies(response: Response, tokens: TokenPair) -> None:
    for name, value in ((ACCESS_COOKIE, tokens.access_token), (REFRESH_COOKIE, tokens.refresh_token)):
        response.set_cookie(
            name,
            value,
            max_age=COOKIE_MAX_AGE,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite="lax",
            path="/",
        )


@router.post("/signup")
async def signup(data: SignupRequest, db: AsyncSession = Depends(get_db)):
    user = await auth_service.signup(db, data)
    return {
        "success": True,
        "message": "회원가입이 완료되었습니다.",
        "user": UserOut.model_validate(user),
    }


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.authenticate(db, data.email, data.password)
    tokens = auth_service.issue_tokens(user)
    _set_auth_cookies(response, tokens)

    return LoginResponse(
        message="로그인되었습니다.",
        user=UserOut.model_validate(user),
        **tokens.model_dump(),
    )


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(ACCESS_COOKIE, path="/")
    response.delete_cookie(REFRESH_COOKIE, path="/")
    return {"success": True, "message": "로그아웃되었습니다."}


@router.get("/session", response_model=SessionResponse)
async def session(
    request: Request,
    response: Response,
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
):
    access = token or request.cookies.get(ACCESS_COOKIE)
    refresh = request.cookies.get(REFRESH_COOKIE)

    if not access and not refresh:
        raise HTTPException(status_code=401, detail="로그인이 필요합니다.")

    if access:
        try:
            user = await auth_service.user_from_token(db, access)
            return SessionResponse(user=UserOut.model_validate(user))
        except TokenError:
            # expired access token: fall through to the refresh cookie
            pass

    if not refresh:
        raise HTTPException(status_code=401, detail="세션이 만료되었습니다.")

    try:
        user, tokens = await auth_service.refresh_session(db, refresh)
    except TokenError:
        raise HTTPException(status_code=401, detail="세션이 만료되었습니다.")

    _set_auth_cookies(response, tokens)
    return SessionResponse(user=UserOut.model_validate(user))


@router.post("/send-verification")
async def send_verification(
    data: SendVerificationRequest,
    db: AsyncSession = Depends(get_db),
    mailer: ResendClient = Depends(get_email_client),
):
    await auth_service.send_verification(db, data.email, mailer=mailer)
    return {"success": True, "message": "인증 코드가 이메일로 전송되었습니다."}


@router.post("/verify-code")
async def verify_code(data: VerifyCodeRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.verify_code(db, data.email, data.code)
    return {"success": True, "message": "이메일 인증이 완료되었습니다."}
