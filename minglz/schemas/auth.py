from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6, max_length=128)
    name: str | None = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    email: str
    password: str


class SendVerificationRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)


class VerifyCodeRequest(BaseModel):
    email: str
    code: str


class UserOut(BaseModel):
    id: UUID
    email: str
    name: str | None = None
    role: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenPair):
    success: bool = True
    message: str
    user: UserOut


class SessionResponse(BaseModel):
    success: bool = True
    user: UserOut
