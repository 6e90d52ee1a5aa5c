from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel


class UserListItem(BaseModel):
    id: UUID
    email: str

    class Config:
        from_attributes = True


class UserEmailsRequest(BaseModel):
    # validated by hand so a non-list gets the dedicated 400 message
    user_ids: Any = None
