# minglz/schemas/events.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from minglz.schemas.coupons import StoreOut
from minglz.schemas.landing_pages import EditorState, FlatEditorState, LandingPageOut, LandingPageRecord


class StoreEntry(BaseModel):
    """One row of event_info_config.stores as sent by the admin editor."""

    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    name: str | None = None
    benefit: str | None = None
    description: str | None = None


class EventBase(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    background_color: str | None = None
    description: str | None = None
    content_html: str | None = None
    coupon_preview_image_url: str | None = None
    mission_config: dict[str, Any] | None = None
    event_info_config: dict[str, Any] | None = None

    # pages arrive either as relational records or as the builder's state
    landing_pages: list[LandingPageRecord] | None = None
    editor_state: EditorState | None = None
    flat_editor_state: FlatEditorState | None = None


class EventCreate(EventBase):
    name: str | None = None
    domain_code: str | None = None


class EventUpdate(EventBase):
    name: str | None = None
    domain_code: str | None = None


class EventSummary(BaseModel):
    id: UUID
    name: str
    domain_code: str
    start_date: date | None = None
    end_date: date | None = None
    event_info_config: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class EventOut(EventSummary):
    user_id: UUID
    background_color: str
    description: str | None = None
    content_html: str | None = None
    coupon_preview_image_url: str | None = None
    mission_config: dict[str, Any] | None = None


class PublicEventOut(EventOut):
    landing_pages: list[LandingPageOut] = []


class EventDetail(PublicEventOut):
    stores: list[StoreOut] = []
    editor_state: EditorState | None = None


class EventCreated(BaseModel):
    event_id: UUID
    domain_code: str


class DomainCodeCheck(BaseModel):
    success: bool = True
    available: bool
    message: str


class TrackVisitResult(BaseModel):
    success: bool = True
    warning: str | None = None
