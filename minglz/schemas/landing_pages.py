# minglz/schemas/landing_pages.py
from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class FieldContent(BaseModel):
    value: str | None = None
    color: str | None = None
    visible: bool = True


class PageSelection(BaseModel):
    page_type: str
    template_type: str


class EditorState(BaseModel):
    """Per-page, per-field view used by the admin page builder."""

    page_selections: dict[int, PageSelection] = Field(default_factory=dict)
    page_background_colors: dict[int, str] = Field(default_factory=dict)
    fields: dict[int, dict[str, FieldContent]] = Field(default_factory=dict)


class FlatEditorState(BaseModel):
    """Older builder payload: per-page maps of {field}, {field}Color, {field}Visible."""

    page_selections: dict[int, PageSelection] = Field(default_factory=dict)
    page_background_colors: dict[int, str] = Field(default_factory=dict)
    design_values: dict[int, dict[str, str]] = Field(default_factory=dict)


class PageContentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    field_id: str
    field_value: str | None = None
    field_color: str | None = None
    is_visible: bool = True


class LandingPageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    page_number: int | None = None
    page_type: str = "기타"
    template_type: str = "유형1"
    background_color: str = "#000000"
    contents: list[PageContentRecord] = Field(default_factory=list)


class LandingPageOut(LandingPageRecord):
    id: UUID
    event_id: UUID
    page_number: int
