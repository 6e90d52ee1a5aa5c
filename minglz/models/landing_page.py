# minglz/models/landing_page.py
from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from minglz.core.db import Base


class LandingPage(Base):
    __tablename__ = "landing_pages"
    __table_args__ = (UniqueConstraint("event_id", "page_number", name="landing_pages_event_page_uq"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    page_type: Mapped[str] = mapped_column(Text, nullable=False, default="기타")
    template_type: Mapped[str] = mapped_column(Text, nullable=False, default="유형1")
    background_color: Mapped[str] = mapped_column(Text, nullable=False, default="#000000")


class PageContent(Base):
    __tablename__ = "page_contents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    landing_page_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("landing_pages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    field_id: Mapped[str] = mapped_column(Text, nullable=False)
    field_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    field_color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
