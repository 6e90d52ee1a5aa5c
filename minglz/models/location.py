# minglz/models/location.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from minglz.core.db import Base
from minglz.core.timeutils import utcnow


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        CheckConstraint(
            "coupon_expiry_days IS NULL OR coupon_expiry_days >= 1",
            name="locations_coupon_expiry_days_check",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # an event's domain_code doubles as its location slug
    slug: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # NULL means coupons never expire
    coupon_expiry_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
