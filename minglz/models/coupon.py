# minglz/models/coupon.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from minglz.core.db import Base
from minglz.core.timeutils import utcnow


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint(
            "(is_used AND used_at IS NOT NULL) OR (NOT is_used AND used_at IS NULL)",
            name="coupons_used_at_check",
        ),
        CheckConstraint(
            "is_used OR (validated_at IS NULL AND validated_by_store_id IS NULL)",
            name="coupons_validated_requires_used_check",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # 8 chars [A-Z0-9]; unique so a colliding insert fails instead of duplicating
    code: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    location_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # may differ from any store the coupon was conceptually issued for
    validated_by_store_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("stores.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
