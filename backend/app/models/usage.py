"""
SQLAlchemy models for usage metering
Project: JobQuote (Quote & Invoice Backend)

Contains:
- UsageEvent: one row per quote/invoice creation counted against the quota
- Subscription: subscription tier of a user
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin


class UsageEvent(Base, UUIDMixin, OwnedMixin):
    """
    A metered creation event.

    Usage is always counted from occurred_at against a window computed
    from the current wall-clock time. period_key and slot only scope the
    unique constraint that stops two devices from taking the same slot.

    Attributes:
        kind: quote or invoice
        occurred_at: When the creation happened
        period_key: Window label at write time (e.g. "2026-10-12" for a week, "2026-10" for a month)
        slot: 1-based position of this event inside its window
    """

    __tablename__ = "usage_events"

    kind: Mapped[str] = mapped_column(String(20), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="When the creation happened",
    )

    period_key: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Window label at write time",
    )

    slot: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Position inside the window",
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "kind", "period_key", "slot",
            name="uq_usage_events_slot",
        ),
        Index("ix_usage_events_user_kind_time", "user_id", "kind", "occurred_at"),
        CheckConstraint("kind IN ('quote', 'invoice')", name="ck_usage_events_kind"),
        CheckConstraint("slot > 0", name="ck_usage_events_slot_positive"),
    )

    def __repr__(self) -> str:
        return f"<UsageEvent(user_id={self.user_id}, kind={self.kind}, slot={self.slot})>"


class Subscription(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Subscription tier of a user.

    No row means free tier with the configured default limits. Limit
    columns override those defaults when set.
    """

    __tablename__ = "subscriptions"

    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    quotes_per_week: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Override of the free-tier weekly quote limit",
    )

    invoices_per_month: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Override of the free-tier monthly invoice limit",
    )

    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="End of the premium period (None = no expiry)",
    )

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_subscriptions_user"),
    )

    def __repr__(self) -> str:
        return f"<Subscription(user_id={self.user_id}, is_premium={self.is_premium})>"
