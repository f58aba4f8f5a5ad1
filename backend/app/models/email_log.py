"""
SQLAlchemy model for the email audit log
Project: JobQuote (Quote & Invoice Backend)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.models import Base
from app.models.mixins import UUIDMixin


class EmailLog(Base, UUIDMixin):
    """
    Audit row written after each successful quote/invoice email.

    Writes are best-effort: a failure here never fails the send.
    quote_id and invoice_id are plain references, not foreign keys,
    so payloads sent without stored records can still be logged.
    """

    __tablename__ = "email_logs"

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    quote_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    invoice_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)

    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    email_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="quote or invoice",
    )
    provider_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Delivery id returned by the email provider",
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="sent")

    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<EmailLog(type={self.email_type}, to={self.recipient_email}, status={self.status})>"
