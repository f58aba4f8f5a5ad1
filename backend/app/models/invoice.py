"""
SQLAlchemy model for Invoicing
Project: JobQuote (Quote & Invoice Backend)

Contains:
- Invoice: billing document derived from exactly one sent/approved quote
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin

# Type-hinting imports for relationships (avoids circular imports)
if TYPE_CHECKING:
    from app.models.quote import Quote


class Invoice(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Model for invoices.

    An invoice is created once from a SENT or APPROVED quote. Its total is a
    snapshot of the quote total at creation time and never changes after.

    At most one invoice per quote: enforced by the unique constraint on
    quote_id, not only by the existence check in the service.

    Attributes:
        id: UUID primary key
        user_id: UUID of the owning user
        quote_id: UUID of the quote (1:1, unique)
        invoice_number: Human readable number (format: INV-YYMMDD-XXXXXX), unique
        total: Frozen copy of the quote total
        due_date: Payment due date (creation date + payment terms)
        status: unpaid or paid
        paid_at: When the invoice was marked paid
        created_at: Record creation date/time
        updated_at: Record last update date/time

    Relationships:
        quote: Source quote
    """

    __tablename__ = "invoices"

    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID of the source quote (1:1)",
    )

    invoice_number: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        doc="Invoice number (INV-YYMMDD-XXXXXX)",
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Invoice total (snapshot of the quote total)",
    )

    due_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Payment due date",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="unpaid",
        doc="unpaid or paid",
    )

    paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the invoice was marked paid",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    quote: Mapped["Quote"] = relationship(
        "Quote",
        back_populates="invoice",
        lazy="noload",
        doc="Source quote",
    )

    __table_args__ = (
        UniqueConstraint("quote_id", name="uq_invoices_quote_id"),
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        Index("ix_invoices_user_created", "user_id", "created_at"),
        Index("ix_invoices_status_due", "status", "due_date"),
        CheckConstraint(
            "status IN ('unpaid', 'paid')",
            name="ck_invoices_status",
        ),
        CheckConstraint("total >= 0", name="ck_invoices_total_positive"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, total={self.total})>"
