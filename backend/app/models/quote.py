"""
SQLAlchemy models for Quotes
Project: JobQuote (Quote & Invoice Backend)

Contains:
- Quote: priced proposal sent to a client
- QuoteItem: line items (labour, materials, travel, other) of a quote
"""


from __future__ import annotations
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.client import Client
    from app.models.invoice import Invoice


# Statuses are defined in app.schemas.quote.QuoteStatus
# Item categories are defined in app.schemas.quote.ItemCategory


class Quote(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Model for quotes.

    subtotal, tax_amount and total are derived from the items and are
    recomputed by the quote state machine after every item change; they
    are never edited directly.

    Attributes:
        id: UUID primary key
        user_id: UUID of the owning user
        client_id: UUID of the client the quote is addressed to
        job_title: Short title of the job
        description: Description of the work
        status: draft, sent, approved or rejected
        tax_enabled: Whether GST applies (captured from the business profile)
        tax_rate: GST rate as a fraction (captured at creation)
        subtotal: Sum of the rounded line totals
        tax_amount: GST on the subtotal
        total: subtotal + tax_amount

    States (state machine):
        draft → sent → approved
                  ↘ rejected → draft
    """

    __tablename__ = "quotes"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        doc="UUID of the client",
    )

    job_title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Job title",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Job description",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        doc="Current quote status",
    )

    tax_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Whether GST is applied",
    )

    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        nullable=False,
        default=Decimal("0.10"),
        doc="GST rate as a fraction",
    )

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Sum of line totals",
    )

    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="GST amount",
    )

    total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="subtotal + tax_amount",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="quotes",
        lazy="joined",
        doc="Client the quote is addressed to",
    )

    items: Mapped[List["QuoteItem"]] = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.position",
        lazy="selectin",
        doc="Line items, in display order",
    )

    invoice: Mapped[Optional["Invoice"]] = relationship(
        "Invoice",
        back_populates="quote",
        uselist=False,  # 1:1
        lazy="selectin",
        doc="Invoice derived from this quote, if any",
    )

    __table_args__ = (
        Index("ix_quotes_user_created", "user_id", "created_at"),
        Index("ix_quotes_user_status", "user_id", "status"),
        CheckConstraint(
            "status IN ('draft', 'sent', 'approved', 'rejected')",
            name="ck_quotes_status",
        ),
        CheckConstraint("subtotal >= 0", name="ck_quotes_subtotal_positive"),
        CheckConstraint("tax_amount >= 0", name="ck_quotes_tax_positive"),
        CheckConstraint("tax_rate >= 0", name="ck_quotes_tax_rate_positive"),
    )

    def __repr__(self) -> str:
        return f"<Quote(id={self.id}, status={self.status}, total={self.total})>"


class QuoteItem(Base, UUIDMixin):
    """
    Model for quote line items.

    Owned exclusively by its quote and deleted with it.

    Attributes:
        id: UUID primary key
        quote_id: UUID of the parent quote
        position: Display order inside the quote
        name: Item name
        category: labour, materials, travel or other
        quantity: Quantity (> 0)
        unit_price: Unit price (>= 0)
    """

    __tablename__ = "quote_items"

    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID of the parent quote",
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Display order",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Item name",
    )

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="labour, materials, travel or other",
    )

    quantity: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Quantity",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Unit price",
    )

    quote: Mapped["Quote"] = relationship(
        "Quote",
        back_populates="items",
        doc="Parent quote",
    )

    __table_args__ = (
        CheckConstraint(
            "category IN ('labour', 'materials', 'travel', 'other')",
            name="ck_quote_items_category",
        ),
        CheckConstraint("quantity > 0", name="ck_quote_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_quote_items_unit_price_positive"),
    )

    @property
    def line_total(self) -> Decimal:
        """Rounded line total (quantity * unit_price)."""
        from app.services.quote_ledger import line_total

        return line_total(self)

    def __repr__(self) -> str:
        return f"<QuoteItem(id={self.id}, category={self.category}, name={self.name[:30]})>"
