"""
SQLAlchemy model for the Business Profile
Project: JobQuote (Quote & Invoice Backend)

Billing identity of a tradesperson. Used as formatting input for the
quote/invoice emails and as the source of the GST flag for new quotes.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin


class BusinessProfile(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Model for the business profile (one per user).

    Attributes:
        user_name: Name of the tradesperson
        business_name: Trading name shown on quotes and invoices
        abn: Australian Business Number
        phone, email: Business contact details
        country: Country of the business
        payment_terms: Free text printed on invoices
        quote_footer_notes: Free text printed under quotes
        bank_name, bsb, account_number, account_name: Bank transfer details
        hourly_rate: Default labour rate
        gst_enabled: Whether GST is charged on new quotes
        logo_url: Public URL of the uploaded logo
    """

    __tablename__ = "business_profiles"

    user_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    business_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    abn: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="Tax registration id (ABN)",
    )
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[str] = mapped_column(String(60), nullable=False, default="Australia")

    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    quote_footer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Bank transfer details
    # ------------------------------------------------------------
    bank_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bsb: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    account_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    account_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("120.00"),
        doc="Default hourly rate",
    )

    gst_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Whether GST is charged on new quotes",
    )

    logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_business_profiles_user"),
        CheckConstraint(
            "hourly_rate >= 30 AND hourly_rate <= 300",
            name="ck_business_profiles_hourly_rate_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<BusinessProfile(user_id={self.user_id}, business_name={self.business_name})>"
