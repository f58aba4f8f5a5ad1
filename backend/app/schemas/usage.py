"""
Pydantic schemas for subscription tiers and usage
Project: JobQuote (Quote & Invoice Backend)
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UsageKind(str, Enum):
    """Metered creation kinds."""
    QUOTE = "quote"
    INVOICE = "invoice"


class QuotaLimits(BaseModel):
    """
    Limits of a tier. None means unlimited.

    Attributes:
        quotes_per_week: Quotes allowed per week
        invoices_per_month: Invoices allowed per calendar month
    """
    quotes_per_week: Optional[int] = Field(None, ge=0)
    invoices_per_month: Optional[int] = Field(None, ge=0)

    def for_kind(self, kind: UsageKind) -> Optional[int]:
        """Return the limit applying to `kind`."""
        if kind == UsageKind.QUOTE:
            return self.quotes_per_week
        return self.invoices_per_month


class SubscriptionStatus(BaseModel):
    """Result of the subscription-status lookup for a user."""
    is_premium: bool = False
    limits: QuotaLimits = Field(default_factory=QuotaLimits)


class UsageSummary(BaseModel):
    """Usage card shown on the dashboard."""
    is_premium: bool
    quotes_this_week: int
    max_quotes_per_week: Optional[int]
    invoices_this_month: int
    max_invoices_per_month: Optional[int]
