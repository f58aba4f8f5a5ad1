"""
Pydantic schemas for Quotes
Project: JobQuote (Quote & Invoice Backend)

Defines the validation and serialisation schemas for the API.

Business rules on item fields (non-blank name, positive quantity, ...) are
checked by the quote ledger, not here, so that only the first failing field
is reported and always in the same order.
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)


# -------------------------------------------------------------------
# Quote status enum
# -------------------------------------------------------------------

class QuoteStatus(str, Enum):
    """Possible statuses of a quote."""
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"


# -------------------------------------------------------------------
# Line item category enum
# -------------------------------------------------------------------

class ItemCategory(str, Enum):
    """Categories of a quote line item."""
    LABOUR = "labour"
    MATERIALS = "materials"
    TRAVEL = "travel"
    OTHER = "other"


# -------------------------------------------------------------------
# Valid status transitions
# -------------------------------------------------------------------

# Transitions are enforced in app.services.quote_state_machine.
# This matrix is the single source of truth and is imported from there.
VALID_TRANSITIONS: dict[QuoteStatus, list[QuoteStatus]] = {
    QuoteStatus.DRAFT: [QuoteStatus.SENT],
    QuoteStatus.SENT: [QuoteStatus.APPROVED, QuoteStatus.REJECTED],
    QuoteStatus.APPROVED: [],  # Final state
    QuoteStatus.REJECTED: [QuoteStatus.DRAFT],  # Explicit "revise" action
}

# Statuses from which an invoice may be generated
INVOICEABLE_STATUSES: frozenset[QuoteStatus] = frozenset(
    {QuoteStatus.SENT, QuoteStatus.APPROVED}
)


# -------------------------------------------------------------------
# QuoteItem schemas
# -------------------------------------------------------------------

class QuoteItemCreate(BaseModel):
    """
    Schema for a line item in create/replace requests.

    Attributes:
        name: Item name
        category: labour, materials, travel or other
        quantity: Quantity (hours for labour, units otherwise)
        unit_price: Unit price
    """
    name: Optional[str] = Field(None, max_length=255, description="Item name")
    category: Optional[str] = Field(None, description="labour, materials, travel or other")
    quantity: Optional[Decimal] = Field(None, description="Quantity")
    unit_price: Optional[Decimal] = Field(None, description="Unit price")


class QuoteItemRead(BaseModel):
    """
    Schema for reading a line item.

    Includes the computed line_total.
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    position: int
    name: str
    category: ItemCategory
    quantity: Decimal
    unit_price: Decimal

    @computed_field
    @property
    def line_total(self) -> Decimal:
        """Line total rounded to cents (quantity * unit_price)."""
        from app.services.money import round2

        return round2(self.quantity * self.unit_price)


# -------------------------------------------------------------------
# Quote schemas
# -------------------------------------------------------------------

class QuoteCreate(BaseModel):
    """
    Schema for creating a quote.

    tax_enabled defaults to the gst_enabled flag of the business profile
    when omitted.
    """
    client_id: Optional[uuid.UUID] = Field(None, description="UUID of the client")
    job_title: Optional[str] = Field(None, max_length=200, description="Job title")
    description: Optional[str] = Field(None, max_length=5000, description="Job description")
    items: list[QuoteItemCreate] = Field(default_factory=list, description="Line items")
    tax_enabled: Optional[bool] = Field(None, description="Apply GST (default: business profile)")


class QuoteDetailsUpdate(BaseModel):
    """
    Schema for editing the title and description of a draft quote.

    Both fields are optional for partial updates.
    Status CANNOT be changed through this endpoint (use /status).
    """
    job_title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)


class QuoteItemsUpdate(BaseModel):
    """Schema replacing the whole item list of a draft quote."""
    items: list[QuoteItemCreate] = Field(default_factory=list)


class QuoteStatusUpdate(BaseModel):
    """
    Schema for a quote status change.

    Used exclusively for state transitions.
    """
    status: QuoteStatus = Field(..., description="New quote status")


class QuoteClientSummary(BaseModel):
    """Client fields embedded in a quote."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str


class QuoteRead(BaseModel):
    """
    Schema for reading a quote.

    Totals are the stored values, kept consistent with the items by the
    state machine.
    """
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    client: Optional[QuoteClientSummary] = None
    job_title: str
    description: str
    status: QuoteStatus
    tax_enabled: bool
    tax_rate: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    items: list[QuoteItemRead] = Field(default_factory=list)
    created_at: datetime.datetime
    updated_at: datetime.datetime


# -------------------------------------------------------------------
# Paginated list schema
# -------------------------------------------------------------------

class QuoteList(BaseModel):
    """
    Paginated list of quotes.

    Attributes:
        items: Quotes in the page
        total: Total number of records
        page: Current page
        per_page: Records per page
        total_pages: Number of pages (computed automatically)
    """
    items: list[QuoteRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "QuoteList":
        """Compute the number of pages."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
