"""
Pydantic schemas for Invoices
Project: JobQuote (Quote & Invoice Backend)
"""

import datetime
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class InvoiceStatus(str, Enum):
    """Possible statuses of an invoice."""
    UNPAID = "unpaid"
    PAID = "paid"


class InvoiceRead(BaseModel):
    """Schema for reading an invoice."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    quote_id: uuid.UUID
    invoice_number: str
    total: Decimal
    due_date: datetime.date
    status: InvoiceStatus
    paid_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class InvoiceStatusUpdate(BaseModel):
    """Schema for an invoice status change (only unpaid → paid)."""
    status: InvoiceStatus = Field(..., description="New invoice status")


class InvoiceList(BaseModel):
    """Paginated list of invoices."""
    items: list[InvoiceRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "InvoiceList":
        """Compute the number of pages."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
