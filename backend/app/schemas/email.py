"""
Pydantic schemas for quote/invoice email dispatch
Project: JobQuote (Quote & Invoice Backend)

Payloads carry the full denormalised graph (client, items, business
profile) so the email can be built without further lookups. Key names
follow the JSON the mobile client already sends (clients, quote_items,
quotes, gst_amount).
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.invoice import InvoiceStatus
from app.schemas.quote import ItemCategory, QuoteStatus


class EmailClient(BaseModel):
    """Recipient of the email."""
    name: str
    email: str
    phone: Optional[str] = None


class EmailQuoteItem(BaseModel):
    """A line item as shown in the email."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    category: ItemCategory = Field(..., alias="type")
    quantity: Decimal
    unit_price: Decimal
    total: Decimal


class EmailBusinessProfile(BaseModel):
    """Business identity printed in the email."""
    business_name: Optional[str] = None
    user_name: Optional[str] = None
    abn: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    payment_terms: Optional[str] = None
    quote_footer_notes: Optional[str] = None
    bank_name: Optional[str] = None
    bsb: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    gst_enabled: bool = True


class QuoteEmailPayload(BaseModel):
    """Quote graph sent with a quote email."""
    id: Optional[uuid.UUID] = None
    job_title: str
    description: str = ""
    subtotal: Decimal
    gst_amount: Decimal = Decimal("0.00")
    total: Decimal
    status: QuoteStatus
    created_at: Optional[datetime.datetime] = None
    clients: EmailClient
    quote_items: list[EmailQuoteItem] = Field(default_factory=list)
    business_profile: EmailBusinessProfile


class InvoiceEmailPayload(BaseModel):
    """Invoice graph sent with an invoice email."""
    id: Optional[uuid.UUID] = None
    invoice_number: str
    total: Decimal
    due_date: datetime.date
    status: InvoiceStatus
    created_at: Optional[datetime.datetime] = None
    quotes: QuoteEmailPayload
    business_profile: EmailBusinessProfile


class SendQuoteRequest(BaseModel):
    """Body of POST /send-quote."""
    quote: QuoteEmailPayload


class SendInvoiceRequest(BaseModel):
    """Body of POST /send-invoice."""
    invoice: InvoiceEmailPayload


class EmailSendResponse(BaseModel):
    """Successful dispatch."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    email_id: Optional[str] = Field(None, alias="emailId")
    message: str


class EmailErrorResponse(BaseModel):
    """Failed dispatch."""
    error: str
    details: Optional[str] = None
