"""
Pydantic schemas for the JobQuote project

This module collects every Pydantic schema used to validate requests and
serialise API responses.
"""

# Re-exported for direct import
# e.g.: from app.schemas import QuoteRead, ClientRead, etc.

from app.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate
from app.schemas.token import AuthenticatedUser, TokenPayload
from app.schemas.quote import (
    INVOICEABLE_STATUSES,
    VALID_TRANSITIONS,
    ItemCategory,
    QuoteCreate,
    QuoteDetailsUpdate,
    QuoteItemCreate,
    QuoteItemRead,
    QuoteItemsUpdate,
    QuoteList,
    QuoteRead,
    QuoteStatus,
    QuoteStatusUpdate,
)
from app.schemas.invoice import InvoiceList, InvoiceRead, InvoiceStatus, InvoiceStatusUpdate
from app.schemas.business_profile import BusinessProfileRead, BusinessProfileUpdate
from app.schemas.usage import QuotaLimits, SubscriptionStatus, UsageKind, UsageSummary
from app.schemas.email import (
    EmailErrorResponse,
    EmailSendResponse,
    InvoiceEmailPayload,
    QuoteEmailPayload,
    SendInvoiceRequest,
    SendQuoteRequest,
)

__all__ = [
    # Client
    "ClientCreate",
    "ClientList",
    "ClientRead",
    "ClientUpdate",
    # Token
    "AuthenticatedUser",
    "TokenPayload",
    # Quote
    "INVOICEABLE_STATUSES",
    "VALID_TRANSITIONS",
    "ItemCategory",
    "QuoteCreate",
    "QuoteDetailsUpdate",
    "QuoteItemCreate",
    "QuoteItemRead",
    "QuoteItemsUpdate",
    "QuoteList",
    "QuoteRead",
    "QuoteStatus",
    "QuoteStatusUpdate",
    # Invoice
    "InvoiceList",
    "InvoiceRead",
    "InvoiceStatus",
    "InvoiceStatusUpdate",
    # Business profile
    "BusinessProfileRead",
    "BusinessProfileUpdate",
    # Usage
    "QuotaLimits",
    "SubscriptionStatus",
    "UsageKind",
    "UsageSummary",
    # Email
    "EmailErrorResponse",
    "EmailSendResponse",
    "InvoiceEmailPayload",
    "QuoteEmailPayload",
    "SendInvoiceRequest",
    "SendQuoteRequest",
]
