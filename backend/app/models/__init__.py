"""
SQLAlchemy database models
Project: JobQuote (Quote & Invoice Backend)

Central import of every model, for metadata creation and general use.

Models:
- Client: Client registry
- Quote: Priced proposals
- QuoteItem: Quote line items
- Invoice: Invoices derived from quotes
- BusinessProfile: Billing identity of the user
- UsageEvent: Metered creation events
- Subscription: Subscription tier
- EmailLog: Email audit log
"""

# SQLAlchemy 2.0 declarative Base
# Defined here so it is available to every model
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for every SQLAlchemy model."""
    pass


from app.models.client import Client
from app.models.quote import Quote, QuoteItem
from app.models.invoice import Invoice
from app.models.business_profile import BusinessProfile
from app.models.usage import UsageEvent, Subscription
from app.models.email_log import EmailLog

__all__ = [
    "Base",
    "Client",
    "Quote",
    "QuoteItem",
    "Invoice",
    "BusinessProfile",
    "UsageEvent",
    "Subscription",
    "EmailLog",
]
