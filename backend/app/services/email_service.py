"""
Service for quote/invoice email dispatch
Project: JobQuote (Quote & Invoice Backend)

Builds the denormalised quote/invoice payload, checks it is internally
consistent, renders a plain-text message with Jinja2 and posts it to the
Resend API.

The audit row in email_logs is best-effort: a failure to write it is
logged and never fails a send that already happened.
"""

import datetime
import logging
import os
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import requests
from fastapi.concurrency import run_in_threadpool
from jinja2 import Environment, FileSystemLoader
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    BusinessValidationError,
    EmailDeliveryError,
    NotFoundError,
    ServiceUnavailableError,
)
from app.models import BusinessProfile, EmailLog, Invoice, Quote
from app.schemas.email import (
    EmailBusinessProfile,
    EmailClient,
    EmailQuoteItem,
    EmailSendResponse,
    InvoiceEmailPayload,
    QuoteEmailPayload,
)
from app.schemas.quote import INVOICEABLE_STATUSES
from app.services.money import ZERO, compute_tax, round2

logger = logging.getLogger(__name__)

# Path to the templates folder
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")


# ------------------------------------------------------------
# Template filters
# ------------------------------------------------------------

def format_money(amount) -> str:
    """$1,234.50"""
    return f"${round2(amount):,.2f}"


def format_quantity(quantity) -> str:
    """2 rather than 2.00, 1.5 rather than 1.50."""
    value = Decimal(str(quantity)).normalize()
    return f"{value:f}"


def format_long_date(value: datetime.date) -> str:
    """14 October 2026"""
    return f"{value.day} {value:%B %Y}"


@dataclass(frozen=True)
class RenderedEmail:
    """A message ready to send."""
    sender: str
    to: str
    subject: str
    text: str


# ------------------------------------------------------------
# Payload building and checking
# ------------------------------------------------------------

def build_quote_payload(quote: Quote, profile: Optional[BusinessProfile]) -> QuoteEmailPayload:
    """
    Build the email payload of a stored quote.

    Args:
        quote: Quote with client and items loaded
        profile: Business profile of the owner, if set up

    Returns:
        QuoteEmailPayload
    """
    business = (
        EmailBusinessProfile.model_validate(profile, from_attributes=True)
        if profile is not None
        else EmailBusinessProfile()
    )
    return QuoteEmailPayload(
        id=quote.id,
        job_title=quote.job_title,
        description=quote.description,
        subtotal=quote.subtotal,
        gst_amount=quote.tax_amount,
        total=quote.total,
        status=quote.status,
        created_at=quote.created_at,
        clients=EmailClient(
            name=quote.client.name,
            email=quote.client.email,
            phone=quote.client.phone,
        ),
        quote_items=[
            EmailQuoteItem(
                name=item.name,
                category=item.category,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.line_total,
            )
            for item in quote.items
        ],
        business_profile=business,
    )


def build_invoice_payload(
    invoice: Invoice,
    quote: Quote,
    profile: Optional[BusinessProfile],
) -> InvoiceEmailPayload:
    """Build the email payload of a stored invoice and its quote."""
    quote_payload = build_quote_payload(quote, profile)
    return InvoiceEmailPayload(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        total=invoice.total,
        due_date=invoice.due_date,
        status=invoice.status,
        created_at=invoice.created_at,
        quotes=quote_payload,
        business_profile=quote_payload.business_profile,
    )


def check_quote_payload(quote: QuoteEmailPayload) -> None:
    """
    Check that the totals of a quote payload add up.

    Line totals must equal quantity x unit price, the subtotal their sum,
    a non-zero GST the configured rate of the subtotal, and the total
    subtotal + GST.

    Raises:
        BusinessValidationError: On the first inconsistency found
    """
    subtotal = ZERO
    for item in quote.quote_items:
        expected = round2(item.quantity * item.unit_price)
        if round2(item.total) != expected:
            raise BusinessValidationError(
                f"Item '{item.name}' total {item.total} does not match quantity x unit price ({expected})"
            )
        subtotal += expected

    if quote.quote_items and round2(quote.subtotal) != subtotal:
        raise BusinessValidationError(
            f"Quote subtotal {quote.subtotal} does not match the items ({subtotal})"
        )
    if quote.gst_amount < 0:
        raise BusinessValidationError("GST amount must not be negative")
    # Zero GST is a quote without tax; any other amount must match the rate
    if quote.gst_amount != 0:
        expected_gst = compute_tax(quote.subtotal, settings.gst_rate)
        if round2(quote.gst_amount) != expected_gst:
            raise BusinessValidationError(
                f"GST amount {quote.gst_amount} does not match the GST rate on the subtotal ({expected_gst})"
            )
    if round2(quote.total) != round2(quote.subtotal) + round2(quote.gst_amount):
        raise BusinessValidationError(
            f"Quote total {quote.total} does not equal subtotal + GST"
        )


def check_invoice_payload(invoice: InvoiceEmailPayload) -> None:
    """
    Check that an invoice payload is consistent with its quote.

    Raises:
        BusinessValidationError: On the first inconsistency found
    """
    check_quote_payload(invoice.quotes)
    if invoice.quotes.status not in INVOICEABLE_STATUSES:
        raise BusinessValidationError(
            f"Quote status '{invoice.quotes.status.value}' cannot have an invoice"
        )
    if round2(invoice.total) != round2(invoice.quotes.total):
        raise BusinessValidationError(
            f"Invoice total {invoice.total} does not match the quote total {invoice.quotes.total}"
        )


# ------------------------------------------------------------
# Service
# ------------------------------------------------------------

class EmailService:
    """
    Sends quote and invoice emails through Resend.

    The HTTP call is blocking (requests) and runs in the thread pool.
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.http = session or requests.Session()
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["money"] = format_money
        self.env.filters["qty"] = format_quantity
        self.env.filters["long_date"] = format_long_date

    # ------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------

    @staticmethod
    def _sender(business: EmailBusinessProfile, mailbox: str) -> str:
        name = business.business_name or settings.email_default_sender_name
        return f"{name} <{mailbox}@{settings.email_sender_domain}>"

    def render_quote(self, quote: QuoteEmailPayload) -> RenderedEmail:
        """Render the quote message."""
        business = quote.business_profile
        business_name = business.business_name or settings.email_default_sender_name
        text = self.env.get_template("email/quote.txt").render(
            quote=quote,
            client=quote.clients,
            items=quote.quote_items,
            business=business,
            business_name=business_name,
        )
        return RenderedEmail(
            sender=self._sender(business, "quotes"),
            to=quote.clients.email,
            subject=f"Quote for {quote.job_title} - {business_name}",
            text=text,
        )

    def render_invoice(self, invoice: InvoiceEmailPayload) -> RenderedEmail:
        """Render the invoice message."""
        business = invoice.business_profile
        business_name = business.business_name or settings.email_default_sender_name
        text = self.env.get_template("email/invoice.txt").render(
            invoice=invoice,
            quote=invoice.quotes,
            client=invoice.quotes.clients,
            items=invoice.quotes.quote_items,
            business=business,
            business_name=business_name,
        )
        return RenderedEmail(
            sender=self._sender(business, "invoices"),
            to=invoice.quotes.clients.email,
            subject=f"Invoice {invoice.invoice_number} - {business_name}",
            text=text,
        )

    # ------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------

    def _post(self, message: RenderedEmail) -> str:
        """
        Post a message to Resend (blocking).

        Returns:
            Delivery id assigned by Resend

        Raises:
            ServiceUnavailableError: API key not configured
            EmailDeliveryError: Network error or provider refusal
        """
        if not settings.resend_api_key:
            logger.error("RESEND_API_KEY is not configured")
            raise ServiceUnavailableError(
                "Email service not configured",
                extra={"details": "RESEND_API_KEY environment variable is missing"},
            )

        try:
            response = self.http.post(
                settings.resend_api_url,
                json={
                    "from": message.sender,
                    "to": [message.to],
                    "subject": message.subject,
                    "text": message.text,
                },
                headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                timeout=settings.email_timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("Email provider unreachable: %s", e)
            raise EmailDeliveryError(extra={"details": str(e)}) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            details = body.get("message") or "Unknown email service error"
            logger.warning("Resend refused email to %s (%s): %s", message.to, response.status_code, details)
            raise EmailDeliveryError(extra={"details": details, "status": response.status_code})

        return body.get("id")

    async def deliver(self, message: RenderedEmail) -> str:
        """Send a rendered message, returning the provider's delivery id."""
        email_id = await run_in_threadpool(self._post, message)
        logger.info("Email sent to %s (id %s): %s", message.to, email_id, message.subject)
        return email_id

    async def _owned_id(self, db: AsyncSession, model, record_id, user_id) -> Optional[uuid.UUID]:
        # Ids in a posted payload are only trusted for the user's own records
        if record_id is None or user_id is None:
            return None
        result = await db.execute(
            select(model.id).where(model.id == record_id, model.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def log_email(
        self,
        db: AsyncSession,
        *,
        user_id: Optional[uuid.UUID],
        email_type: str,
        recipient: str,
        provider_id: Optional[str],
        quote_id: Optional[uuid.UUID] = None,
        invoice_id: Optional[uuid.UUID] = None,
        verify_owner: bool = True,
    ) -> None:
        """
        Write the audit row. Never raises on database errors.

        With verify_owner, a quote or invoice id the user does not own is
        stored as None.
        """
        try:
            if verify_owner:
                quote_id = await self._owned_id(db, Quote, quote_id, user_id)
                invoice_id = await self._owned_id(db, Invoice, invoice_id, user_id)
            db.add(
                EmailLog(
                    user_id=user_id,
                    quote_id=quote_id,
                    invoice_id=invoice_id,
                    recipient_email=recipient,
                    email_type=email_type,
                    provider_id=provider_id,
                    status="sent",
                    sent_at=datetime.datetime.now(datetime.timezone.utc),
                )
            )
            await db.commit()
        except SQLAlchemyError as e:
            logger.warning("Failed to log %s email to %s: %s", email_type, recipient, e)
            await db.rollback()

    # ------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------

    async def send_quote(
        self,
        db: AsyncSession,
        user_id: Optional[uuid.UUID],
        quote: QuoteEmailPayload,
        verify_owner: bool = True,
    ) -> EmailSendResponse:
        """
        Check, render and send a quote email.

        Raises:
            BusinessValidationError: Inconsistent payload
            ServiceUnavailableError: Email service not configured
            EmailDeliveryError: Provider error
        """
        check_quote_payload(quote)
        message = self.render_quote(quote)
        email_id = await self.deliver(message)
        await self.log_email(
            db,
            user_id=user_id,
            email_type="quote",
            recipient=message.to,
            provider_id=email_id,
            quote_id=quote.id,
            verify_owner=verify_owner,
        )
        return EmailSendResponse(
            success=True,
            email_id=email_id,
            message=f"Quote sent successfully to {message.to}",
        )

    async def send_invoice(
        self,
        db: AsyncSession,
        user_id: Optional[uuid.UUID],
        invoice: InvoiceEmailPayload,
        verify_owner: bool = True,
    ) -> EmailSendResponse:
        """
        Check, render and send an invoice email.

        Raises:
            BusinessValidationError: Inconsistent payload
            ServiceUnavailableError: Email service not configured
            EmailDeliveryError: Provider error
        """
        check_invoice_payload(invoice)
        message = self.render_invoice(invoice)
        email_id = await self.deliver(message)
        await self.log_email(
            db,
            user_id=user_id,
            email_type="invoice",
            recipient=message.to,
            provider_id=email_id,
            quote_id=invoice.quotes.id,
            invoice_id=invoice.id,
            verify_owner=verify_owner,
        )
        return EmailSendResponse(
            success=True,
            email_id=email_id,
            message=f"Invoice sent successfully to {message.to}",
        )

    async def _find_profile(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[BusinessProfile]:
        result = await db.execute(
            select(BusinessProfile).where(BusinessProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def send_stored_quote(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> EmailSendResponse:
        """
        Send the email of a stored quote.

        Raises:
            NotFoundError: Quote not found
        """
        result = await db.execute(
            select(Quote).where(Quote.id == quote_id, Quote.user_id == user_id)
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError(f"Quote {quote_id} not found")

        profile = await self._find_profile(db, user_id)
        return await self.send_quote(db, user_id, build_quote_payload(quote, profile), verify_owner=False)

    async def send_stored_invoice(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        invoice_id: uuid.UUID,
    ) -> EmailSendResponse:
        """
        Send the email of a stored invoice.

        Raises:
            NotFoundError: Invoice or quote not found
        """
        result = await db.execute(
            select(Invoice).where(Invoice.id == invoice_id, Invoice.user_id == user_id)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")

        quote_result = await db.execute(
            select(Quote).where(Quote.id == invoice.quote_id, Quote.user_id == user_id)
        )
        quote = quote_result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError(f"Quote {invoice.quote_id} not found")

        profile = await self._find_profile(db, user_id)
        return await self.send_invoice(
            db, user_id, build_invoice_payload(invoice, quote, profile), verify_owner=False
        )
