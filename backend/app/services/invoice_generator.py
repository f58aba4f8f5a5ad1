"""
Invoice generator
Project: JobQuote (Quote & Invoice Backend)

Derives at most one invoice per quote.

The existence check before the insert is only an optimisation: the unique
constraint on invoices.quote_id is what guarantees a single invoice when
two requests race (double tap, two devices). The losing insert is turned
into InvoiceAlreadyExistsError, the same error as the pre-check.
"""

import datetime
import logging
import secrets
import uuid
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    InvoiceAlreadyExistsError,
    NotFoundError,
    QuoteNotInvoiceableError,
)
from app.models.invoice import Invoice
from app.models.quote import Quote
from app.schemas.invoice import InvoiceList, InvoiceStatus
from app.schemas.quote import INVOICEABLE_STATUSES, QuoteStatus
from app.schemas.usage import UsageKind
from app.services.quota_tracker import QuotaTracker

logger = logging.getLogger(__name__)

# Attempts at finding a free invoice number
MAX_NUMBER_ATTEMPTS = 5

QUOTE_UNIQUE_CONSTRAINT = "uq_invoices_quote_id"
NUMBER_UNIQUE_CONSTRAINT = "uq_invoices_invoice_number"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _local_date(now: datetime.datetime) -> datetime.date:
    """Calendar date of `now` in the business timezone."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)
    return now.astimezone(ZoneInfo(settings.quota_timezone)).date()


# ------------------------------------------------------------
# Pure operations
# ------------------------------------------------------------

def generate_invoice_number(now: Optional[datetime.datetime] = None) -> str:
    """
    Generate a human readable invoice number.

    Format: INV-YYMMDD-XXXXXX (random hex suffix, e.g. INV-261014-3FA9C2).
    Unique per invoice; collisions are caught by the unique constraint
    and retried with a new number.
    """
    now = now or _utcnow()
    return f"INV-{_local_date(now):%y%m%d}-{secrets.token_hex(3).upper()}"


def create_invoice(
    quote: Quote,
    existing: Optional[Invoice],
    now: Optional[datetime.datetime] = None,
    payment_terms_days: Optional[int] = None,
) -> Invoice:
    """
    Build the invoice of a quote.

    Args:
        quote: Source quote (must be sent or approved)
        existing: Result of the lookup of an invoice for this quote
        now: Creation time (default: current UTC time)
        payment_terms_days: Days until due (default: settings.invoice_payment_terms_days)

    Returns:
        Unsaved Invoice, status unpaid, total frozen from the quote

    Raises:
        QuoteNotInvoiceableError: If the quote is draft or rejected
        InvoiceAlreadyExistsError: If `existing` is not None
    """
    now = now or _utcnow()
    if payment_terms_days is None:
        payment_terms_days = settings.invoice_payment_terms_days

    if QuoteStatus(quote.status) not in INVOICEABLE_STATUSES:
        raise QuoteNotInvoiceableError(extra={"status": quote.status})
    if existing is not None:
        raise InvoiceAlreadyExistsError(extra={"invoice_id": str(existing.id)})

    return Invoice(
        id=uuid.uuid4(),
        user_id=quote.user_id,
        quote_id=quote.id,
        invoice_number=generate_invoice_number(now),
        total=quote.total,
        due_date=_local_date(now) + datetime.timedelta(days=payment_terms_days),
        status=InvoiceStatus.UNPAID.value,
        created_at=now,
        updated_at=now,
    )


def mark_paid(invoice: Invoice, now: Optional[datetime.datetime] = None) -> Invoice:
    """
    Mark an unpaid invoice as paid.

    Raises:
        ConflictError: If the invoice is already paid
    """
    now = now or _utcnow()
    if InvoiceStatus(invoice.status) != InvoiceStatus.UNPAID:
        raise ConflictError(f"Invoice {invoice.invoice_number} is already paid")
    invoice.status = InvoiceStatus.PAID.value
    invoice.paid_at = now
    invoice.updated_at = now
    return invoice


def _violated_constraint(error: IntegrityError) -> Optional[str]:
    message = str(error.orig) if error.orig is not None else str(error)
    for name in (QUOTE_UNIQUE_CONSTRAINT, NUMBER_UNIQUE_CONSTRAINT):
        if name in message:
            return name
    return None


# ------------------------------------------------------------
# Service
# ------------------------------------------------------------

class InvoiceService:
    """
    Service for invoice operations.

    Provides async methods working on the database, with no dependency
    on FastAPI. Every query is scoped to the owning user.

    Implements:
    - At-most-once invoice creation per quote (quota gated)
    - Idempotent "view invoice" (get or create)
    - Listing, lookup and payment marking
    """

    def __init__(self, quota_tracker: Optional[QuotaTracker] = None):
        self.quota = quota_tracker or QuotaTracker()

    async def _get_quote(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> Quote:
        result = await db.execute(
            select(Quote).where(Quote.id == quote_id, Quote.user_id == user_id)
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError(f"Quote {quote_id} not found")
        return quote

    async def get_by_quote(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> Optional[Invoice]:
        """
        Unique lookup of the invoice of a quote.

        Returns:
            The invoice, or None if the quote has none yet
        """
        result = await db.execute(
            select(Invoice).where(Invoice.quote_id == quote_id, Invoice.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_invoice(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
        now: Optional[datetime.datetime] = None,
    ) -> Invoice:
        """
        Create the invoice of a quote.

        Steps:
        1. Load the quote (owner scoped)
        2. Look up an existing invoice
        3. Check status and existence
        4. Consume one unit of the monthly invoice quota
        5. Insert; a unique violation on quote_id means another request won

        Steps 4 and 5 share a savepoint so a lost race also gives back the
        quota unit.

        Args:
            db: Database session
            user_id: UUID of the owner
            quote_id: UUID of the quote
            now: Creation time (default: current UTC time)

        Returns:
            Invoice: The new invoice (flushed, not committed)

        Raises:
            NotFoundError: Quote not found
            QuoteNotInvoiceableError: Quote is draft or rejected
            InvoiceAlreadyExistsError: Quote already invoiced
            QuotaExceededError: Monthly invoice limit reached
        """
        now = now or _utcnow()

        quote = await self._get_quote(db, user_id, quote_id)
        existing = await self.get_by_quote(db, user_id, quote.id)
        invoice = create_invoice(quote, existing, now)

        async with db.begin_nested():
            await self.quota.check_and_increment(db, user_id, UsageKind.INVOICE, now)
            await self._insert(db, invoice, now)

        logger.info(
            "Invoice %s created for quote %s (total %s, due %s)",
            invoice.invoice_number, quote.id, invoice.total, invoice.due_date,
        )
        return invoice

    async def _insert(self, db: AsyncSession, invoice: Invoice, now: datetime.datetime) -> None:
        """Insert the invoice, drawing a new number on a number collision."""
        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            try:
                async with db.begin_nested():
                    db.add(invoice)
                    await db.flush()
                return
            except IntegrityError as e:
                constraint = _violated_constraint(e)
                if constraint == QUOTE_UNIQUE_CONSTRAINT:
                    logger.info("Invoice for quote %s created concurrently", invoice.quote_id)
                    raise InvoiceAlreadyExistsError()
                if constraint != NUMBER_UNIQUE_CONSTRAINT:
                    raise
                logger.warning(
                    "Invoice number %s already used (attempt %s)",
                    invoice.invoice_number, attempt,
                )
                invoice.invoice_number = generate_invoice_number(now)

        raise ConflictError("Could not allocate a unique invoice number")

    async def get_or_create_invoice_view(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
        now: Optional[datetime.datetime] = None,
    ) -> tuple[Invoice, bool]:
        """
        Return the invoice of a quote, creating it if needed.

        Safe to call repeatedly: an existing invoice is returned unchanged,
        and losing a creation race returns the winner's invoice.

        Returns:
            (invoice, created)
        """
        existing = await self.get_by_quote(db, user_id, quote_id)
        if existing is not None:
            return existing, False

        try:
            invoice = await self.create_invoice(db, user_id, quote_id, now)
        except InvoiceAlreadyExistsError:
            winner = await self.get_by_quote(db, user_id, quote_id)
            if winner is None:
                raise
            return winner, False
        return invoice, True

    async def get_all(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        status_filter: Optional[InvoiceStatus] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> InvoiceList:
        """
        Paginated list of the user's invoices, newest first.

        Args:
            db: Database session
            user_id: UUID of the owner
            status_filter: Only invoices in this status
            page: Page number
            per_page: Items per page

        Returns:
            InvoiceList
        """
        conditions = [Invoice.user_id == user_id]
        if status_filter is not None:
            conditions.append(Invoice.status == InvoiceStatus(status_filter).value)

        count_result = await db.execute(select(func.count(Invoice.id)).where(*conditions))
        total = count_result.scalar() or 0

        stmt = (
            select(Invoice)
            .where(*conditions)
            .order_by(Invoice.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(stmt)
        invoices = result.scalars().all()

        return InvoiceList(items=list(invoices), total=total, page=page, per_page=per_page)

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        invoice_id: uuid.UUID,
    ) -> Invoice:
        """
        Get an invoice by ID.

        Raises:
            NotFoundError: Invoice not found
        """
        result = await db.execute(
            select(Invoice).where(Invoice.id == invoice_id, Invoice.user_id == user_id)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found")
        return invoice

    async def mark_paid(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        invoice_id: uuid.UUID,
        now: Optional[datetime.datetime] = None,
    ) -> Invoice:
        """
        Mark an invoice as paid.

        Raises:
            NotFoundError: Invoice not found
            ConflictError: Invoice already paid
        """
        invoice = await self.get_by_id(db, user_id, invoice_id)
        mark_paid(invoice, now)
        await db.flush()
        logger.info("Invoice %s marked as paid", invoice.invoice_number)
        return invoice
