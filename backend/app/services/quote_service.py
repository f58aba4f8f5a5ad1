"""
Service Layer for Quotes
Project: JobQuote (Quote & Invoice Backend)

Persists the operations of the quote state machine.

Creation order: validate (state machine) → quota gate → insert. All three
run in the caller's transaction, so a refused quota leaves nothing behind.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError
from app.models import Client, Invoice, Quote
from app.schemas.quote import (
    QuoteCreate,
    QuoteDetailsUpdate,
    QuoteItemCreate,
    QuoteList,
    QuoteStatus,
)
from app.schemas.usage import UsageKind
from app.services import quote_state_machine
from app.services.business_profile_service import BusinessProfileService
from app.services.quota_tracker import QuotaTracker

logger = logging.getLogger(__name__)

# Quotes that can still be deleted
DELETABLE_STATUSES = frozenset({QuoteStatus.DRAFT, QuoteStatus.REJECTED})


class QuoteService:
    """
    Service for quote operations.

    Provides async methods working on the database, with no dependency
    on FastAPI. State rules live in app.services.quote_state_machine;
    this class loads, gates and flushes.
    """

    def __init__(
        self,
        quota_tracker: Optional[QuotaTracker] = None,
        profile_service: Optional[BusinessProfileService] = None,
    ):
        self.quota = quota_tracker or QuotaTracker()
        self.profiles = profile_service or BusinessProfileService()

    async def _find_client(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        client_id: Optional[uuid.UUID],
    ) -> Optional[Client]:
        if client_id is None:
            return None
        result = await db.execute(
            select(Client).where(Client.id == client_id, Client.user_id == user_id)
        )
        client = result.scalar_one_or_none()
        if client is None:
            raise NotFoundError(f"Client {client_id} not found")
        return client

    async def get_all(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        status_filter: Optional[QuoteStatus] = None,
        client_id: Optional[uuid.UUID] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> QuoteList:
        """
        Paginated list of the user's quotes, newest first.

        Args:
            db: Database session
            user_id: UUID of the owner
            status_filter: Only quotes in this status
            client_id: Only quotes of this client
            page: Page number
            per_page: Items per page

        Returns:
            QuoteList
        """
        conditions = [Quote.user_id == user_id]
        if status_filter is not None:
            conditions.append(Quote.status == QuoteStatus(status_filter).value)
        if client_id is not None:
            conditions.append(Quote.client_id == client_id)

        count_result = await db.execute(select(func.count(Quote.id)).where(*conditions))
        total = count_result.scalar() or 0

        stmt = (
            select(Quote)
            .where(*conditions)
            .order_by(Quote.created_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(stmt)
        quotes = result.scalars().all()

        return QuoteList(items=list(quotes), total=total, page=page, per_page=per_page)

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> Quote:
        """
        Get a quote by ID with client and items loaded.

        Raises:
            NotFoundError: If the quote does not exist or belongs to another user
        """
        result = await db.execute(
            select(Quote).where(Quote.id == quote_id, Quote.user_id == user_id)
        )
        quote = result.scalar_one_or_none()
        if quote is None:
            raise NotFoundError(f"Quote {quote_id} not found")
        return quote

    async def create(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        data: QuoteCreate,
        now: Optional[datetime.datetime] = None,
    ) -> Quote:
        """
        Create a draft quote.

        GST follows the business profile unless the request sets it.

        Args:
            db: Database session
            user_id: UUID of the owner
            data: Quote fields and items
            now: Creation time (default: current UTC time)

        Returns:
            Quote: The new quote (flushed, not committed)

        Raises:
            NotFoundError: Client not found
            ValidationError: Missing title/description/client/items
            InvalidItemError: Invalid item
            QuotaExceededError: Weekly quote limit reached
        """
        now = now or datetime.datetime.now(datetime.timezone.utc)

        client = await self._find_client(db, user_id, data.client_id)

        tax_enabled = data.tax_enabled
        if tax_enabled is None:
            profile = await self.profiles.find(db, user_id)
            tax_enabled = profile.gst_enabled if profile is not None else True

        quote = quote_state_machine.create(
            owner_id=user_id,
            client=client,
            job_title=data.job_title,
            description=data.description,
            items=data.items,
            tax_enabled=tax_enabled,
            tax_rate=settings.gst_rate,
            now=now,
        )

        await self.quota.check_and_increment(db, user_id, UsageKind.QUOTE, now)

        db.add(quote)
        await db.flush()

        logger.info(
            "Created quote %s for client %s (%s items, total %s)",
            quote.id, quote.client_id, len(quote.items), quote.total,
        )
        return quote

    async def update_details(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
        data: QuoteDetailsUpdate,
    ) -> Quote:
        """
        Edit title/description of a draft quote.

        Raises:
            NotFoundError: Quote not found
            QuoteLockedError: Quote is not a draft
            ValidationError: Blank title or description
        """
        quote = await self.get_by_id(db, user_id, quote_id)
        quote_state_machine.update_details(quote, data.job_title, data.description)
        await db.flush()
        return quote

    async def update_items(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
        items: list[QuoteItemCreate],
    ) -> Quote:
        """
        Replace the items of a draft quote.

        Raises:
            NotFoundError: Quote not found
            QuoteLockedError: Quote is not a draft
            InvalidItemError: Invalid item
        """
        quote = await self.get_by_id(db, user_id, quote_id)
        quote_state_machine.update_items(quote, items)
        await db.flush()
        logger.info("Quote %s items replaced (%s items, total %s)", quote.id, len(quote.items), quote.total)
        return quote

    async def transition(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
        target: QuoteStatus,
    ) -> Quote:
        """
        Change the status of a quote.

        Raises:
            NotFoundError: Quote not found
            IllegalTransitionError: Edge not allowed
            EmptyQuoteError: Sending a quote without items
        """
        quote = await self.get_by_id(db, user_id, quote_id)
        try:
            quote_state_machine.transition(quote, target)
        except ConflictError as e:
            logger.warning("Quote %s: refused status change to %s: %s", quote.id, target, e.detail)
            raise
        await db.flush()
        return quote

    async def delete(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        quote_id: uuid.UUID,
    ) -> None:
        """
        Delete a draft or rejected quote and its items.

        Raises:
            NotFoundError: Quote not found
            ConflictError: Quote was sent/approved or has an invoice
        """
        quote = await self.get_by_id(db, user_id, quote_id)

        if QuoteStatus(quote.status) not in DELETABLE_STATUSES:
            raise ConflictError(
                f"Quotes in status '{quote.status}' cannot be deleted",
                extra={"status": quote.status},
            )

        invoice_result = await db.execute(
            select(func.count(Invoice.id)).where(Invoice.quote_id == quote.id)
        )
        if invoice_result.scalar():
            raise ConflictError("Quotes with an invoice cannot be deleted")

        await db.delete(quote)
        await db.flush()
        logger.info("Deleted quote %s", quote_id)
