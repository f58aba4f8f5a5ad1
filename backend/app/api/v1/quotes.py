"""
FastAPI router for Quotes
Project: JobQuote (Quote & Invoice Backend)

API endpoints for quotes: creation, item edits, status changes,
invoice generation and email dispatch.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentUser
from app.schemas.email import EmailSendResponse
from app.schemas.invoice import InvoiceRead
from app.schemas.quote import (
    QuoteCreate,
    QuoteDetailsUpdate,
    QuoteItemsUpdate,
    QuoteList,
    QuoteRead,
    QuoteStatus,
    QuoteStatusUpdate,
)
from app.services.email_service import EmailService
from app.services.invoice_generator import InvoiceService
from app.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_quote_service() -> QuoteService:
    """Dependency returning a QuoteService instance."""
    return QuoteService()


def get_invoice_service() -> InvoiceService:
    """Dependency returning an InvoiceService instance."""
    return InvoiceService()


def get_email_service() -> EmailService:
    """Dependency returning an EmailService instance."""
    return EmailService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/",
    name="quotes_list",
    summary="List quotes",
    description="Paginated list of the user's quotes, filterable by status and client.",
    response_model=QuoteList,
    status_code=status.HTTP_200_OK,
)
async def get_quotes(
    user: CurrentUser,
    status_filter: Optional[QuoteStatus] = Query(None, alias="status", description="Filter by status"),
    client_id: Optional[uuid.UUID] = Query(None, description="Filter by client"),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteList:
    return await service.get_all(
        db=db,
        user_id=user.id,
        status_filter=status_filter,
        client_id=client_id,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{quote_id}",
    name="quote_detail",
    summary="Quote detail",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def get_quote(
    quote_id: uuid.UUID,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.get_by_id(db=db, user_id=user.id, quote_id=quote_id)
    return QuoteRead.model_validate(quote)


@router.post(
    "/",
    name="quote_create",
    summary="Create quote",
    description=(
        "Create a draft quote. Counts against the weekly quote limit of "
        "free-tier users (402 when reached)."
    ),
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_quote(
    data: QuoteCreate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    """
    Create a draft quote.

    Raises:
        ValidationError: Missing title, description, client or items (422)
        InvalidItemError: Invalid item (422)
        QuotaExceededError: Weekly limit reached (402)
    """
    quote = await service.create(db=db, user_id=user.id, data=data)
    await db.commit()
    return QuoteRead.model_validate(quote)


@router.patch(
    "/{quote_id}",
    name="quote_update",
    summary="Edit quote details",
    description="Edit the job title and description of a draft quote.",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def update_quote(
    quote_id: uuid.UUID,
    data: QuoteDetailsUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.update_details(db=db, user_id=user.id, quote_id=quote_id, data=data)
    await db.commit()
    return QuoteRead.model_validate(quote)


@router.put(
    "/{quote_id}/items",
    name="quote_items_replace",
    summary="Replace quote items",
    description="Replace all items of a draft quote and recompute its totals (409 if not draft).",
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def replace_quote_items(
    quote_id: uuid.UUID,
    data: QuoteItemsUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.update_items(db=db, user_id=user.id, quote_id=quote_id, items=data.items)
    await db.commit()
    return QuoteRead.model_validate(quote)


@router.patch(
    "/{quote_id}/status",
    name="quote_status_change",
    summary="Change quote status",
    description=(
        "Allowed: draft→sent, sent→approved, sent→rejected, rejected→draft. "
        "Any other change answers 409."
    ),
    response_model=QuoteRead,
    status_code=status.HTTP_200_OK,
)
async def change_quote_status(
    quote_id: uuid.UUID,
    data: QuoteStatusUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> QuoteRead:
    quote = await service.transition(db=db, user_id=user.id, quote_id=quote_id, target=data.status)
    await db.commit()
    return QuoteRead.model_validate(quote)


@router.delete(
    "/{quote_id}",
    name="quote_delete",
    summary="Delete quote",
    description="Delete a draft or rejected quote that has no invoice.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_quote(
    quote_id: uuid.UUID,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: QuoteService = Depends(get_quote_service),
) -> None:
    await service.delete(db=db, user_id=user.id, quote_id=quote_id)
    await db.commit()


@router.post(
    "/{quote_id}/invoice",
    name="quote_invoice",
    summary="Get or create the invoice of a quote",
    description=(
        "Return the invoice of the quote, creating it on first call (201). "
        "Further calls return the same invoice (200)."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def get_or_create_invoice(
    quote_id: uuid.UUID,
    user: CurrentUser,
    response: Response,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """
    Idempotent "view invoice" action.

    Raises:
        NotFoundError: Quote not found (404)
        QuoteNotInvoiceableError: Quote is draft or rejected (409)
        QuotaExceededError: Monthly invoice limit reached (402)
    """
    invoice, created = await service.get_or_create_invoice_view(db=db, user_id=user.id, quote_id=quote_id)
    if created:
        await db.commit()
    else:
        response.status_code = status.HTTP_200_OK
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{quote_id}/email",
    name="quote_email",
    summary="Email quote to client",
    description="Send the quote to the client's email address.",
    response_model=EmailSendResponse,
    status_code=status.HTTP_200_OK,
)
async def email_quote(
    quote_id: uuid.UUID,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: EmailService = Depends(get_email_service),
) -> EmailSendResponse:
    return await service.send_stored_quote(db=db, user_id=user.id, quote_id=quote_id)
