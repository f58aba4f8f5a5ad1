"""
FastAPI router for Invoices
Project: JobQuote (Quote & Invoice Backend)

Invoices are created through POST /quotes/{id}/invoice; this router lists,
reads, marks paid and emails them.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentUser
from app.core.exceptions import BusinessValidationError
from app.schemas.email import EmailSendResponse
from app.schemas.invoice import InvoiceList, InvoiceRead, InvoiceStatus, InvoiceStatusUpdate
from app.services.email_service import EmailService
from app.services.invoice_generator import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/invoices",
    tags=["Invoices"],
)


def get_invoice_service() -> InvoiceService:
    """Dependency returning an InvoiceService instance."""
    return InvoiceService()


def get_email_service() -> EmailService:
    """Dependency returning an EmailService instance."""
    return EmailService()


@router.get(
    "/",
    name="invoices_list",
    summary="List invoices",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    user: CurrentUser,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceList:
    return await service.get_all(
        db=db,
        user_id=user.id,
        status_filter=status_filter,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{invoice_id}",
    name="invoice_detail",
    summary="Invoice detail",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.get_by_id(db=db, user_id=user.id, invoice_id=invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.patch(
    "/{invoice_id}/status",
    name="invoice_status_change",
    summary="Mark invoice paid",
    description="Only unpaid → paid is allowed.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def change_invoice_status(
    invoice_id: uuid.UUID,
    data: InvoiceStatusUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """
    Mark an invoice as paid.

    Raises:
        BusinessValidationError: Target status is not "paid" (422)
        ConflictError: Invoice already paid (409)
    """
    if data.status != InvoiceStatus.PAID:
        raise BusinessValidationError("Invoices can only be marked as paid")
    invoice = await service.mark_paid(db=db, user_id=user.id, invoice_id=invoice_id)
    await db.commit()
    return InvoiceRead.model_validate(invoice)


@router.post(
    "/{invoice_id}/email",
    name="invoice_email",
    summary="Email invoice to client",
    response_model=EmailSendResponse,
    status_code=status.HTTP_200_OK,
)
async def email_invoice(
    invoice_id: uuid.UUID,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: EmailService = Depends(get_email_service),
) -> EmailSendResponse:
    return await service.send_stored_invoice(db=db, user_id=user.id, invoice_id=invoice_id)
