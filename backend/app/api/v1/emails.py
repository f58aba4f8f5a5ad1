"""
FastAPI router for quote/invoice email dispatch
Project: JobQuote (Quote & Invoice Backend)

The mobile client posts the full quote or invoice graph it is showing.
Responses keep the contract the client already relies on:
{success, emailId, message} on 200 and {error, details} otherwise.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentUser
from app.core.exceptions import (
    BusinessValidationError,
    EmailDeliveryError,
    ServiceUnavailableError,
)
from app.schemas.email import (
    EmailErrorResponse,
    EmailSendResponse,
    SendInvoiceRequest,
    SendQuoteRequest,
)
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Email"])

ERROR_RESPONSES = {
    400: {"model": EmailErrorResponse, "description": "Invalid JSON, missing or inconsistent data"},
    502: {"model": EmailErrorResponse, "description": "Email provider error"},
    503: {"model": EmailErrorResponse, "description": "Email service not configured"},
}


def get_email_service() -> EmailService:
    """Dependency returning an EmailService instance."""
    return EmailService()


def _error(status_code: int, error: str, details) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=EmailErrorResponse(error=error, details=str(details) if details else None).model_dump(),
    )


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg')}" if location else err.get("msg", "")


async def _read_json(request: Request):
    body = await request.body()
    return json.loads(body or b"null")


async def _dispatch(send, payload) -> JSONResponse:
    """Run a send and map its failures to {error, details} responses."""
    try:
        result: EmailSendResponse = await send(payload)
    except BusinessValidationError as e:
        logger.warning("Refused inconsistent email payload: %s", e.detail)
        return _error(status.HTTP_400_BAD_REQUEST, "Inconsistent payload", e.detail)
    except ServiceUnavailableError as e:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, e.detail, (e.extra or {}).get("details"))
    except EmailDeliveryError as e:
        return _error(status.HTTP_502_BAD_GATEWAY, e.detail, (e.extra or {}).get("details"))
    return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(by_alias=True))


@router.post(
    "/send-quote",
    name="send_quote",
    summary="Send a quote email",
    description="Send the quote in the body to its client.",
    response_model=EmailSendResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_200_OK,
)
async def send_quote(
    request: Request,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: EmailService = Depends(get_email_service),
) -> JSONResponse:
    try:
        body = await _read_json(request)
    except ValueError as e:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON in request body", e)

    try:
        data = SendQuoteRequest.model_validate(body)
    except PydanticValidationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required quote data", _first_error(e))

    return await _dispatch(
        lambda quote: service.send_quote(db=db, user_id=user.id, quote=quote),
        data.quote,
    )


@router.post(
    "/send-invoice",
    name="send_invoice",
    summary="Send an invoice email",
    description="Send the invoice in the body to the client of its quote.",
    response_model=EmailSendResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_200_OK,
)
async def send_invoice(
    request: Request,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: EmailService = Depends(get_email_service),
) -> JSONResponse:
    try:
        body = await _read_json(request)
    except ValueError as e:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid JSON in request body", e)

    try:
        data = SendInvoiceRequest.model_validate(body)
    except PydanticValidationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing required invoice data", _first_error(e))

    return await _dispatch(
        lambda invoice: service.send_invoice(db=db, user_id=user.id, invoice=invoice),
        data.invoice,
    )
