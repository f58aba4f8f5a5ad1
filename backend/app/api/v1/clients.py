"""
FastAPI router for the Client entity
Project: JobQuote (Quote & Invoice Backend)

API endpoints for managing the authenticated user's clients.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentUser
from app.schemas.client import (
    ClientCreate,
    ClientList,
    ClientRead,
    ClientUpdate,
)
from app.services.client_service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_client_service() -> ClientService:
    """
    Dependency returning a ClientService instance.

    Lets routers receive the service without global instances,
    which keeps them easy to test.
    """
    return ClientService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/",
    name="clients_list",
    summary="List clients",
    description="Paginated list of the user's clients, with optional search.",
    response_model=ClientList,
    status_code=status.HTTP_200_OK,
)
async def get_clients(
    user: CurrentUser,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search on name, email, phone"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientList:
    """
    Paginated list of clients.

    Args:
        user: Authenticated user
        page: Page number (default 1)
        per_page: Items per page (default 20, max 100)
        search: Optional search term
        db: Database session
        service: ClientService (injected)

    Returns:
        ClientList: Paginated list with metadata
    """
    clients, total = await service.get_all(
        db=db,
        user_id=user.id,
        page=page,
        per_page=per_page,
        search=search,
    )

    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{client_id}",
    name="client_detail",
    summary="Client detail",
    response_model=ClientRead,
    status_code=status.HTTP_200_OK,
)
async def get_client(
    client_id: uuid.UUID,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.get_by_id(db=db, user_id=user.id, client_id=client_id)
    return ClientRead.model_validate(client)


@router.post(
    "/",
    name="client_create",
    summary="Create client",
    description="Create a client. Name and a valid email are required.",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """
    Create a client.

    Raises:
        BusinessValidationError: Missing name/email or invalid email/phone (422)
    """
    client = await service.create(db=db, user_id=user.id, client_data=client_data)
    await db.commit()
    return ClientRead.model_validate(client)


@router.put(
    "/{client_id}",
    name="client_update",
    summary="Update client",
    response_model=ClientRead,
    status_code=status.HTTP_200_OK,
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.update(db=db, user_id=user.id, client_id=client_id, client_data=client_data)
    await db.commit()
    return ClientRead.model_validate(client)


@router.delete(
    "/{client_id}",
    name="client_delete",
    summary="Delete client",
    description="Delete a client. Clients with quotes cannot be deleted (409).",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_client(
    client_id: uuid.UUID,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> None:
    await service.delete(db=db, user_id=user.id, client_id=client_id)
    await db.commit()
