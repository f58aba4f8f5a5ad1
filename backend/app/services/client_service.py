"""
Service Layer for the Client entity
Project: JobQuote (Quote & Invoice Backend)

Business logic for managing a user's clients:
- Validation with a single error at a time
- Ownership scoping on every query
- Refusal to delete clients that still have quotes
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.models import Client, Quote
from app.schemas.client import ClientCreate, ClientUpdate, validate_client_fields

logger = logging.getLogger(__name__)


class ClientService:
    """
    Service for CRUD operations on clients.

    Provides async methods working on the database, with no dependency
    on FastAPI. Every method takes the owner's id and never returns
    another user's client.

    Usage with Dependency Injection:
        from app.services.client_service import ClientService

        @router.get("/clients")
        async def list_clients(service: ClientService = Depends(get_client_service)):
            return await service.get_all(db, user.id)
    """

    async def get_all(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
    ) -> tuple[list[Client], int]:
        """
        Paginated list of the user's clients, ordered by name.

        Args:
            db: Database session
            user_id: UUID of the owner
            page: Page number (default 1)
            per_page: Items per page (default 20)
            search: Optional search on name, email and phone

        Returns:
            Tuple of (clients, total count)
        """
        conditions = [Client.user_id == user_id]

        if search:
            search_term = f"%{search}%"
            conditions.append(
                or_(
                    Client.name.ilike(search_term),
                    Client.email.ilike(search_term),
                    Client.phone.ilike(search_term),
                )
            )

        query = (
            select(Client)
            .where(*conditions)
            .order_by(Client.name.asc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        result = await db.execute(query)
        clients = list(result.scalars().all())

        count_result = await db.execute(
            select(func.count()).select_from(Client).where(*conditions)
        )
        total = count_result.scalar() or 0

        logger.debug("Fetched %s of %s clients (page %s)", len(clients), total, page)
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> Client:
        """
        Get a client by ID.

        Args:
            db: Database session
            user_id: UUID of the owner
            client_id: UUID of the client

        Returns:
            Client

        Raises:
            NotFoundError: If the client does not exist or belongs to another user
        """
        result = await db.execute(
            select(Client).where(Client.id == client_id, Client.user_id == user_id)
        )
        client = result.scalar_one_or_none()

        if client is None:
            raise NotFoundError(f"Client {client_id} not found")

        return client

    async def create(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        client_data: ClientCreate,
    ) -> Client:
        """
        Create a client.

        Args:
            db: Database session
            user_id: UUID of the owner
            client_data: Client fields

        Returns:
            The new Client

        Raises:
            BusinessValidationError: On the first invalid field
        """
        validate_client_fields(client_data.name, client_data.email, client_data.phone)

        client = Client(user_id=user_id, **client_data.model_dump())
        db.add(client)
        await db.flush()
        await db.refresh(client)

        logger.info("Created client %s (%s)", client.id, client.name)
        return client

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        client_id: uuid.UUID,
        client_data: ClientUpdate,
    ) -> Client:
        """
        Update a client.

        Only the fields sent are changed; the result is validated as a whole.

        Raises:
            NotFoundError: If the client does not exist
            BusinessValidationError: On the first invalid field
        """
        client = await self.get_by_id(db, user_id, client_id)
        update_data = client_data.model_dump(exclude_unset=True)

        validate_client_fields(
            update_data.get("name", client.name),
            update_data.get("email", client.email),
            update_data.get("phone", client.phone),
        )

        for field, value in update_data.items():
            setattr(client, field, value)

        await db.flush()
        await db.refresh(client)

        logger.info("Updated client %s", client.id)
        return client

    async def delete(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        client_id: uuid.UUID,
    ) -> None:
        """
        Delete a client without quotes.

        Raises:
            NotFoundError: If the client does not exist
            ConflictError: If the client still has quotes
        """
        client = await self.get_by_id(db, user_id, client_id)

        count_result = await db.execute(
            select(func.count(Quote.id)).where(Quote.client_id == client.id)
        )
        quote_count = count_result.scalar() or 0
        if quote_count:
            logger.warning("Refused delete of client %s: %s quotes", client.id, quote_count)
            raise ConflictError(
                f"Client has {quote_count} quote(s) and cannot be deleted",
                extra={"quote_count": quote_count},
            )

        try:
            await db.delete(client)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting client %s: %s", client.id, e)
            raise ConflictError("Database error while deleting the client") from e

        logger.info("Deleted client %s", client_id)
