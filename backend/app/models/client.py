"""
SQLAlchemy model for the Client entity
Project: JobQuote (Quote & Invoice Backend)

The customers a tradesperson quotes and invoices.
"""


from __future__ import annotations
from typing import Optional, TYPE_CHECKING, List

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import OwnedMixin, TimestampMixin, UUIDMixin

# Type-hinting imports for relationships (avoids circular imports)
if TYPE_CHECKING:
    from app.models.quote import Quote


class Client(Base, UUIDMixin, TimestampMixin, OwnedMixin):
    """
    Model for the client registry.

    A client belongs to exactly one user and can have many quotes.

    Attributes:
        id: UUID primary key
        user_id: UUID of the owning user
        name: Client name (required)
        email: Email address (required, used for quote/invoice delivery)
        phone: Phone number (optional)
        created_at: Record creation date/time
        updated_at: Record last update date/time

    Relationships:
        quotes: Quotes addressed to this client
    """

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Client name",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Email address",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        doc="Phone number",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    quotes: Mapped[List["Quote"]] = relationship(
        "Quote",
        back_populates="client",
        lazy="noload",
        doc="Quotes addressed to this client",
    )

    __table_args__ = (
        Index("ix_clients_user_name", "user_id", "name"),
    )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name})>"
