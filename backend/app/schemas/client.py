"""
Pydantic schemas for the Client entity
Project: JobQuote (Quote & Invoice Backend)
"""
# Defines the validation and serialisation schemas for the API.

import datetime
import re
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.exceptions import BusinessValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[0-9\s\-()]{8,}$")


# -------------------------------------------------------------------
# Validation functions
# -------------------------------------------------------------------

def is_valid_email(email: str) -> bool:
    """Check the basic shape of an email address (local@domain.tld)."""
    return bool(EMAIL_RE.match(email.strip()))


def is_valid_phone(phone: str) -> bool:
    """Check a phone number: optional +, then at least 8 digits, spaces, dashes or brackets."""
    return bool(PHONE_RE.match(phone.strip()))


def validate_client_fields(
    name: Optional[str],
    email: Optional[str],
    phone: Optional[str],
) -> None:
    """
    Validate client fields, reporting only the first failure.

    Order: name, email (required then format), phone (format, when given).

    Raises:
        BusinessValidationError: On the first violated rule
    """
    if not name or not name.strip():
        raise BusinessValidationError("Client name is required")
    if not email or not email.strip():
        raise BusinessValidationError("Client email is required")
    if not is_valid_email(email):
        raise BusinessValidationError("Please enter a valid email address")
    if phone and phone.strip() and not is_valid_phone(phone):
        raise BusinessValidationError("Please enter a valid phone number")


def _strip(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# -------------------------------------------------------------------
# Client schemas
# -------------------------------------------------------------------

class ClientCreate(BaseModel):
    """
    Schema for creating a client.

    Attributes:
        name: Client name
        email: Email address for quotes and invoices
        phone: Optional phone number
    """
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("name", "email", "phone")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        """Trim surrounding whitespace; blank becomes None."""
        return _strip(v)


class ClientUpdate(BaseModel):
    """
    Schema for updating a client.

    All fields are optional for partial updates.
    """
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("name", "email", "phone")
    @classmethod
    def strip_whitespace(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)


class ClientRead(BaseModel):
    """Schema for reading a client."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class ClientList(BaseModel):
    """Paginated list of clients."""
    items: list[ClientRead]
    total: int
    page: int
    per_page: int
    total_pages: int = 0

    @model_validator(mode="after")
    def compute_total_pages(self) -> "ClientList":
        """Compute the number of pages."""
        if self.per_page > 0:
            self.total_pages = (self.total + self.per_page - 1) // self.per_page
        return self
