"""
Pydantic schemas for the Business Profile
Project: JobQuote (Quote & Invoice Backend)
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.exceptions import BusinessValidationError
from app.schemas.client import is_valid_email

MIN_HOURLY_RATE = Decimal("30")
MAX_HOURLY_RATE = Decimal("300")


def validate_profile_fields(email: Optional[str], hourly_rate: Optional[Decimal]) -> None:
    """
    Validate the business profile, reporting only the first failure.

    Raises:
        BusinessValidationError: If the email is malformed or the hourly
            rate is outside 30..300
    """
    if email and not is_valid_email(email):
        raise BusinessValidationError("Please enter a valid email address")
    if hourly_rate is not None and not (MIN_HOURLY_RATE <= hourly_rate <= MAX_HOURLY_RATE):
        raise BusinessValidationError("Hourly rate must be between $30 and $300")


class BusinessProfileUpdate(BaseModel):
    """
    Schema for creating or updating the business profile.

    All fields are optional; omitted fields keep their stored value.
    """
    user_name: Optional[str] = Field(None, max_length=100)
    business_name: Optional[str] = Field(None, max_length=200)
    abn: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=60)
    payment_terms: Optional[str] = Field(None, max_length=2000)
    quote_footer_notes: Optional[str] = Field(None, max_length=2000)
    bank_name: Optional[str] = Field(None, max_length=100)
    bsb: Optional[str] = Field(None, max_length=10)
    account_number: Optional[str] = Field(None, max_length=20)
    account_name: Optional[str] = Field(None, max_length=100)
    hourly_rate: Optional[Decimal] = None
    gst_enabled: Optional[bool] = None
    logo_url: Optional[str] = Field(None, max_length=500)

    @field_validator("hourly_rate", mode="before")
    @classmethod
    def normalize_decimal_separator(cls, v):
        """Accept a comma as decimal separator ("120,50")."""
        if isinstance(v, str):
            return v.strip().replace(",", ".")
        return v


class BusinessProfileRead(BaseModel):
    """Schema for reading the business profile."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_name: Optional[str] = None
    business_name: Optional[str] = None
    abn: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    country: str
    payment_terms: Optional[str] = None
    quote_footer_notes: Optional[str] = None
    bank_name: Optional[str] = None
    bsb: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    hourly_rate: Decimal
    gst_enabled: bool
    logo_url: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
