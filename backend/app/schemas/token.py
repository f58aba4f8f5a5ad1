"""
Pydantic schemas for authentication tokens
Project: JobQuote (Quote & Invoice Backend)

Claims of the auth provider's JWT and the resolved caller.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """
    Claims read from the auth provider's JWT.

    Attributes:
        sub: Subject - user ID as string
        email: Email of the user, when the provider includes it
        role: Provider role claim (e.g. "authenticated")
        exp: Expiration
    """

    sub: str = Field(..., description="User ID")
    email: Optional[str] = Field(None, description="User email")
    role: Optional[str] = Field(None, description="Provider role claim")
    exp: Optional[datetime] = Field(None, description="Expiration")


class AuthenticatedUser(BaseModel):
    """
    The caller of a request.

    Every data access is scoped to `id`.
    """

    id: uuid.UUID
    email: Optional[str] = None


__all__ = [
    "TokenPayload",
    "AuthenticatedUser",
]
