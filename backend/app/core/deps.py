"""
Dependency injection for authentication
Project: JobQuote (Quote & Invoice Backend)

Every data endpoint acts on behalf of the owner identified by the bearer
token of the auth provider. There is no login endpoint here.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import decode_token
from app.schemas.token import AuthenticatedUser

bearer_scheme = HTTPBearer(auto_error=False, description="Access token issued by the auth provider")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """
    Resolve the owner of the request.

    The token subject is the user id that scopes clients, quotes,
    invoices and usage.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or a
            subject that is not a UUID
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required. Please log in to continue.")

    token_data = decode_token(credentials.credentials)

    try:
        user_id = UUID(token_data.sub)
    except ValueError:
        raise _unauthorized("Invalid user ID in token")

    return AuthenticatedUser(id=user_id, email=token_data.email)


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]


__all__ = [
    "bearer_scheme",
    "get_current_user",
    "CurrentUser",
]
