"""
Token verification for authentication
Project: JobQuote (Quote & Invoice Backend)

Sessions are issued by the external auth provider; this module only
verifies its JWTs and extracts the caller identity.
"""

from datetime import datetime, timezone

from fastapi import HTTPException, status
from jose import JWTError, jwt

from app.core.config import settings
from app.schemas.token import TokenPayload


def decode_token(token: str) -> TokenPayload:
    """
    Decode and validate a JWT issued by the auth provider.

    Args:
        token: Encoded JWT

    Returns:
        TokenPayload with the token claims

    Raises:
        HTTPException: If the token is invalid, expired or has no subject
    """
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or expired token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing subject",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenPayload(
        sub=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role"),
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc) if payload.get("exp") else None,
    )


__all__ = [
    "decode_token",
]
