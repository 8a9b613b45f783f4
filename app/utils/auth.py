"""Bearer token helpers for identifying the acting user."""
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt

from app.config import settings
from app.utils.dates import utcnow


def create_access_token(
    user_id: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token naming a user.

    Args:
        user_id: User ID to encode in token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(user_id="user123")
        >>> isinstance(token, str)
        True
    """
    expire = utcnow() + (
        expires_delta or timedelta(minutes=settings.jwt_expiration_minutes)
    )

    to_encode = {
        "sub": user_id,
        "exp": expire,
    }

    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> str:
    """
    Verify and decode a JWT access token.

    Args:
        token: JWT token string to verify

    Returns:
        User ID from token

    Raises:
        JWTError: If token is invalid, expired or has no subject

    Example:
        >>> token = create_access_token(user_id="user123")
        >>> verify_access_token(token)
        'user123'
    """
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    user_id: Optional[str] = payload.get("sub")

    if user_id is None:
        raise JWTError("Token payload missing 'sub' claim")

    return user_id
