"""
Bearer token verification.

Tokens are issued by the identity provider and signed with the shared
``SECRET_KEY``; the ``sub`` claim is the user's UUID. ``create_access_token``
mints the same shape of token for development and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from jose import JWTError, jwt
from pydantic import BaseModel, Field, ValidationError

from ..config import get_settings


class TokenClaims(BaseModel):
    """Claims the platform reads from a verified token."""

    user_id: UUID = Field(..., alias="sub")
    email: Optional[str] = None
    expires_at: datetime = Field(..., alias="exp")


def create_access_token(
    user_id: UUID,
    expires_delta: Optional[timedelta] = None,
    **claims: Any
) -> str:
    """
    Sign a token for ``user_id``.

    Args:
        user_id: Becomes the ``sub`` claim
        expires_delta: Lifetime; defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``
        **claims: Extra claims such as ``email``

    Returns:
        The encoded JWT
    """
    settings = get_settings()
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        **claims,
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[TokenClaims]:
    """
    Check the signature and expiry of ``token``.

    Returns:
        The claims, or None when the token is invalid, expired or its
        subject is not a UUID
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return TokenClaims.model_validate(payload)
    except (JWTError, ValidationError):
        return None
