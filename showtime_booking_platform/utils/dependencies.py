"""
FastAPI dependencies for authentication and service construction.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..services import CatalogService, BookingStore, ReservationCoordinator
from ..utils.auth import verify_token
from ..utils.exceptions import AuthenticationError
from ..utils.logging_config import log_security_event


# HTTP Bearer token scheme; missing credentials are reported as AuthenticationError
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> UUID:
    """
    Get the authenticated user's id from the bearer token.

    Args:
        request: Incoming request
        credentials: HTTP Bearer credentials

    Returns:
        The user id carried in the token's ``sub`` claim

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")

    claims = verify_token(credentials.credentials)
    if claims is None:
        log_security_event("invalid_token", {"path": request.url.path})
        raise AuthenticationError("Could not validate credentials")

    request.state.user_id = claims.user_id
    return claims.user_id


def get_catalog_service(db: AsyncSession = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_reservation_coordinator(db: AsyncSession = Depends(get_db)) -> ReservationCoordinator:
    return ReservationCoordinator(db)


def get_booking_store(db: AsyncSession = Depends(get_db)) -> BookingStore:
    return BookingStore(db)
