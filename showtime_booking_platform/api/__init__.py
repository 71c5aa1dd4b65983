"""API endpoints for the Showtime Booking Platform."""

from fastapi import APIRouter
from .movies import router as movies_router
from .shows import router as shows_router
from .holds import router as holds_router
from .bookings import router as bookings_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Include all routers
api_router.include_router(movies_router)
api_router.include_router(shows_router)
api_router.include_router(holds_router)
api_router.include_router(bookings_router)

__all__ = ["api_router"]
