"""FastAPI application setup and configuration."""

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from showtime_booking_platform.config import settings
from showtime_booking_platform.api import api_router
from showtime_booking_platform.database import init_database, close_database, get_session_factory
from showtime_booking_platform.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from showtime_booking_platform.middleware.error_handler import error_body, field_errors_of
from showtime_booking_platform.services.expiry_sweeper import ExpirySweeper
from showtime_booking_platform.utils.exceptions import ValidationError
from showtime_booking_platform.utils.logging_config import setup_logging

# Set up logging
setup_logging(
    log_level="DEBUG" if settings.debug else settings.log_level,
    log_file="logs/showtime.log" if settings.environment == "production" else None,
    enable_json_logging=settings.enable_json_logging or settings.environment == "production"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    logger.info("Starting Showtime Booking Platform")
    await init_database()

    sweeper = None
    if settings.enable_inprocess_sweeper:
        sweeper = ExpirySweeper(get_session_factory())
        sweeper.start()
    app.state.sweeper = sweeper

    yield

    # Shutdown
    logger.info("Shutting down Showtime Booking Platform")
    if sweeper:
        await sweeper.stop()
    await close_database()


app = FastAPI(
    title="Showtime Booking Platform API",
    description="""
    ## Showtime Booking Platform

    Movie catalogue, show schedules and seat reservations for cinema screens.

    ### Booking flow

    1. `POST /api/v1/shows/{show_id}/holds` holds the selected seats and returns a hold ticket
    2. `POST /api/v1/holds/confirm` with the ticket turns the hold into a booking
    3. `POST /api/v1/holds/cancel` with the ticket releases the seats

    Holds expire after a few minutes and are released automatically. A seat is
    never booked twice and a hold either takes every requested seat or none.

    ### Authentication

    Reservation and booking endpoints require `Authorization: Bearer <token>`
    issued by the identity provider. The token's `sub` claim is the user id.

    ### Errors

    ```json
    {
      "error": {
        "error_code": "SEAT_CONFLICT",
        "message": "1 of the selected seats are no longer available",
        "details": {"conflicting_seat_ids": ["..."]},
        "suggestions": ["Pick different seats"]
      }
    }
    ```
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "movies",
            "description": "Movie catalogue and upcoming shows"
        },
        {
            "name": "shows",
            "description": "Show details, seat maps and seat holds"
        },
        {
            "name": "holds",
            "description": "Confirming and cancelling seat holds"
        },
        {
            "name": "bookings",
            "description": "The current user's booking history"
        },
        {
            "name": "health",
            "description": "System health and monitoring endpoints"
        }
    ],
    lifespan=lifespan,
)

# Middleware stack (the last added runs first)

# 1. Error handling middleware (catch all errors)
app.add_middleware(
    ErrorHandlerMiddleware,
    debug=settings.debug
)

# 2. Logging middleware (wraps error handling so every response is logged)
if settings.enable_request_logging:
    app.add_middleware(LoggingMiddleware)

# 3. CORS middleware (outermost)
if settings.debug:
    # Development: Allow all origins for easier development
    cors_origins = ["*"]
    cors_allow_credentials = False  # Cannot use credentials with wildcard origins
else:
    cors_origins = settings.cors_origins
    cors_allow_credentials = settings.cors_allow_credentials

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=settings.cors_expose_headers
)

# Include API routes
app.include_router(api_router)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report request parsing failures in the platform's error format."""
    validation_error = ValidationError("Request validation failed", field_errors=field_errors_of(exc))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(validation_error, str(uuid4()))
    )


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for API information.
    """
    return {
        "message": "Showtime Booking Platform API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
        "status": "operational"
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Basic health check endpoint for uptime monitoring.
    """
    return {"status": "healthy", "service": "showtime-booking-platform"}


@app.get("/health/detailed", tags=["health"])
async def detailed_health_check():
    """
    Detailed health check with service dependencies.

    Reports database connectivity, Redis cache status and Celery workers.
    """
    from showtime_booking_platform.utils.health_check import get_health_status

    health = await get_health_status()
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE if health["status"] == "unhealthy" else status.HTTP_200_OK
    return JSONResponse(status_code=status_code, content=health)
