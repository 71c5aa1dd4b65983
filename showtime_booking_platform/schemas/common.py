"""
Common schemas for API responses and error handling.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")
    retry_after: Optional[int] = Field(None, description="Seconds to wait before retrying")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: Optional[str] = Field(None, description="Identifier to quote when reporting the error")
    timestamp: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "error_code": "SEAT_CONFLICT",
                        "message": "1 of the selected seats are no longer available",
                        "details": {
                            "show_id": "123e4567-e89b-12d3-a456-426614174000",
                            "conflicting_seat_ids": ["9b2f4c1e-0d3a-4f7e-8c55-2a1b3c4d5e6f"]
                        },
                        "suggestions": ["Pick different seats", "Refresh the seat map"]
                    }
                },
                {
                    "error": {
                        "error_code": "HOLD_EXPIRED",
                        "message": "Your hold on the selected seats has expired",
                        "suggestions": ["Select the seats again"]
                    }
                },
                {
                    "error": {
                        "error_code": "TRANSPORT_ERROR",
                        "message": "confirm_booking failed: Data store unavailable",
                        "retry_after": 5
                    }
                }
            ]
        }
    }



# Documented error responses of the reservation endpoints
RESERVATION_ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse, "description": description}
    for status_code, description in (
        (401, "Missing or invalid bearer token"),
        (403, "The hold belongs to another user"),
        (404, "Show not found"),
        (409, "Some seats are held by someone else or booked"),
        (410, "The hold expired"),
        (422, "Invalid request"),
        (503, "Data store unavailable; retry after the given delay"),
    )
}
