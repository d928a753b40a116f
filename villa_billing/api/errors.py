"""API error handling and response helpers."""

from typing import Any, Dict

from fastapi import HTTPException, status


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class ApartmentNotFoundError(AppError):
    def __init__(self, apartment_id: int):
        super().__init__(
            f"Apartment {apartment_id} not found", "apartment_not_found", status.HTTP_404_NOT_FOUND
        )


class BookingNotFoundError(AppError):
    def __init__(self, booking_id: int):
        super().__init__(
            f"Booking {booking_id} not found", "booking_not_found", status.HTTP_404_NOT_FOUND
        )


class ServiceTypeNotFoundError(AppError):
    def __init__(self, service_type_id: int):
        super().__init__(
            f"Service type {service_type_id} not found",
            "service_type_not_found",
            status.HTTP_404_NOT_FOUND,
        )


class InvalidQueryError(AppError):
    """Query parameters are inconsistent."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_query", status.HTTP_400_BAD_REQUEST)


class InvalidBillingDataError(AppError):
    """Stored billing data failed validation (negative amounts or readings)."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_billing_data", status.HTTP_422_UNPROCESSABLE_ENTITY)


def error_response(error: AppError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


def raise_app_error(error: AppError) -> None:
    """Raise an HTTPException from an AppError."""
    raise HTTPException(
        status_code=error.http_status,
        detail=error_response(error),
    )
