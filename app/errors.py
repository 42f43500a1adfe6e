"""
Domain errors for booking admission and lifecycle.

Every error is an HTTPException, so rules, CRUD and routers raise them
directly and FastAPI turns them into responses. `register_error_handlers`
adds the machine-readable `error` kind next to FastAPI's usual `detail`.
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

# starlette renamed HTTP_422_UNPROCESSABLE_ENTITY and warns on the old name
UNPROCESSABLE = 422


class BookingError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    error: str = "booking_error"
    default_detail: str = "Booking request failed"

    def __init__(
        self, detail: str | None = None, headers: dict[str, str] | None = None
    ) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


class InvalidRequest(BookingError):
    status_code = UNPROCESSABLE
    error = "invalid_request"
    default_detail = "Invalid request"


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"
    default_detail = "Not found"


class Unauthenticated(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthenticated"
    default_detail = "Authentication required"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "forbidden"
    default_detail = "Access denied"


class PropertyUnavailable(BookingError):
    status_code = UNPROCESSABLE
    error = "property_unavailable"
    default_detail = "Property is not available"


class CapacityExceeded(BookingError):
    status_code = UNPROCESSABLE
    error = "capacity_exceeded"
    default_detail = "Too many guests for this property"


class InvalidDateRange(BookingError):
    status_code = UNPROCESSABLE
    error = "invalid_date_range"
    default_detail = "Invalid date range"


class AvailabilityConflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error = "availability_conflict"
    default_detail = "Property is already booked for the selected dates"


class InvalidTransition(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "invalid_transition"
    default_detail = "Invalid status transition"


class StoreError(BookingError):
    """Opaque persistence or upstream failure. The only kind worth retrying."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "store_error"
    default_detail = "Storage temporarily unavailable"


async def booking_error_handler(_: Request, exc: BookingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.error},
        headers=exc.headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
