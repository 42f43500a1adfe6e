from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models import BookingStatus, PaymentStatus

__all__ = [
    "BookedRange",
    "BookingCreate",
    "BookingEnriched",
    "BookingFilters",
    "BookingPage",
    "BookingResponse",
    "BookingStatus",
    "BookingStatusUpdate",
    "PaymentStatus",
    "PropertyInfo",
    "PropertySummary",
    "UserSummary",
]


class BookingCreate(BaseModel):
    """
    Admission request. Required fields are optional here on purpose: the
    admission rules report missing ones as `InvalidRequest` before any lookup.
    """

    property_id: UUID | None = None
    check_in: date | None = None
    check_out: date | None = None
    guests: int | None = None
    special_requests: str | None = Field(default=None, max_length=500)


class BookingStatusUpdate(BaseModel):
    """Target status; unknown values are rejected by the transition rules."""

    status: str | None = None


class BookingResponse(BaseModel):
    id: UUID
    property_id: UUID
    user_id: UUID
    check_in: date
    check_out: date
    guests: int
    status: BookingStatus
    payment_status: PaymentStatus
    price_per_night: Decimal
    total_price: Decimal
    special_requests: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PropertyInfo(BaseModel):
    """Property as returned by properties-ms; only what admission needs is required."""

    id: UUID
    title: str = ""
    location: str = ""
    images: list[str] = Field(default_factory=list)
    price: Decimal = Field(ge=0)
    max_guests: int = Field(ge=1, le=20)
    is_available: bool = True
    owner_id: UUID | None = None


class PropertySummary(BaseModel):
    id: UUID
    title: str | None = None
    location: str | None = None
    images: list[str] = Field(default_factory=list)
    price: Decimal | None = None


class UserSummary(BaseModel):
    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None


class BookingEnriched(BookingResponse):
    """Booking joined with display summaries. Summaries are None when upstream fails."""

    property_summary: PropertySummary | None = None
    user_summary: UserSummary | None = None


class BookingPage(BaseModel):
    items: list[BookingEnriched]
    total: int
    page: int
    limit: int
    pages: int


class BookedRange(BaseModel):
    """Occupied [check_in, check_out) range. Reveals no user identity."""

    check_in: date
    check_out: date

    model_config = ConfigDict(from_attributes=True)


class BookingFilters(BaseModel):
    """Validated admin listing query: optional status plus page/limit."""

    status: BookingStatus | None = None

    # Pagination
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
