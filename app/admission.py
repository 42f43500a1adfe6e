"""
Booking admission rules.

The create endpoint runs these checks in a fixed order; each failure has its
own error kind:

  1. required fields present          -> InvalidRequest
  2. property exists                  -> NotFound             (router)
  3. property open for booking        -> PropertyUnavailable
  4. guests within capacity           -> CapacityExceeded
  5. check-in not in the past         -> InvalidDateRange
  6. check-out after check-in         -> InvalidDateRange
  7. no overlapping active booking    -> AvailabilityConflict (crud)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID
from zoneinfo import ZoneInfo

from app import settings
from app.errors import CapacityExceeded, InvalidDateRange, InvalidRequest, PropertyUnavailable
from app.schemas import BookingCreate, PropertyInfo

ONE_DAY = timedelta(days=1)

# largest values the bookings table columns hold
MAX_PRICE_PER_NIGHT = Decimal("999999.99")
MAX_TOTAL_PRICE = Decimal("999999999999.99")


@dataclass(frozen=True)
class AdmissionRequest:
    property_id: UUID
    check_in: date
    check_out: date
    guests: int
    special_requests: str | None = None


def require_fields(payload: BookingCreate) -> AdmissionRequest:
    if (
        payload.property_id is None
        or payload.check_in is None
        or payload.check_out is None
        or not payload.guests
    ):
        raise InvalidRequest(
            "Property ID, check-in, check-out, and guests are required"
        )
    if payload.guests < 1:
        raise InvalidRequest("At least one guest is required")

    return AdmissionRequest(
        property_id=payload.property_id,
        check_in=payload.check_in,
        check_out=payload.check_out,
        guests=payload.guests,
        special_requests=payload.special_requests or None,
    )


def check_property(prop: PropertyInfo, guests: int) -> None:
    if not prop.is_available:
        raise PropertyUnavailable()
    if guests > prop.max_guests:
        raise CapacityExceeded(f"Maximum guests allowed: {prop.max_guests}")


def local_today() -> date:
    """Today's date in the configured booking time zone."""
    return datetime.now(ZoneInfo(settings.booking_timezone)).date()


def check_dates(check_in: date, check_out: date, today: date) -> None:
    if check_in < today:
        raise InvalidDateRange("Check-in date cannot be in the past")
    if check_out <= check_in:
        raise InvalidDateRange("Check-out date must be after check-in date")


def count_nights(check_in: date, check_out: date) -> int:
    return math.ceil((check_out - check_in) / ONE_DAY)


def quote_total(check_in: date, check_out: date, price_per_night: Decimal) -> Decimal:
    """Nights times the nightly price, refused when it cannot be stored."""
    if price_per_night > MAX_PRICE_PER_NIGHT:
        raise InvalidRequest(f"Nightly price cannot exceed {MAX_PRICE_PER_NIGHT}")
    nights = count_nights(check_in, check_out)
    total = (price_per_night * nights).quantize(Decimal("0.01"))
    if total > MAX_TOTAL_PRICE:
        raise InvalidRequest("Booking total is too large, choose a shorter stay")
    return total
