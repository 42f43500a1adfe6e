from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from uuid import UUID

from loguru import logger
from tortoise.backends.base.client import BaseDBAsyncClient
from tortoise.exceptions import BaseORMException
from tortoise.transactions import in_transaction

from app.admission import AdmissionRequest, quote_total
from app.errors import AvailabilityConflict, StoreError
from app.models import ACTIVE_STATUSES, Booking, BookingStatus
from app.schemas import BookedRange, BookingFilters, BookingResponse


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Re-raise ORM failures as StoreError; domain errors pass through."""
    try:
        yield
    except BaseORMException as exc:
        logger.exception("Booking store failed while {}", action)
        raise StoreError() from exc


async def _lock_property(conn: BaseDBAsyncClient, property_id: UUID) -> None:
    """
    Serialize admissions for one property until the transaction ends.
    PostgreSQL only; elsewhere the overlap check and the insert can race.
    """
    if conn.capabilities.dialect != "postgres":
        return
    await conn.execute_query(
        "SELECT pg_advisory_xact_lock(hashtext($1))", [str(property_id)]
    )


class BookingCRUD:
    def _overlapping(
        self,
        property_id: UUID,
        check_in: date,
        check_out: date,
    ):
        """Active bookings whose [check_in, check_out) intersects the given range."""
        return Booking.filter(
            property_id=property_id,
            status__in=list(ACTIVE_STATUSES),
            check_in__lt=check_out,
            check_out__gt=check_in,
        )

    async def create_booking(
        self,
        request: AdmissionRequest,
        user_id: UUID,
        price_per_night: Decimal,
    ) -> BookingResponse:
        """
        Persist a new pending booking unless an active booking overlaps it.
        The overlap check and the insert share one transaction.
        """
        total_price = quote_total(request.check_in, request.check_out, price_per_night)

        with _store_errors("creating a booking"):
            async with in_transaction() as conn:
                await _lock_property(conn, request.property_id)

                if await (
                    self._overlapping(
                        request.property_id, request.check_in, request.check_out
                    )
                    .select_for_update()
                    .using_db(conn)
                    .exists()
                ):
                    logger.info(
                        "Rejected booking for property {}: {} -> {} overlaps an active booking",
                        request.property_id,
                        request.check_in,
                        request.check_out,
                    )
                    raise AvailabilityConflict()

                inst = await Booking.create(
                    property_id=request.property_id,
                    user_id=user_id,
                    check_in=request.check_in,
                    check_out=request.check_out,
                    guests=request.guests,
                    price_per_night=price_per_night,
                    total_price=total_price,
                    special_requests=request.special_requests,
                    using_db=conn,
                )

        return BookingResponse.model_validate(inst, from_attributes=True)

    async def get_booking(
        self,
        booking_id: UUID,
        user_id: UUID | None = None,
    ) -> BookingResponse | None:
        with _store_errors("reading a booking"):
            if user_id is not None:
                inst = await Booking.get_or_none(id=booking_id, user_id=user_id)
            else:
                inst = await Booking.get_or_none(id=booking_id)

        if not inst:
            return None
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def list_user_bookings(self, user_id: UUID) -> list[BookingResponse]:
        with _store_errors("listing user bookings"):
            bookings = await Booking.filter(user_id=user_id).order_by("-created_at")
        return [BookingResponse.model_validate(b, from_attributes=True) for b in bookings]

    async def list_bookings(
        self, filters: BookingFilters
    ) -> tuple[list[BookingResponse], int]:
        """One page of all bookings, newest first, plus the unpaginated total."""
        qs = Booking.all()
        if filters.status is not None:
            qs = qs.filter(status=filters.status)

        offset = (filters.page - 1) * filters.limit

        with _store_errors("listing bookings"):
            total = await qs.count()
            bookings = await qs.order_by("-created_at").offset(offset).limit(filters.limit)

        return (
            [BookingResponse.model_validate(b, from_attributes=True) for b in bookings],
            total,
        )

    async def update_booking_status(
        self,
        booking_id: UUID,
        new_status: BookingStatus,
    ) -> BookingResponse | None:
        """Change only the status; prices and payment status are left alone."""
        with _store_errors("updating a booking status"):
            inst = await Booking.get_or_none(id=booking_id)
            if not inst:
                return None
            inst.status = new_status  # type: ignore
            await inst.save(update_fields=["status", "updated_at"])
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def list_booked_ranges(self, property_id: UUID) -> list[BookedRange]:
        """Return occupied date ranges for a property; no user info exposed."""
        with _store_errors("listing booked ranges"):
            bookings = await Booking.filter(
                property_id=property_id,
                status__in=list(ACTIVE_STATUSES),
            ).order_by("check_in").only("check_in", "check_out")
        return [BookedRange.model_validate(b, from_attributes=True) for b in bookings]


booking_crud = BookingCRUD()
