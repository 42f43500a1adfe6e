import asyncio
import math
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from app.admission import check_dates, check_property, local_today, require_fields
from app.cache import get_occupied_cache, invalidate_occupied_cache, set_occupied_cache
from app.crud import booking_crud
from app.deps import (
    CurrentUser,
    PropertiesClient,
    UsersClient,
    can_list_all_bookings,
    get_current_user,
    get_properties_client,
    get_users_client,
)
from app.errors import NotFound
from app.schemas import (
    BookedRange,
    BookingCreate,
    BookingEnriched,
    BookingFilters,
    BookingPage,
    BookingResponse,
    BookingStatus,
    BookingStatusUpdate,
    PropertySummary,
    UserSummary,
)
from app.transitions import authorize_transition

router = APIRouter(prefix="/bookings", tags=["bookings"])


# ---------------------------------------------------------------------------
# Enrichment helper
# ---------------------------------------------------------------------------


async def _enrich(
    bookings: list,
    current_user: CurrentUser,
    properties_client: PropertiesClient,
    users_client: UsersClient,
) -> list[BookingEnriched]:
    """
    Convert raw bookings into BookingEnriched by fetching property and user
    summaries from upstream services in parallel.
    Both upstream calls degrade gracefully: summaries become None on error.
    """
    if not bookings:
        return []

    parsed = [BookingResponse.model_validate(b, from_attributes=True) for b in bookings]

    property_ids = {b.property_id for b in parsed}
    user_ids = {b.user_id for b in parsed}

    properties_raw, users_raw = await asyncio.gather(
        properties_client.get_by_ids(property_ids, current_user),
        users_client.get_by_ids(user_ids, current_user),
    )

    property_map: dict[str, dict] = {str(p["id"]): p for p in properties_raw}
    user_map: dict[str, dict] = {str(u["id"]): u for u in users_raw}

    result = []
    for b in parsed:
        prop = property_map.get(str(b.property_id))
        owner = user_map.get(str(b.user_id))
        result.append(
            BookingEnriched(
                **b.model_dump(),
                property_summary=(
                    PropertySummary(
                        id=b.property_id,
                        title=prop.get("title"),
                        location=prop.get("location"),
                        images=prop.get("images") or [],
                        price=prop.get("price"),
                    )
                    if prop
                    else None
                ),
                user_summary=(
                    UserSummary(
                        id=b.user_id,
                        first_name=owner.get("first_name"),
                        last_name=owner.get("last_name"),
                        email=owner.get("email"),
                    )
                    if owner
                    else None
                ),
            )
        )
    return result


async def _change_status(
    booking_id: UUID,
    requested: str | None,
    current_user: CurrentUser,
    properties_client: PropertiesClient,
    users_client: UsersClient,
) -> BookingEnriched:
    booking = await booking_crud.get_booking(booking_id)
    if not booking:
        raise NotFound("Booking not found")

    new_status = authorize_transition(
        old_status=booking.status,
        new_status=requested,
        booking_user_id=booking.user_id,
        current_user=current_user,
    )

    updated = await booking_crud.update_booking_status(booking_id, new_status)
    if not updated:
        raise NotFound("Booking not found")

    logger.info(
        "Booking {} moved {} -> {} by user {} ({})",
        booking_id,
        booking.status,
        new_status,
        current_user.id,
        current_user.role,
    )
    await invalidate_occupied_cache(booking.property_id)

    results = await _enrich([updated], current_user, properties_client, users_client)
    return results[0]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/occupied", response_model=list[BookedRange])
async def get_occupied_ranges(
    property_id: UUID,
    _: CurrentUser = Depends(get_current_user),
) -> list[BookedRange]:
    """
    Returns the active [check_in, check_out) ranges of a property.
    Any authenticated user can call this; the response contains NO user identity.
    """
    cached = await get_occupied_cache(property_id)
    if cached is not None:
        logger.debug("Cache hit for occupied ranges: property_id={}", property_id)
        return cached

    logger.debug("Cache miss for occupied ranges: property_id={}", property_id)
    ranges = await booking_crud.list_booked_ranges(property_id)
    await set_occupied_cache(property_id, ranges)
    return ranges


@router.get("/my", response_model=list[BookingEnriched])
async def list_my_bookings(
    current_user: CurrentUser = Depends(get_current_user),
    properties_client: PropertiesClient = Depends(get_properties_client),
    users_client: UsersClient = Depends(get_users_client),
) -> list[BookingEnriched]:
    bookings = await booking_crud.list_user_bookings(current_user.id)
    return await _enrich(bookings, current_user, properties_client, users_client)


@router.get("/", response_model=BookingPage)
async def list_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: CurrentUser = Depends(can_list_all_bookings),
    properties_client: PropertiesClient = Depends(get_properties_client),
    users_client: UsersClient = Depends(get_users_client),
) -> BookingPage:
    filters = BookingFilters(status=status_filter, page=page, limit=limit)
    bookings, total = await booking_crud.list_bookings(filters=filters)
    items = await _enrich(bookings, current_user, properties_client, users_client)
    return BookingPage(
        items=items,
        total=total,
        page=filters.page,
        limit=filters.limit,
        pages=math.ceil(total / filters.limit),
    )


@router.post("/", response_model=BookingEnriched, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    current_user: CurrentUser = Depends(get_current_user),
    properties_client: PropertiesClient = Depends(get_properties_client),
    users_client: UsersClient = Depends(get_users_client),
) -> BookingEnriched:
    # 1. All required fields present
    request = require_fields(payload)

    # 2-4. Property exists, is open for booking, and fits the party
    prop = await properties_client.get_property(request.property_id, current_user)
    if prop is None:
        raise NotFound("Property not found")
    check_property(prop, request.guests)

    # 5-6. Dates
    check_dates(request.check_in, request.check_out, today=local_today())

    # 7. Overlap check and insert, in CRUD
    booking = await booking_crud.create_booking(
        request=request,
        user_id=current_user.id,
        price_per_night=prop.price,
    )
    logger.info(
        "Booking {} admitted for property {} ({} -> {}), total {}",
        booking.id,
        booking.property_id,
        booking.check_in,
        booking.check_out,
        booking.total_price,
    )
    await invalidate_occupied_cache(request.property_id)

    results = await _enrich([booking], current_user, properties_client, users_client)
    return results[0]


@router.get("/{booking_id}", response_model=BookingEnriched)
async def get_booking(
    booking_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    properties_client: PropertiesClient = Depends(get_properties_client),
    users_client: UsersClient = Depends(get_users_client),
) -> BookingEnriched:
    if current_user.can_read_all_bookings:
        booking = await booking_crud.get_booking(booking_id)
    else:
        booking = await booking_crud.get_booking(booking_id, user_id=current_user.id)

    if not booking:
        raise NotFound("Booking not found")

    results = await _enrich([booking], current_user, properties_client, users_client)
    return results[0]


@router.patch("/{booking_id}/status", response_model=BookingEnriched)
async def update_booking_status(
    booking_id: UUID,
    payload: BookingStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    properties_client: PropertiesClient = Depends(get_properties_client),
    users_client: UsersClient = Depends(get_users_client),
) -> BookingEnriched:
    return await _change_status(
        booking_id, payload.status, current_user, properties_client, users_client
    )


@router.patch("/{booking_id}/cancel", response_model=BookingEnriched)
async def cancel_booking(
    booking_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    properties_client: PropertiesClient = Depends(get_properties_client),
    users_client: UsersClient = Depends(get_users_client),
) -> BookingEnriched:
    return await _change_status(
        booking_id,
        BookingStatus.CANCELLED,
        current_user,
        properties_client,
        users_client,
    )
