"""
Who may move a booking to which status.

Two policies, picked by the caller's role:

  admin : any status -> any status. No state machine is enforced for admins.
  owner : pending | confirmed -> cancelled, and nothing else.
"""

from uuid import UUID

from app.deps import CurrentUser
from app.errors import Forbidden, InvalidRequest, InvalidTransition
from app.models import TERMINAL_STATUSES, BookingStatus


def parse_status(raw: str | None) -> BookingStatus:
    try:
        return BookingStatus(raw)
    except ValueError:
        raise InvalidRequest(
            "Invalid status. Must be pending, confirmed, cancelled, or completed"
        ) from None


def authorize_transition(
    old_status: BookingStatus,
    new_status: str | None,
    booking_user_id: UUID,
    current_user: CurrentUser,
) -> BookingStatus:
    """
    Raise if `current_user` may not move the booking from `old_status` to
    `new_status`; otherwise return the target as a BookingStatus.
    """
    if current_user.can_write_all_bookings:
        return parse_status(new_status)

    if current_user.id != booking_user_id:
        raise Forbidden("Access denied. You can only cancel your own bookings.")

    if new_status != BookingStatus.CANCELLED:
        raise InvalidRequest("You can only cancel bookings")

    if old_status in TERMINAL_STATUSES:
        raise InvalidTransition(
            f"Cannot cancel a booking that is already {old_status}"
        )

    return BookingStatus.CANCELLED
