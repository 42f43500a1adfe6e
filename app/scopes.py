from enum import StrEnum


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


class BookingScope(StrEnum):
    # Admin scopes; every authenticated user may book, list and cancel their own
    ADMIN = "admin:bookings"
    ADMIN_READ = "admin:bookings:read"
    ADMIN_WRITE = "admin:bookings:write"


ADMIN_READ_SCOPES = frozenset({BookingScope.ADMIN, BookingScope.ADMIN_READ})
ADMIN_WRITE_SCOPES = frozenset({BookingScope.ADMIN, BookingScope.ADMIN_WRITE})

BOOKING_SCOPE_DESCRIPTIONS: dict[str, str] = {
    BookingScope.ADMIN: "Full administrative access to every booking.",
    BookingScope.ADMIN_READ: "List and read any booking regardless of owner (admin).",
    BookingScope.ADMIN_WRITE: "Set any booking to any status (admin).",
}
