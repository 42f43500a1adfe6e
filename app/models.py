from enum import StrEnum

from tortoise import fields
from tortoise.models import Model


class BookingStatus(StrEnum):
    PENDING = "pending"  # just created, awaiting admin confirmation
    CONFIRMED = "confirmed"  # accepted by an admin
    CANCELLED = "cancelled"  # cancelled by the guest or an admin
    COMPLETED = "completed"  # stay is over, marked done


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Bookings in these statuses block overlapping admissions
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
TERMINAL_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


class Booking(Model):
    id = fields.UUIDField(primary_key=True)

    property_id = fields.UUIDField()
    user_id = fields.UUIDField()  # the guest who made the booking

    check_in = fields.DateField()
    check_out = fields.DateField()
    guests = fields.IntField()

    status = fields.CharEnumField(BookingStatus, default=BookingStatus.PENDING)
    payment_status = fields.CharEnumField(PaymentStatus, default=PaymentStatus.PENDING)

    price_per_night = fields.DecimalField(
        max_digits=8, decimal_places=2
    )  # snapshot at booking time
    total_price = fields.DecimalField(max_digits=14, decimal_places=2)  # computed once

    special_requests = fields.CharField(max_length=500, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "bookings"
        ordering = ["-created_at"]
        indexes = (("property_id", "check_in", "check_out"), ("user_id", "created_at"))
