from __future__ import annotations

from typing import Optional

from ..domain.errors import BookingNotFoundError, CancelNotAllowedError
from ..domain.repositories import BookingRepository
from ..models import Booking, BookingStatus, PastBooking, SlotStatus
from ..utils.time import utc_now_naive

UNKNOWN = "Unknown"


def _matches(search: str, *values: Optional[str]) -> bool:
    needle = search.strip().lower()
    return any(needle in (value or "").lower() for value in values)


async def list_active_bookings(
    repo: BookingRepository,
    *,
    user_id: int,
    search: Optional[str] = None,
) -> list[Booking]:
    bookings = await repo.list_active(user_id)
    if search and search.strip():
        bookings = [b for b in bookings if _matches(search, b.vehicle_number, b.slot_id, b.status)]
    return bookings


async def list_past_bookings(
    repo: BookingRepository,
    *,
    user_id: int,
    search: Optional[str] = None,
    status: Optional[BookingStatus] = None,
) -> list[PastBooking]:
    bookings = await repo.list_past(user_id)
    if search and search.strip():
        bookings = [
            b
            for b in bookings
            if _matches(search, b.vehicle_number, b.slot_id, b.status, b.customer_name, b.area_name)
        ]
    if status is not None:
        bookings = [b for b in bookings if b.status == status]
    return bookings


async def cancel_booking(
    repo: BookingRepository,
    *,
    booking_id: int,
    user_id: int,
) -> PastBooking:
    """
    Move a booked reservation to the archive and release its slot.
    Callers run this inside a single transaction.
    """
    booking = await repo.get_for_user_for_update(booking_id, user_id)
    if booking is None:
        raise BookingNotFoundError("booking not found")
    if booking.status != BookingStatus.BOOKED:
        raise CancelNotAllowedError(f"booking is {booking.status} and can no longer be cancelled")

    vehicle = await repo.get_vehicle(booking.vehicle_number)
    area_name = await repo.get_area_name_for_slot(booking.slot_id)
    now = utc_now_naive()
    past = PastBooking(
        booking_id=booking.booking_id,
        user_id=booking.user_id,
        vehicle_number=booking.vehicle_number,
        slot_id=booking.slot_id,
        area_name=area_name or UNKNOWN,
        entry_time=booking.entry_time,
        exit_time=booking.exit_time,
        status=BookingStatus.CANCELLED,
        amount_paid=booking.amount_paid,
        payment_status=booking.payment_status,
        customer_name=vehicle.customer_name if vehicle else UNKNOWN,
        contact_number=vehicle.contact_number if vehicle else UNKNOWN,
        cancelled_at=now,
        created_at=now,
    )
    archived = await repo.archive(past)
    await repo.set_slot_status(booking.slot_id, SlotStatus.AVAILABLE)
    await repo.delete(booking)
    return archived
