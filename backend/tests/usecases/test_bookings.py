from datetime import datetime, timedelta
from typing import List, Optional

import pytest
from parking.domain.errors import BookingNotFoundError, CancelNotAllowedError
from parking.models import Booking, BookingStatus, PastBooking, PaymentStatus, SlotStatus, Vehicle
from parking.usecases import bookings as uc

ENTRY = datetime(2026, 3, 1, 9, 0)


def _booking(booking_id: int, *, slot_id: str = "A-1", status: BookingStatus = BookingStatus.BOOKED) -> Booking:
    return Booking(
        booking_id=booking_id,
        user_id=1,
        vehicle_number=f"KA0{booking_id}",
        slot_id=slot_id,
        entry_time=ENTRY + timedelta(hours=booking_id),
        exit_time=ENTRY + timedelta(hours=booking_id + 1),
        status=status,
        payment_status=PaymentStatus.PENDING,
        amount_paid=100,
    )


def _past(booking_id: int, *, status: BookingStatus, area_name: str, customer_name: str) -> PastBooking:
    return PastBooking(
        id=booking_id,
        booking_id=booking_id,
        user_id=1,
        vehicle_number=f"KA0{booking_id}",
        slot_id="A-1",
        area_name=area_name,
        entry_time=ENTRY,
        exit_time=None,
        status=status,
        amount_paid=50,
        payment_status=PaymentStatus.PAID,
        customer_name=customer_name,
        contact_number="9",
        cancelled_at=None,
        created_at=ENTRY,
    )


class FakeBookingRepo:
    def __init__(self, bookings: List[Booking], past: Optional[List[PastBooking]] = None) -> None:
        self.bookings = {b.booking_id: b for b in bookings}
        self.past = list(past or [])
        self.vehicles = {"KA01": Vehicle(vehicle_number="KA01", customer_name="Asha", contact_number="98")}
        self.areas = {"A-1": "Central Plaza"}
        self.slot_status: dict[str, SlotStatus] = {}
        self.deleted: List[int] = []

    async def list_active(self, user_id: int) -> List[Booking]:
        return list(self.bookings.values())

    async def list_past(self, user_id: int) -> List[PastBooking]:
        return list(self.past)

    async def get_for_user_for_update(self, booking_id: int, user_id: int) -> Optional[Booking]:
        return self.bookings.get(booking_id)

    async def get_vehicle(self, vehicle_number: str) -> Optional[Vehicle]:
        return self.vehicles.get(vehicle_number)

    async def get_area_name_for_slot(self, slot_id: str) -> Optional[str]:
        return self.areas.get(slot_id)

    async def archive(self, past: PastBooking) -> PastBooking:
        self.past.append(past)
        return past

    async def set_slot_status(self, slot_id: str, status: SlotStatus) -> None:
        self.slot_status[slot_id] = status

    async def delete(self, booking: Booking) -> None:
        self.deleted.append(booking.booking_id)
        del self.bookings[booking.booking_id]


@pytest.mark.asyncio
async def test_cancel_archives_releases_slot_and_deletes() -> None:
    repo = FakeBookingRepo([_booking(1)])

    past = await uc.cancel_booking(repo, booking_id=1, user_id=1)

    assert past.status == BookingStatus.CANCELLED
    assert past.area_name == "Central Plaza"
    assert past.customer_name == "Asha"
    assert past.cancelled_at is not None
    assert repo.slot_status == {"A-1": SlotStatus.AVAILABLE}
    assert repo.deleted == [1]


@pytest.mark.asyncio
async def test_cancel_falls_back_to_unknown_details() -> None:
    repo = FakeBookingRepo([_booking(2, slot_id="Z-9")])

    past = await uc.cancel_booking(repo, booking_id=2, user_id=1)

    assert past.area_name == "Unknown"
    assert past.customer_name == "Unknown"
    assert past.contact_number == "Unknown"


@pytest.mark.asyncio
async def test_cancel_missing_booking_raises() -> None:
    repo = FakeBookingRepo([])
    with pytest.raises(BookingNotFoundError):
        await uc.cancel_booking(repo, booking_id=9, user_id=1)


@pytest.mark.asyncio
async def test_cancel_active_booking_is_not_allowed() -> None:
    repo = FakeBookingRepo([_booking(1, status=BookingStatus.ACTIVE)])
    with pytest.raises(CancelNotAllowedError):
        await uc.cancel_booking(repo, booking_id=1, user_id=1)
    assert repo.deleted == []
    assert repo.past == []


@pytest.mark.asyncio
async def test_active_search_matches_vehicle_slot_and_status() -> None:
    repo = FakeBookingRepo([_booking(1, slot_id="A-1"), _booking(2, slot_id="B-7")])

    assert [b.booking_id for b in await uc.list_active_bookings(repo, user_id=1, search="b-7")] == [2]
    assert [b.booking_id for b in await uc.list_active_bookings(repo, user_id=1, search="ka01")] == [1]
    assert len(await uc.list_active_bookings(repo, user_id=1, search="BOOKED")) == 2
    assert len(await uc.list_active_bookings(repo, user_id=1, search="   ")) == 2


@pytest.mark.asyncio
async def test_past_bookings_filter_by_status_and_search() -> None:
    repo = FakeBookingRepo(
        [],
        past=[
            _past(1, status=BookingStatus.CANCELLED, area_name="Central Plaza", customer_name="Asha"),
            _past(2, status=BookingStatus.COMPLETED, area_name="Station Road", customer_name="Ravi"),
        ],
    )

    cancelled = await uc.list_past_bookings(repo, user_id=1, status=BookingStatus.CANCELLED)
    assert [p.booking_id for p in cancelled] == [1]

    by_area = await uc.list_past_bookings(repo, user_id=1, search="station")
    assert [p.booking_id for p in by_area] == [2]

    by_customer = await uc.list_past_bookings(repo, user_id=1, search="asha", status=BookingStatus.COMPLETED)
    assert by_customer == []
