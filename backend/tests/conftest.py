from datetime import datetime
from typing import Optional

import pytest
from parking.domain.errors import GatewayError
from parking.models import Area, Booking, BookingStatus, ParkingSlot, PaymentStatus, SlotStatus, Vehicle


class FakeGateway:
    """In-memory ParkingGateway that records every call and can fail on demand."""

    def __init__(self) -> None:
        self.areas = [
            Area(area_id="A", area_name="Central Plaza", latitude=12.97, longitude=77.59),
            Area(area_id="B", area_name="Station Road", latitude=None, longitude=None),
        ]
        self.slots = [
            ParkingSlot(slot_id="A-1", area_id="A", status=SlotStatus.AVAILABLE),
            ParkingSlot(slot_id="B-1", area_id="B", status=SlotStatus.BOOKED),
        ]
        self.vehicles: dict[str, Vehicle] = {}
        self.bookings: dict[int, Booking] = {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self._next_booking_id = 100

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise GatewayError(f"{name} unavailable")

    def slot(self, slot_id: str) -> ParkingSlot:
        return next(s for s in self.slots if s.slot_id == slot_id)

    async def list_areas(self) -> list[Area]:
        self._record("list_areas")
        return list(self.areas)

    async def list_available_slots(self, area_id: str) -> list[ParkingSlot]:
        self._record("list_available_slots")
        return [s for s in self.slots if s.area_id == area_id and s.status == SlotStatus.AVAILABLE]

    async def find_vehicle(self, vehicle_number: str) -> Optional[Vehicle]:
        self._record("find_vehicle")
        return self.vehicles.get(vehicle_number)

    async def create_vehicle(self, *, vehicle_number: str, customer_name: str, contact_number: str) -> Vehicle:
        self._record("create_vehicle")
        vehicle = Vehicle(vehicle_number=vehicle_number, customer_name=customer_name, contact_number=contact_number)
        self.vehicles[vehicle_number] = vehicle
        return vehicle

    async def create_booking(
        self,
        *,
        user_id: int | None,
        vehicle_number: str,
        slot_id: str,
        entry_time: datetime,
        exit_time: datetime,
        amount: int,
        status: BookingStatus,
        payment_status: PaymentStatus,
    ) -> Booking:
        self._record("create_booking")
        booking = Booking(
            booking_id=self._next_booking_id,
            user_id=user_id,
            vehicle_number=vehicle_number,
            slot_id=slot_id,
            entry_time=entry_time,
            exit_time=exit_time,
            amount_paid=amount,
            status=status,
            payment_status=payment_status,
        )
        self.bookings[booking.booking_id] = booking
        self._next_booking_id += 1
        return booking

    async def update_slot_status(self, slot_id: str, status: SlotStatus) -> None:
        self._record("update_slot_status")
        slot = self.slot(slot_id)
        if slot.status == status:
            raise GatewayError(f"slot {slot_id} is already {status}")
        slot.status = status

    async def delete_booking(self, booking_id: int) -> None:
        self._record("delete_booking")
        self.bookings.pop(booking_id, None)

    async def delete_vehicle(self, vehicle_number: str) -> None:
        self._record("delete_vehicle")
        self.vehicles.pop(vehicle_number, None)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
