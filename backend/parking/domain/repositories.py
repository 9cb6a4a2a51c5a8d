from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ..models import Area, Booking, BookingStatus, ParkingSlot, PastBooking, PaymentStatus, SlotStatus, Vehicle


class ParkingGateway(Protocol):
    """
    Backend access used by the booking wizard.
    Every method returns its result or raises GatewayError.
    """

    async def list_areas(self) -> list[Area]: ...

    async def list_available_slots(self, area_id: str) -> list[ParkingSlot]: ...

    async def find_vehicle(self, vehicle_number: str) -> Vehicle | None: ...

    async def create_vehicle(
        self,
        *,
        vehicle_number: str,
        customer_name: str,
        contact_number: str,
    ) -> Vehicle: ...

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
    ) -> Booking: ...

    async def update_slot_status(self, slot_id: str, status: SlotStatus) -> None:
        """Flip the slot to `status`; raises GatewayError if it already has it."""
        ...

    async def delete_booking(self, booking_id: int) -> None: ...

    async def delete_vehicle(self, vehicle_number: str) -> None: ...


class BookingRepository(Protocol):
    async def list_active(self, user_id: int) -> list[Booking]: ...

    async def list_past(self, user_id: int) -> list[PastBooking]: ...

    async def get_for_user_for_update(self, booking_id: int, user_id: int) -> Booking | None: ...

    async def get_vehicle(self, vehicle_number: str) -> Vehicle | None: ...

    async def get_area_name_for_slot(self, slot_id: str) -> str | None: ...

    async def archive(self, past: PastBooking) -> PastBooking: ...

    async def set_slot_status(self, slot_id: str, status: SlotStatus) -> None: ...

    async def delete(self, booking: Booking) -> None: ...
