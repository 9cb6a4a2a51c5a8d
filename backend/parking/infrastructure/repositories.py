from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import GatewayError
from ..domain.repositories import BookingRepository, ParkingGateway
from ..models import (
    ACTIVE_BOOKING_STATUSES,
    Area,
    Booking,
    BookingStatus,
    ParkingSlot,
    PastBooking,
    PaymentStatus,
    SlotStatus,
    Vehicle,
)


class SqlAlchemyParkingGateway(ParkingGateway):
    """
    Wizard backend on top of an AsyncSession.
    Each write is committed on its own; failures roll the session back and
    surface as GatewayError.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _fail(self, message: str, exc: SQLAlchemyError) -> GatewayError:
        await self.session.rollback()
        return GatewayError(f"{message}: {exc.__class__.__name__}")

    async def list_areas(self) -> List[Area]:
        try:
            rows = await self.session.scalars(select(Area).order_by(Area.area_name))
        except SQLAlchemyError as exc:
            raise await self._fail("could not load areas", exc) from exc
        return list(rows.all())

    async def list_available_slots(self, area_id: str) -> List[ParkingSlot]:
        stmt = (
            select(ParkingSlot)
            .where(ParkingSlot.area_id == area_id, ParkingSlot.status == SlotStatus.AVAILABLE)
            .order_by(ParkingSlot.slot_id)
        )
        try:
            rows = await self.session.scalars(stmt)
        except SQLAlchemyError as exc:
            raise await self._fail("could not load slots", exc) from exc
        return list(rows.all())

    async def find_vehicle(self, vehicle_number: str) -> Optional[Vehicle]:
        try:
            result = await self.session.scalar(select(Vehicle).where(Vehicle.vehicle_number == vehicle_number))
        except SQLAlchemyError as exc:
            raise await self._fail("could not look up vehicle", exc) from exc
        return result if isinstance(result, Vehicle) else None

    async def create_vehicle(
        self,
        *,
        vehicle_number: str,
        customer_name: str,
        contact_number: str,
    ) -> Vehicle:
        vehicle = Vehicle(
            vehicle_number=vehicle_number,
            customer_name=customer_name,
            contact_number=contact_number,
        )
        try:
            self.session.add(vehicle)
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("could not register vehicle", exc) from exc
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
        booking = Booking(
            user_id=user_id,
            vehicle_number=vehicle_number,
            slot_id=slot_id,
            entry_time=entry_time,
            exit_time=exit_time,
            amount_paid=amount,
            status=status,
            payment_status=payment_status,
        )
        try:
            self.session.add(booking)
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("could not create booking", exc) from exc
        return booking

    async def update_slot_status(self, slot_id: str, status: SlotStatus) -> None:
        stmt = (
            update(ParkingSlot)
            .where(ParkingSlot.slot_id == slot_id, ParkingSlot.status != status)
            .values(status=status)
        )
        try:
            result = await self.session.execute(stmt)
            changed = result.rowcount
            if changed == 1:
                await self.session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("could not update slot status", exc) from exc
        if changed != 1:
            # Someone else took the slot between selection and submit.
            await self.session.rollback()
            raise GatewayError(f"slot {slot_id} is already {status}")

    async def delete_booking(self, booking_id: int) -> None:
        try:
            await self.session.execute(delete(Booking).where(Booking.booking_id == booking_id))
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("could not delete booking", exc) from exc

    async def delete_vehicle(self, vehicle_number: str) -> None:
        try:
            await self.session.execute(delete(Vehicle).where(Vehicle.vehicle_number == vehicle_number))
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("could not delete vehicle", exc) from exc


class SqlAlchemyBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active(self, user_id: int) -> List[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id, Booking.status.in_(ACTIVE_BOOKING_STATUSES))
            .order_by(Booking.entry_time.desc())
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_past(self, user_id: int) -> List[PastBooking]:
        stmt = select(PastBooking).where(PastBooking.user_id == user_id).order_by(PastBooking.created_at.desc())
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def get_for_user_for_update(self, booking_id: int, user_id: int) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.booking_id == booking_id, Booking.user_id == user_id).with_for_update()
        result = await self.session.scalar(stmt)
        return result if isinstance(result, Booking) else None

    async def get_vehicle(self, vehicle_number: str) -> Optional[Vehicle]:
        result = await self.session.scalar(select(Vehicle).where(Vehicle.vehicle_number == vehicle_number))
        return result if isinstance(result, Vehicle) else None

    async def get_area_name_for_slot(self, slot_id: str) -> Optional[str]:
        stmt = (
            select(Area.area_name)
            .join(ParkingSlot, ParkingSlot.area_id == Area.area_id)
            .where(ParkingSlot.slot_id == slot_id)
        )
        return await self.session.scalar(stmt)

    async def archive(self, past: PastBooking) -> PastBooking:
        self.session.add(past)
        await self.session.flush()
        return past

    async def set_slot_status(self, slot_id: str, status: SlotStatus) -> None:
        await self.session.execute(update(ParkingSlot).where(ParkingSlot.slot_id == slot_id).values(status=status))

    async def delete(self, booking: Booking) -> None:
        await self.session.delete(booking)
        await self.session.flush()
