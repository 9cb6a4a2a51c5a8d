from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.pricing import PriceQuote
from .domain.wizard import BookingType, BookingWizard, WizardState
from .models import Area, Booking, BookingStatus, ParkingSlot, PastBooking, PaymentStatus, SlotStatus
from .utils.currency import format_price_inr
from .utils.time import format_in_ist


def _utc_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


class AreaRead(BaseModel):
    area_id: str
    area_name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_db(cls, *, area: Area) -> "AreaRead":
        return cls(
            area_id=area.area_id,
            area_name=area.area_name,
            latitude=area.latitude,
            longitude=area.longitude,
        )


class SlotRead(BaseModel):
    slot_id: str
    area_id: str
    status: SlotStatus

    @classmethod
    def from_db(cls, *, slot: ParkingSlot) -> "SlotRead":
        return cls(slot_id=slot.slot_id, area_id=slot.area_id, status=slot.status)


class ExitOptionRead(BaseModel):
    exit_time: datetime
    price: int
    formatted_price: str
    exit_time_ist: str

    @field_serializer("exit_time")
    def _ser_datetime(self, dt: datetime) -> str:
        return _utc_iso(dt)

    @classmethod
    def from_quote(cls, quote: PriceQuote) -> "ExitOptionRead":
        return cls(
            exit_time=quote.exit_time,
            price=quote.price,
            formatted_price=format_price_inr(quote.price),
            exit_time_ist=format_in_ist(quote.exit_time),
        )


class QuoteRead(BaseModel):
    price: int
    slabs: int
    formatted: str


class AreaSelect(BaseModel):
    area_id: str = Field(min_length=1)


class SlotSelect(BaseModel):
    slot_id: str = Field(min_length=1)


class ScheduleUpdate(BaseModel):
    booking_type: Optional[BookingType] = None
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None


class DetailsUpdate(BaseModel):
    vehicle_number: Optional[str] = Field(default=None, max_length=32)
    customer_name: Optional[str] = Field(default=None, max_length=255)
    contact_number: Optional[str] = Field(default=None, max_length=50)


class DraftRead(BaseModel):
    area_id: Optional[str]
    slot_id: Optional[str]
    booking_type: BookingType
    entry_time: Optional[datetime]
    exit_time: Optional[datetime]
    estimated_price: Optional[int]
    formatted_price: Optional[str]
    vehicle_number: str
    customer_name: str
    contact_number: str

    @field_serializer("entry_time", "exit_time")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _utc_iso(dt) if dt is not None else None


class WizardRead(BaseModel):
    wizard_id: str
    state: WizardState
    step: int
    draft: DraftRead
    errors: dict[str, str]
    validation_errors: dict[str, bool]
    notice: Optional[str] = None

    @classmethod
    def from_wizard(cls, *, wizard_id: str, wizard: BookingWizard) -> "WizardRead":
        draft = wizard.draft
        return cls(
            wizard_id=wizard_id,
            state=wizard.state,
            step=wizard.state.step,
            draft=DraftRead(
                area_id=draft.area_id,
                slot_id=draft.slot_id,
                booking_type=draft.booking_type,
                entry_time=draft.entry_time,
                exit_time=draft.exit_time,
                estimated_price=draft.estimated_price,
                formatted_price=(
                    format_price_inr(draft.estimated_price) if draft.estimated_price is not None else None
                ),
                vehicle_number=draft.vehicle_number,
                customer_name=draft.customer_name,
                contact_number=draft.contact_number,
            ),
            errors=dict(wizard.errors),
            validation_errors=wizard.validation_errors,
            notice=wizard.notice,
        )


class AreaList(BaseModel):
    items: list[AreaRead]
    notice: Optional[str] = None


class SlotList(BaseModel):
    items: list[SlotRead]
    notice: Optional[str] = None


class BookingRead(BaseModel):
    booking_id: int
    vehicle_number: str
    slot_id: str
    entry_time: datetime
    exit_time: Optional[datetime]
    status: BookingStatus
    payment_status: PaymentStatus
    amount_paid: Optional[int]
    formatted_amount: Optional[str]
    entry_time_ist: str

    @field_serializer("entry_time", "exit_time")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _utc_iso(dt) if dt is not None else None

    @classmethod
    def from_db(cls, *, booking: Booking) -> "BookingRead":
        return cls(
            booking_id=booking.booking_id,
            vehicle_number=booking.vehicle_number,
            slot_id=booking.slot_id,
            entry_time=booking.entry_time,
            exit_time=booking.exit_time,
            status=booking.status,
            payment_status=booking.payment_status,
            amount_paid=booking.amount_paid,
            formatted_amount=format_price_inr(booking.amount_paid) if booking.amount_paid is not None else None,
            entry_time_ist=format_in_ist(booking.entry_time),
        )


class PastBookingRead(BaseModel):
    booking_id: int
    vehicle_number: str
    slot_id: str
    area_name: str
    entry_time: datetime
    exit_time: Optional[datetime]
    status: BookingStatus
    payment_status: PaymentStatus
    amount_paid: Optional[int]
    customer_name: str
    contact_number: str
    cancelled_at: Optional[datetime]

    @field_serializer("entry_time", "exit_time", "cancelled_at")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _utc_iso(dt) if dt is not None else None

    @classmethod
    def from_db(cls, *, past: PastBooking) -> "PastBookingRead":
        return cls(
            booking_id=past.booking_id,
            vehicle_number=past.vehicle_number,
            slot_id=past.slot_id,
            area_name=past.area_name,
            entry_time=past.entry_time,
            exit_time=past.exit_time,
            status=past.status,
            payment_status=past.payment_status,
            amount_paid=past.amount_paid,
            customer_name=past.customer_name,
            contact_number=past.contact_number,
            cancelled_at=past.cancelled_at,
        )
