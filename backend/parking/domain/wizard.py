from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Callable, Iterator, Optional

from ..models import Area, Booking, ParkingSlot
from ..utils.time import utc_now_naive
from .errors import (
    GatewayError,
    IllegalTransitionError,
    SubmissionError,
    WizardBusyError,
    WizardValidationError,
)
from .pricing import PriceQuote, calculate_price, generate_exit_time_options
from .repositories import ParkingGateway
from .submission import audit_submission, submit_booking

logger = logging.getLogger(__name__)


class WizardState(StrEnum):
    AREA = "area"
    SLOT = "slot"
    SCHEDULE = "schedule"
    DETAILS = "details"
    CONFIRM = "confirm"
    SUBMITTED = "submitted"

    @property
    def step(self) -> int:
        return _STEP_NUMBERS[self]


_STEP_NUMBERS = {
    WizardState.AREA: 1,
    WizardState.SLOT: 2,
    WizardState.SCHEDULE: 3,
    WizardState.DETAILS: 4,
    WizardState.CONFIRM: 5,
    WizardState.SUBMITTED: 6,
}


class WizardAction(StrEnum):
    NEXT = "next"
    BACK = "back"
    SUBMIT = "submit"


class BookingType(StrEnum):
    IMMEDIATE = "immediate"
    RESERVE = "reserve"


@dataclass
class BookingDraft:
    area_id: Optional[str] = None
    slot_id: Optional[str] = None
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    estimated_price: Optional[int] = None
    vehicle_number: str = ""
    customer_name: str = ""
    contact_number: str = ""
    booking_type: BookingType = BookingType.RESERVE


Guard = Callable[[BookingDraft], dict[str, str]]


def _always(draft: BookingDraft) -> dict[str, str]:
    return {}


def _area_selected(draft: BookingDraft) -> dict[str, str]:
    if draft.area_id is None:
        return {"area_id": "Please select a parking area"}
    return {}


def _slot_selected(draft: BookingDraft) -> dict[str, str]:
    if draft.slot_id is None:
        return {"slot_id": "Please select a parking slot"}
    return {}


def _schedule_selected(draft: BookingDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    if draft.entry_time is None:
        errors["entry_time"] = "Please select an entry date"
    if draft.exit_time is None:
        errors["exit_time"] = "Please select an exit time"
    return errors


def _details_filled(draft: BookingDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    if not draft.vehicle_number.strip():
        errors["vehicle_number"] = "Vehicle number is required"
    if not draft.customer_name.strip():
        errors["customer_name"] = "Your name is required"
    if not draft.contact_number.strip():
        errors["contact_number"] = "Contact number is required"
    return errors


def _ready_to_submit(draft: BookingDraft) -> dict[str, str]:
    errors: dict[str, str] = {}
    for guard in (_area_selected, _slot_selected, _schedule_selected, _details_filled):
        errors.update(guard(draft))
    return errors


@dataclass(frozen=True)
class Transition:
    target: WizardState
    guard: Guard = _always


TRANSITIONS: dict[tuple[WizardState, WizardAction], Transition] = {
    (WizardState.AREA, WizardAction.NEXT): Transition(WizardState.SLOT, _area_selected),
    (WizardState.SLOT, WizardAction.NEXT): Transition(WizardState.SCHEDULE, _slot_selected),
    (WizardState.SCHEDULE, WizardAction.NEXT): Transition(WizardState.DETAILS, _schedule_selected),
    (WizardState.DETAILS, WizardAction.NEXT): Transition(WizardState.CONFIRM, _details_filled),
    (WizardState.SLOT, WizardAction.BACK): Transition(WizardState.AREA),
    (WizardState.SCHEDULE, WizardAction.BACK): Transition(WizardState.SLOT),
    (WizardState.DETAILS, WizardAction.BACK): Transition(WizardState.SCHEDULE),
    (WizardState.CONFIRM, WizardAction.BACK): Transition(WizardState.DETAILS),
    (WizardState.CONFIRM, WizardAction.SUBMIT): Transition(WizardState.SUBMITTED, _ready_to_submit),
}


def resolve_transition(state: WizardState, action: WizardAction) -> Transition:
    try:
        return TRANSITIONS[(state, action)]
    except KeyError:
        raise IllegalTransitionError(state.value, action.value) from None


@dataclass
class BookingWizard:
    """
    Five step booking flow: area -> slot -> schedule -> details -> confirm.

    Field selections are only accepted on the step that owns the field.
    Moving forward is gated by the transition guards; moving back keeps
    everything entered so far.
    """

    gateway: ParkingGateway
    user_id: Optional[int] = None
    state: WizardState = WizardState.AREA
    draft: BookingDraft = field(default_factory=BookingDraft)
    errors: dict[str, str] = field(default_factory=dict)
    notice: Optional[str] = None
    clock: Callable[[], datetime] = utc_now_naive
    _in_flight: bool = field(default=False, init=False, repr=False)

    @property
    def validation_errors(self) -> dict[str, bool]:
        return {name: True for name in self.errors}

    @property
    def busy(self) -> bool:
        return self._in_flight

    @contextmanager
    def _pending(self) -> Iterator[None]:
        if self._in_flight:
            raise WizardBusyError("a request for this booking is already in progress")
        self._in_flight = True
        try:
            yield
        finally:
            self._in_flight = False

    def _require_state(self, state: WizardState, action: str) -> None:
        if self.state != state:
            raise IllegalTransitionError(self.state.value, action)

    async def load_areas(self) -> list[Area]:
        with self._pending():
            try:
                areas = await self.gateway.list_areas()
            except GatewayError as exc:
                logger.warning("failed to load areas: %s", exc)
                self.notice = f"Failed to load areas: {exc}"
                return []
        self.notice = None
        return areas

    async def load_slots(self) -> list[ParkingSlot]:
        if self.draft.area_id is None:
            return []
        with self._pending():
            try:
                slots = await self.gateway.list_available_slots(self.draft.area_id)
            except GatewayError as exc:
                logger.warning("failed to load slots for area %s: %s", self.draft.area_id, exc)
                self.notice = f"Failed to load available slots: {exc}"
                return []
        self.notice = None
        return slots

    def select_area(self, area_id: str) -> None:
        self._require_state(WizardState.AREA, "select area")
        if area_id != self.draft.area_id:
            self.draft.slot_id = None
        self.draft.area_id = area_id
        self.errors.pop("area_id", None)

    async def select_slot(self, slot_id: str) -> None:
        """Accept `slot_id` only if it is currently available in the selected area."""
        self._require_state(WizardState.SLOT, "select slot")
        available = await self.load_slots()
        if slot_id not in {slot.slot_id for slot in available}:
            raise WizardValidationError({"slot_id": "Selected slot is not available in this area"})
        self.draft.slot_id = slot_id
        self.errors.pop("slot_id", None)

    def select_booking_type(self, booking_type: BookingType) -> None:
        self._require_state(WizardState.SCHEDULE, "select booking type")
        self.draft.booking_type = booking_type
        if booking_type == BookingType.IMMEDIATE:
            self._set_entry_time(self.clock().replace(second=0, microsecond=0))

    def select_entry_time(self, entry_time: datetime) -> None:
        self._require_state(WizardState.SCHEDULE, "select entry time")
        self._set_entry_time(entry_time)

    def _set_entry_time(self, entry_time: datetime) -> None:
        if entry_time != self.draft.entry_time:
            # Exit options are relative to the entry time.
            self.draft.exit_time = None
            self.draft.estimated_price = None
        self.draft.entry_time = entry_time
        self.errors.pop("entry_time", None)

    def exit_time_options(self) -> list[PriceQuote]:
        if self.draft.entry_time is None:
            return []
        return generate_exit_time_options(self.draft.entry_time)

    def select_exit_time(self, exit_time: datetime) -> None:
        self._require_state(WizardState.SCHEDULE, "select exit time")
        if self.draft.entry_time is None:
            raise WizardValidationError({"entry_time": "Please select an entry date first"})
        if exit_time not in {option.exit_time for option in self.exit_time_options()}:
            raise WizardValidationError({"exit_time": "Please choose one of the offered exit times"})
        self.draft.exit_time = exit_time
        self.draft.estimated_price = calculate_price(self.draft.entry_time, exit_time)
        self.errors.pop("exit_time", None)

    def update_details(
        self,
        *,
        vehicle_number: Optional[str] = None,
        customer_name: Optional[str] = None,
        contact_number: Optional[str] = None,
    ) -> None:
        self._require_state(WizardState.DETAILS, "update details")
        if vehicle_number is not None:
            self.draft.vehicle_number = vehicle_number.strip().upper()
            self.errors.pop("vehicle_number", None)
        if customer_name is not None:
            self.draft.customer_name = customer_name
            self.errors.pop("customer_name", None)
        if contact_number is not None:
            self.draft.contact_number = contact_number
            self.errors.pop("contact_number", None)

    def _advance(self, action: WizardAction) -> Transition:
        transition = resolve_transition(self.state, action)
        errors = transition.guard(self.draft)
        if errors:
            self.errors = errors
            raise WizardValidationError(errors)
        self.errors = {}
        return transition

    def next(self) -> WizardState:
        with self._pending():
            self.state = self._advance(WizardAction.NEXT).target
        return self.state

    def back(self) -> WizardState:
        with self._pending():
            self.state = self._advance(WizardAction.BACK).target
        return self.state

    async def submit(self) -> Booking:
        with self._pending():
            transition = self._advance(WizardAction.SUBMIT)
            try:
                result = await submit_booking(self.gateway, self.draft, user_id=self.user_id)
            except SubmissionError as exc:
                self.notice = f"Failed to create booking: {exc.message}"
                raise
            self.state = transition.target
            self.draft = BookingDraft()
            self.notice = None
        audit_submission(result, user_id=self.user_id)
        return result.booking
