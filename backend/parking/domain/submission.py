from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from ..models import Booking, BookingStatus, PaymentStatus, SlotStatus
from ..utils.audit_log import emit_audit_log
from .errors import GatewayError, SubmissionError, WizardValidationError
from .repositories import ParkingGateway

if TYPE_CHECKING:
    from .wizard import BookingDraft

logger = logging.getLogger(__name__)

STEP_VEHICLE_LOOKUP = "vehicle_lookup"
STEP_VEHICLE_CREATE = "vehicle_create"
STEP_BOOKING_CREATE = "booking_create"
STEP_SLOT_UPDATE = "slot_update"

Compensation = tuple[str, Callable[[], Awaitable[None]]]


@dataclass(frozen=True)
class SubmissionResult:
    booking: Booking
    vehicle_created: bool


async def submit_booking(
    gateway: ParkingGateway,
    draft: "BookingDraft",
    *,
    user_id: int | None,
) -> SubmissionResult:
    """
    Write a confirmed draft: vehicle (if new) -> booking -> slot status.

    The writes are independent; when one fails the remaining ones are skipped
    and the completed ones are undone in reverse order. Undo steps that fail
    are reported on the SubmissionError as unreconciled.
    """
    missing = [name for name in ("slot_id", "entry_time", "exit_time") if getattr(draft, name) is None]
    if missing:
        raise WizardValidationError({name: f"{name} is required" for name in missing})
    vehicle_number = draft.vehicle_number.strip().upper()
    compensations: list[Compensation] = []
    vehicle_created = False

    step = STEP_VEHICLE_LOOKUP
    try:
        existing = await gateway.find_vehicle(vehicle_number)
        if existing is None:
            step = STEP_VEHICLE_CREATE
            await gateway.create_vehicle(
                vehicle_number=vehicle_number,
                customer_name=draft.customer_name.strip(),
                contact_number=draft.contact_number.strip(),
            )
            vehicle_created = True
            compensations.append(
                (f"delete vehicle {vehicle_number}", lambda: gateway.delete_vehicle(vehicle_number))
            )

        step = STEP_BOOKING_CREATE
        booking = await gateway.create_booking(
            user_id=user_id,
            vehicle_number=vehicle_number,
            slot_id=draft.slot_id,
            entry_time=draft.entry_time,
            exit_time=draft.exit_time,
            amount=draft.estimated_price or 0,
            status=BookingStatus.BOOKED,
            payment_status=PaymentStatus.PENDING,
        )
        booking_id = booking.booking_id
        compensations.append((f"delete booking {booking_id}", lambda: gateway.delete_booking(booking_id)))

        step = STEP_SLOT_UPDATE
        await gateway.update_slot_status(draft.slot_id, SlotStatus.BOOKED)
    except GatewayError as exc:
        logger.warning("booking submission failed at %s: %s", step, exc)
        unreconciled = await _compensate(compensations)
        raise SubmissionError(step, str(exc), unreconciled=unreconciled) from exc

    return SubmissionResult(booking=booking, vehicle_created=vehicle_created)


def audit_submission(result: SubmissionResult, *, user_id: int | None) -> None:
    booking = result.booking
    if result.vehicle_created:
        emit_audit_log(
            action="vehicle.created",
            initiator="user",
            user_id=user_id,
            vehicle_number=booking.vehicle_number,
        )
    emit_audit_log(
        action="booking.created",
        initiator="user",
        user_id=user_id,
        booking_id=booking.booking_id,
        slot_id=booking.slot_id,
        vehicle_number=booking.vehicle_number,
        status_to=booking.status,
        amount=booking.amount_paid,
    )
    emit_audit_log(
        action="slot.status_changed",
        initiator="user",
        user_id=user_id,
        booking_id=booking.booking_id,
        slot_id=booking.slot_id,
        status_from=SlotStatus.AVAILABLE,
        status_to=SlotStatus.BOOKED,
    )


async def _compensate(compensations: list[Compensation]) -> list[str]:
    unreconciled: list[str] = []
    for description, undo in reversed(compensations):
        try:
            await undo()
        except GatewayError as exc:
            logger.error("compensation %r failed, needs reconciliation: %s", description, exc)
            unreconciled.append(description)
        else:
            logger.info("compensated: %s", description)
    return unreconciled
