from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_user_id, get_session, get_wizard_store
from ..domain.errors import (
    IllegalTransitionError,
    SubmissionError,
    WizardBusyError,
    WizardNotFoundError,
    WizardValidationError,
)
from ..infrastructure.repositories import SqlAlchemyParkingGateway
from ..infrastructure.wizard_store import MemoryWizardStore
from ..schemas import (
    AreaList,
    AreaRead,
    AreaSelect,
    BookingRead,
    DetailsUpdate,
    ExitOptionRead,
    ScheduleUpdate,
    SlotList,
    SlotRead,
    SlotSelect,
    WizardRead,
)
from ..utils.time import to_utc_naive

router = APIRouter(prefix="/wizards", tags=["wizards"], dependencies=[Depends(get_current_user_id)])


@contextmanager
def _domain_errors() -> Iterator[None]:
    try:
        yield
    except WizardNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (WizardBusyError, IllegalTransitionError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except WizardValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Please fill in all required fields", "errors": exc.errors},
        ) from exc
    except SubmissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": f"Failed to create booking: {exc.message}",
                "step": exc.step,
                "unreconciled": exc.unreconciled,
            },
        ) from exc


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="datetimes must have timezone")
    return to_utc_naive(value)


@router.post("", response_model=WizardRead, status_code=status.HTTP_201_CREATED)
async def create_wizard(
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    created = store.create(user_id)
    with store.checkout(created.wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        return WizardRead.from_wizard(wizard_id=created.wizard_id, wizard=wizard)


@router.get("/{wizard_id}", response_model=WizardRead)
async def get_wizard(
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        return WizardRead.from_wizard(wizard_id=wizard_id, wizard=wizard)


@router.get("/{wizard_id}/areas", response_model=AreaList)
async def list_wizard_areas(
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> AreaList:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        areas = await wizard.load_areas()
        return AreaList(items=[AreaRead.from_db(area=a) for a in areas], notice=wizard.notice)


@router.get("/{wizard_id}/slots", response_model=SlotList)
async def list_wizard_slots(
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> SlotList:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        slots = await wizard.load_slots()
        return SlotList(items=[SlotRead.from_db(slot=s) for s in slots], notice=wizard.notice)


@router.get("/{wizard_id}/exit-options", response_model=List[ExitOptionRead])
async def list_wizard_exit_options(
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> list[ExitOptionRead]:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        return [ExitOptionRead.from_quote(q) for q in wizard.exit_time_options()]


@router.put("/{wizard_id}/area", response_model=WizardRead)
async def select_area(
    payload: AreaSelect,
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        wizard.select_area(payload.area_id)
        return WizardRead.from_wizard(wizard_id=wizard_id, wizard=wizard)


@router.put("/{wizard_id}/slot", response_model=WizardRead)
async def select_slot(
    payload: SlotSelect,
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        await wizard.select_slot(payload.slot_id)
        return WizardRead.from_wizard(wizard_id=wizard_id, wizard=wizard)


@router.put("/{wizard_id}/schedule", response_model=WizardRead)
async def update_schedule(
    payload: ScheduleUpdate,
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    entry_time = _naive_utc(payload.entry_time)
    exit_time = _naive_utc(payload.exit_time)
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        if payload.booking_type is not None:
            wizard.select_booking_type(payload.booking_type)
        if entry_time is not None:
            wizard.select_entry_time(entry_time)
        if exit_time is not None:
            wizard.select_exit_time(exit_time)
        return WizardRead.from_wizard(wizard_id=wizard_id, wizard=wizard)


@router.put("/{wizard_id}/details", response_model=WizardRead)
async def update_details(
    payload: DetailsUpdate,
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        wizard.update_details(
            vehicle_number=payload.vehicle_number,
            customer_name=payload.customer_name,
            contact_number=payload.contact_number,
        )
        return WizardRead.from_wizard(wizard_id=wizard_id, wizard=wizard)


@router.post("/{wizard_id}/next", response_model=WizardRead)
async def next_step(
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        wizard.next()
        return WizardRead.from_wizard(wizard_id=wizard_id, wizard=wizard)


@router.post("/{wizard_id}/back", response_model=WizardRead)
async def previous_step(
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> WizardRead:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        wizard.back()
        return WizardRead.from_wizard(wizard_id=wizard_id, wizard=wizard)


@router.post("/{wizard_id}/submit", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def submit(
    wizard_id: str,
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
    store: MemoryWizardStore = Depends(get_wizard_store),
) -> BookingRead:
    with _domain_errors(), store.checkout(wizard_id, user_id, SqlAlchemyParkingGateway(session)) as wizard:
        try:
            booking = await wizard.submit()
        except RuntimeError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="booking created but audit log failed",
            ) from exc
    return BookingRead.from_db(booking=booking)
