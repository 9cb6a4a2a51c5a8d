from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_user_id, get_session
from ..domain.errors import BookingNotFoundError, CancelNotAllowedError
from ..infrastructure.repositories import SqlAlchemyBookingRepository
from ..models import BookingStatus, SlotStatus
from ..schemas import BookingRead, PastBookingRead
from ..usecases import bookings as booking_usecase
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="/me/bookings", tags=["bookings"])


@router.get("/active", response_model=List[BookingRead])
async def list_active_bookings(
    search: Optional[str] = Query(default=None, max_length=100),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> list[BookingRead]:
    repo = SqlAlchemyBookingRepository(session)
    rows = await booking_usecase.list_active_bookings(repo, user_id=user_id, search=search)
    return [BookingRead.from_db(booking=b) for b in rows]


@router.get("/past", response_model=List[PastBookingRead])
async def list_past_bookings(
    search: Optional[str] = Query(default=None, max_length=100),
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> list[PastBookingRead]:
    repo = SqlAlchemyBookingRepository(session)
    rows = await booking_usecase.list_past_bookings(repo, user_id=user_id, search=search, status=status_filter)
    return [PastBookingRead.from_db(past=p) for p in rows]


@router.post("/{booking_id}/cancel", response_model=PastBookingRead)
async def cancel_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
) -> PastBookingRead:
    repo = SqlAlchemyBookingRepository(session)
    try:
        past = await booking_usecase.cancel_booking(repo, booking_id=booking_id, user_id=user_id)
    except BookingNotFoundError:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    except CancelNotAllowedError as exc:
        await session.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    await session.commit()

    try:
        emit_audit_log(
            action="booking.cancelled",
            initiator="user",
            user_id=user_id,
            booking_id=past.booking_id,
            slot_id=past.slot_id,
            vehicle_number=past.vehicle_number,
            status_from=BookingStatus.BOOKED,
            status_to=BookingStatus.CANCELLED,
            amount=past.amount_paid,
        )
        emit_audit_log(
            action="slot.status_changed",
            initiator="user",
            user_id=user_id,
            booking_id=past.booking_id,
            slot_id=past.slot_id,
            status_from=SlotStatus.BOOKED,
            status_to=SlotStatus.AVAILABLE,
        )
    except RuntimeError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="booking cancelled but audit log failed",
        ) from exc
    return PastBookingRead.from_db(past=past)
