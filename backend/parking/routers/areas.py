import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_user_id, get_session
from ..domain.errors import GatewayError
from ..infrastructure.repositories import SqlAlchemyParkingGateway
from ..schemas import AreaList, AreaRead, SlotList, SlotRead
from ..usecases import areas as area_usecase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/areas", tags=["areas"], dependencies=[Depends(get_current_user_id)])


@router.get("", response_model=AreaList)
async def list_areas(session: AsyncSession = Depends(get_session)) -> AreaList:
    gateway = SqlAlchemyParkingGateway(session)
    try:
        areas = await area_usecase.list_areas(gateway)
    except GatewayError as exc:
        logger.warning("failed to load areas: %s", exc)
        return AreaList(items=[], notice=f"Failed to load areas: {exc}")
    return AreaList(items=[AreaRead.from_db(area=area) for area in areas])


@router.get("/{area_id}/slots/availability", response_model=SlotList)
async def list_available_slots(
    area_id: str,
    session: AsyncSession = Depends(get_session),
) -> SlotList:
    gateway = SqlAlchemyParkingGateway(session)
    try:
        slots = await area_usecase.list_available_slots(gateway, area_id=area_id)
    except GatewayError as exc:
        logger.warning("failed to load slots for area %s: %s", area_id, exc)
        return SlotList(items=[], notice=f"Failed to load available slots: {exc}")
    return SlotList(items=[SlotRead.from_db(slot=slot) for slot in slots])
