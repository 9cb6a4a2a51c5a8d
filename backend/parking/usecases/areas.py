from ..domain.repositories import ParkingGateway
from ..models import Area, ParkingSlot


async def list_areas(gateway: ParkingGateway) -> list[Area]:
    return await gateway.list_areas()


async def list_available_slots(gateway: ParkingGateway, *, area_id: str) -> list[ParkingSlot]:
    return await gateway.list_available_slots(area_id)
