from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_current_user_id
from ..domain.errors import InvalidTimeIntervalError
from ..domain.pricing import DEFAULT_EXIT_OPTION_COUNT, SLAB_RATE, count_slabs, generate_exit_time_options
from ..schemas import ExitOptionRead, QuoteRead
from ..utils.currency import format_price_inr
from ..utils.time import to_utc_naive

router = APIRouter(prefix="/pricing", tags=["pricing"], dependencies=[Depends(get_current_user_id)])


def _require_aware(*values: datetime) -> None:
    if any(value.tzinfo is None for value in values):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="datetimes must have timezone")


@router.get("/quote", response_model=QuoteRead)
async def quote(
    entry: datetime = Query(..., description="entry time (ISO 8601 with offset)"),
    exit: datetime = Query(..., description="exit time (ISO 8601 with offset)"),
) -> QuoteRead:
    _require_aware(entry, exit)
    try:
        slabs = count_slabs(to_utc_naive(entry), to_utc_naive(exit))
    except InvalidTimeIntervalError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    price = slabs * SLAB_RATE
    return QuoteRead(price=price, slabs=slabs, formatted=format_price_inr(price))


@router.get("/exit-options", response_model=List[ExitOptionRead])
async def exit_options(
    entry: datetime = Query(..., description="entry time (ISO 8601 with offset)"),
    count: int = Query(default=DEFAULT_EXIT_OPTION_COUNT, ge=0, le=48),
) -> list[ExitOptionRead]:
    _require_aware(entry)
    return [ExitOptionRead.from_quote(q) for q in generate_exit_time_options(to_utc_naive(entry), count)]
