from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from parking.routers import pricing as router

IST = timezone(timedelta(hours=5, minutes=30))


@pytest.mark.asyncio
async def test_quote_rounds_up_to_whole_slabs() -> None:
    entry = datetime(2026, 3, 1, 10, 0, tzinfo=IST)
    result = await router.quote(entry=entry, exit=entry + timedelta(minutes=61))
    assert result.slabs == 3
    assert result.price == 150
    assert result.formatted == "₹150"


@pytest.mark.asyncio
async def test_quote_accepts_mixed_offsets() -> None:
    entry = datetime(2026, 3, 1, 10, 0, tzinfo=IST)
    exit_utc = datetime(2026, 3, 1, 5, 0, tzinfo=timezone.utc)
    result = await router.quote(entry=entry, exit=exit_utc)
    assert result.slabs == 1


@pytest.mark.asyncio
async def test_quote_rejects_exit_not_after_entry() -> None:
    entry = datetime(2026, 3, 1, 10, 0, tzinfo=IST)
    with pytest.raises(HTTPException) as excinfo:
        await router.quote(entry=entry, exit=entry)
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_quote_rejects_naive_datetimes() -> None:
    entry = datetime(2026, 3, 1, 10, 0)
    with pytest.raises(HTTPException) as excinfo:
        await router.quote(entry=entry, exit=entry + timedelta(hours=1))
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_exit_options_are_priced_per_slab() -> None:
    entry = datetime(2026, 3, 1, 10, 0, tzinfo=IST)
    options = await router.exit_options(entry=entry, count=3)
    assert [o.price for o in options] == [50, 100, 150]
    assert options[0].exit_time == datetime(2026, 3, 1, 5, 0)
    assert options[0].exit_time_ist == "Mar 01, 2026 10:30 AM IST"
    assert options[2].formatted_price == "₹150"
