from datetime import datetime, timedelta, timezone
from typing import Any, cast

import pytest
from fastapi import HTTPException
from parking.domain import submission
from parking.domain.errors import WizardNotFoundError
from parking.infrastructure.wizard_store import MemoryWizardStore
from parking.routers import wizards as router
from parking.schemas import AreaSelect, DetailsUpdate, ScheduleUpdate, SlotSelect
from sqlalchemy.ext.asyncio import AsyncSession

IST = timezone(timedelta(hours=5, minutes=30))
ENTRY = datetime(2026, 3, 1, 14, 30, tzinfo=IST)


class DummySession:
    async def commit(self) -> None:  # pragma: no cover - gateway is faked
        return None

    async def rollback(self) -> None:  # pragma: no cover - gateway is faked
        return None


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch, gateway) -> MemoryWizardStore:
    monkeypatch.setattr(router, "SqlAlchemyParkingGateway", lambda s: gateway)
    return MemoryWizardStore()


def _kw(store: MemoryWizardStore, user_id: int = 1) -> dict[str, Any]:
    return {"session": cast(AsyncSession, DummySession()), "user_id": user_id, "store": store}


async def _to_confirm(store: MemoryWizardStore) -> str:
    view = await router.create_wizard(**_kw(store))
    wid = view.wizard_id
    await router.select_area(AreaSelect(area_id="A"), wid, **_kw(store))
    await router.next_step(wid, **_kw(store))
    await router.select_slot(SlotSelect(slot_id="A-1"), wid, **_kw(store))
    await router.next_step(wid, **_kw(store))
    await router.update_schedule(
        ScheduleUpdate(entry_time=ENTRY, exit_time=ENTRY + timedelta(minutes=90)),
        wid,
        **_kw(store),
    )
    await router.next_step(wid, **_kw(store))
    await router.update_details(
        DetailsUpdate(vehicle_number="ka01ab1234", customer_name="Asha", contact_number="9876543210"),
        wid,
        **_kw(store),
    )
    view = await router.next_step(wid, **_kw(store))
    assert view.step == 5
    return wid


@pytest.mark.asyncio
async def test_create_starts_on_area_step(store: MemoryWizardStore) -> None:
    view = await router.create_wizard(**_kw(store))
    assert view.step == 1
    assert view.draft.area_id is None
    assert view.errors == {}


@pytest.mark.asyncio
async def test_next_without_area_returns_field_errors(store: MemoryWizardStore) -> None:
    view = await router.create_wizard(**_kw(store))

    with pytest.raises(HTTPException) as excinfo:
        await router.next_step(view.wizard_id, **_kw(store))

    assert excinfo.value.status_code == 422
    detail = cast(dict[str, Any], excinfo.value.detail)
    assert set(detail["errors"]) == {"area_id"}
    current = await router.get_wizard(view.wizard_id, **_kw(store))
    assert current.step == 1
    assert current.validation_errors == {"area_id": True}


@pytest.mark.asyncio
async def test_schedule_converts_to_utc_and_prices(store: MemoryWizardStore) -> None:
    view = await router.create_wizard(**_kw(store))
    wid = view.wizard_id
    await router.select_area(AreaSelect(area_id="A"), wid, **_kw(store))
    await router.next_step(wid, **_kw(store))
    await router.select_slot(SlotSelect(slot_id="A-1"), wid, **_kw(store))
    await router.next_step(wid, **_kw(store))

    view = await router.update_schedule(
        ScheduleUpdate(entry_time=ENTRY, exit_time=ENTRY + timedelta(minutes=60)),
        wid,
        **_kw(store),
    )

    assert view.draft.entry_time == datetime(2026, 3, 1, 9, 0)
    assert view.draft.estimated_price == 100
    assert view.draft.formatted_price == "₹100"
    options = await router.list_wizard_exit_options(wid, **_kw(store))
    assert len(options) == 12
    assert options[0].exit_time_ist == "Mar 01, 2026 03:00 PM IST"


@pytest.mark.asyncio
async def test_schedule_rejects_naive_datetimes(store: MemoryWizardStore) -> None:
    view = await router.create_wizard(**_kw(store))
    with pytest.raises(HTTPException) as excinfo:
        await router.update_schedule(
            ScheduleUpdate(entry_time=datetime(2026, 3, 1, 9, 0)),
            view.wizard_id,
            **_kw(store),
        )
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_selecting_out_of_step_is_conflict(store: MemoryWizardStore) -> None:
    view = await router.create_wizard(**_kw(store))
    with pytest.raises(HTTPException) as excinfo:
        await router.select_slot(SlotSelect(slot_id="A-1"), view.wizard_id, **_kw(store))
    assert excinfo.value.status_code == 409


@pytest.mark.asyncio
async def test_unknown_or_foreign_wizard_is_404(store: MemoryWizardStore) -> None:
    view = await router.create_wizard(**_kw(store))
    with pytest.raises(HTTPException) as excinfo:
        await router.get_wizard("missing", **_kw(store))
    assert excinfo.value.status_code == 404
    with pytest.raises(HTTPException) as excinfo:
        await router.get_wizard(view.wizard_id, **_kw(store, user_id=2))
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_submit_creates_booking_and_drops_wizard(store: MemoryWizardStore, gateway) -> None:
    wid = await _to_confirm(store)

    booking = await router.submit(wid, **_kw(store))

    assert booking.amount_paid == 150
    assert booking.vehicle_number == "KA01AB1234"
    assert booking.formatted_amount == "₹150"
    assert gateway.calls[-1] == "update_slot_status"
    with pytest.raises(WizardNotFoundError):
        store.get(wid, 1)


@pytest.mark.asyncio
async def test_submit_failure_is_bad_gateway_with_step(store: MemoryWizardStore, gateway) -> None:
    wid = await _to_confirm(store)
    gateway.fail_on.add("update_slot_status")

    with pytest.raises(HTTPException) as excinfo:
        await router.submit(wid, **_kw(store))

    assert excinfo.value.status_code == 502
    detail = cast(dict[str, Any], excinfo.value.detail)
    assert detail["step"] == "slot_update"
    assert detail["unreconciled"] == []
    assert store.get(wid, 1).state == "confirm"


@pytest.mark.asyncio
async def test_audit_failure_after_submit_returns_500(
    store: MemoryWizardStore,
    gateway,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    wid = await _to_confirm(store)

    def fake_emit(**kwargs: Any) -> None:
        raise RuntimeError("fail log")

    monkeypatch.setattr(submission, "emit_audit_log", fake_emit)

    with pytest.raises(HTTPException) as excinfo:
        await router.submit(wid, **_kw(store))

    assert excinfo.value.status_code == 500
    assert len(gateway.bookings) == 1
    # the booking exists, so the wizard must not be submittable again
    with pytest.raises(WizardNotFoundError):
        store.get(wid, 1)


@pytest.mark.asyncio
async def test_booked_slot_is_rejected_with_field_error(store: MemoryWizardStore) -> None:
    view = await router.create_wizard(**_kw(store))
    wid = view.wizard_id
    await router.select_area(AreaSelect(area_id="B"), wid, **_kw(store))
    await router.next_step(wid, **_kw(store))

    with pytest.raises(HTTPException) as excinfo:
        await router.select_slot(SlotSelect(slot_id="B-1"), wid, **_kw(store))

    assert excinfo.value.status_code == 422
    detail = cast(dict[str, Any], excinfo.value.detail)
    assert set(detail["errors"]) == {"slot_id"}
    assert (await router.get_wizard(wid, **_kw(store))).draft.slot_id is None
