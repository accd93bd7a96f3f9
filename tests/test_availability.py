"""Tests for slot availability queries."""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from conftest import TODAY, TOMORROW, YESTERDAY, booking

from service_scheduler.core.clock import FixedClock
from service_scheduler.core.exceptions import InvalidDateException
from service_scheduler.core.slots import SlotCatalog
from service_scheduler.services.appointment_service import AppointmentService
from service_scheduler.services.appointment_store import AppointmentStore
from service_scheduler.services.availability_service import AvailabilityService


@pytest.mark.asyncio
async def test_all_slots_free_on_empty_future_date(service: AppointmentService):
    day, slots = await service.availability.available_slots(TOMORROW)
    assert day == date(2025, 6, 2)
    assert slots == list(SlotCatalog.all())


@pytest.mark.asyncio
async def test_booked_slot_is_excluded_in_catalog_order(service: AppointmentService):
    """A booked slot disappears; the rest keep day order."""
    await service.create_appointment("cust-a", booking(TOMORROW, "11:00"))

    _, slots = await service.availability.available_slots(TOMORROW)

    assert [slot.value for slot in slots] == ["08:00", "09:30", "12:30", "14:00", "15:30"]


@pytest.mark.asyncio
async def test_today_filters_started_slots(service: AppointmentService):
    """At 12:45 today only the 14:00 and 15:30 slots are still bookable."""
    _, slots = await service.availability.available_slots(TODAY)
    assert [slot.value for slot in slots] == ["14:00", "15:30"]


@pytest.mark.asyncio
async def test_today_excludes_slot_starting_now(db_session):
    """A slot starting exactly now is not offered."""
    clock = FixedClock(datetime(2025, 6, 1, 14, 0))
    availability = AvailabilityService(AppointmentStore(db_session), clock)

    _, slots = await availability.available_slots(TODAY)

    assert [slot.value for slot in slots] == ["15:30"]


@pytest.mark.asyncio
async def test_today_after_last_slot_is_empty(db_session):
    clock = FixedClock(datetime(2025, 6, 1, 17, 0))
    availability = AvailabilityService(AppointmentStore(db_session), clock)

    _, slots = await availability.available_slots(TODAY)

    assert slots == []


@pytest.mark.asyncio
async def test_future_date_is_not_time_filtered(db_session):
    """Late in the day, tomorrow still offers every slot."""
    clock = FixedClock(datetime(2025, 6, 1, 23, 59))
    availability = AvailabilityService(AppointmentStore(db_session), clock)

    _, slots = await availability.available_slots(TOMORROW)

    assert len(slots) == len(SlotCatalog.all())


@pytest.mark.asyncio
async def test_bookings_on_other_dates_do_not_affect_result(service: AppointmentService):
    await service.create_appointment("cust-a", booking("2025-06-03", "08:00"))

    _, slots = await service.availability.available_slots(TOMORROW)

    assert len(slots) == len(SlotCatalog.all())


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["2025/06/02", "02-06-2025", "tomorrow", "2025-02-30", ""])
async def test_invalid_date_rejected(service: AppointmentService, value: str):
    with pytest.raises(InvalidDateException):
        await service.availability.available_slots(value)


@pytest.mark.asyncio
async def test_past_date_rejected(service: AppointmentService):
    with pytest.raises(InvalidDateException):
        await service.availability.available_slots(YESTERDAY)


@pytest.mark.asyncio
async def test_slot_board_marks_booked_slots(service: AppointmentService):
    await service.create_appointment("cust-a", booking(TOMORROW, "09:30"))

    _, board = await service.availability.slot_board(TOMORROW)

    assert [entry.slot for entry in board] == [slot.value for slot in SlotCatalog.all()]
    flags = {entry.slot: entry.available for entry in board}
    assert flags["09:30"] is False
    assert all(available for slot, available in flags.items() if slot != "09:30")
    assert board[0].label == "8:00 AM"


@pytest.mark.asyncio
async def test_cached_booked_slots_are_used(clock):
    """A cache hit skips the database read."""
    cache = MagicMock()
    cache.get.return_value = {"08:00", "14:00"}
    store = MagicMock(spec=AppointmentStore)
    availability = AvailabilityService(store, clock, cache)

    _, slots = await availability.available_slots(TOMORROW)

    assert [slot.value for slot in slots] == ["09:30", "11:00", "12:30", "15:30"]
    store.list_by_date.assert_not_called()


@pytest.mark.asyncio
async def test_cache_miss_reads_store_and_fills_cache(db_session, clock):
    cache = MagicMock()
    cache.get.return_value = None
    cache.version.return_value = "3"
    service = AppointmentService(db_session, clock)
    await service.create_appointment("cust-a", booking(TOMORROW, "12:30"))

    availability = AvailabilityService(service.store, clock, cache)
    _, slots = await availability.available_slots(TOMORROW)

    assert "12:30" not in [slot.value for slot in slots]
    cache.set.assert_called_once_with(date(2025, 6, 2), {"12:30"}, "3")
