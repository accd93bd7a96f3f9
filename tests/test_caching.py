"""Tests for the Redis booked-slot cache."""

from datetime import date
from unittest.mock import MagicMock

import pytest
from conftest import TOMORROW, booking
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import WatchError
from sqlalchemy.ext.asyncio import AsyncSession

from service_scheduler.core.clock import FixedClock
from service_scheduler.core.exceptions import SlotTakenException
from service_scheduler.core.redis_client import BookedSlotCache
from service_scheduler.schemas.appointments import AppointmentReschedule
from service_scheduler.services.appointment_service import AppointmentService

DAY = date(2025, 6, 2)


def counting_redis() -> tuple[MagicMock, MagicMock]:
    """Redis mock whose version keys track how many invalidations have run."""
    mock_redis = MagicMock()
    pipe = mock_redis.pipeline.return_value.__enter__.return_value

    def read(key: str) -> str | None:
        if key.startswith(BookedSlotCache.VERSION_PREFIX):
            return str(pipe.incr.call_count)
        return None

    mock_redis.get.side_effect = read
    pipe.get.side_effect = read
    return mock_redis, pipe


def test_booked_slot_cache_get():
    """Test BookedSlotCache get method."""
    mock_redis = MagicMock()
    cache = BookedSlotCache(redis_client=mock_redis, ttl=30)

    # Test cache miss
    mock_redis.get.return_value = None
    assert cache.get(DAY) is None
    mock_redis.get.assert_called_once_with("slots:booked:2025-06-02")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '["09:30", "11:00"]'
    assert cache.get(DAY) == {"09:30", "11:00"}


def test_booked_slot_cache_version():
    """Test BookedSlotCache version method."""
    mock_redis = MagicMock()
    cache = BookedSlotCache(redis_client=mock_redis, ttl=30)

    mock_redis.get.return_value = None
    assert cache.version(DAY) == "0"
    mock_redis.get.assert_called_once_with("slots:version:2025-06-02")

    mock_redis.get.return_value = "4"
    assert cache.version(DAY) == "4"


def test_booked_slot_cache_set():
    """Test BookedSlotCache set method."""
    mock_redis = MagicMock()
    pipe = mock_redis.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = "2"
    cache = BookedSlotCache(redis_client=mock_redis, ttl=30)

    assert cache.set(DAY, {"11:00", "08:00"}, "2") is True
    pipe.watch.assert_called_once_with("slots:version:2025-06-02")
    pipe.setex.assert_called_once_with("slots:booked:2025-06-02", 30, '["08:00", "11:00"]')
    pipe.execute.assert_called_once()


def test_booked_slot_cache_set_skips_outdated_version():
    """A fill computed before an invalidation is not written."""
    mock_redis = MagicMock()
    pipe = mock_redis.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = "3"
    cache = BookedSlotCache(redis_client=mock_redis, ttl=30)

    assert cache.set(DAY, {"11:00"}, "2") is False
    pipe.setex.assert_not_called()


def test_booked_slot_cache_set_skips_on_watch_error():
    """An invalidation between the version check and the write aborts the fill."""
    mock_redis = MagicMock()
    pipe = mock_redis.pipeline.return_value.__enter__.return_value
    pipe.get.return_value = "2"
    pipe.execute.side_effect = WatchError()
    cache = BookedSlotCache(redis_client=mock_redis, ttl=30)

    assert cache.set(DAY, {"11:00"}, "2") is False


def test_booked_slot_cache_invalidate():
    """Test BookedSlotCache invalidate method."""
    mock_redis = MagicMock()
    pipe = mock_redis.pipeline.return_value.__enter__.return_value
    pipe.execute.return_value = [1, 5, True]
    cache = BookedSlotCache(redis_client=mock_redis, ttl=30)

    assert cache.invalidate(DAY, DAY) == 1
    pipe.delete.assert_called_once_with("slots:booked:2025-06-02")
    pipe.incr.assert_called_once_with("slots:version:2025-06-02")
    pipe.expire.assert_called_once_with("slots:version:2025-06-02", BookedSlotCache.VERSION_TTL)

    mock_redis.reset_mock()
    assert cache.invalidate() == 0
    mock_redis.pipeline.assert_not_called()


def test_booked_slot_cache_fails_open():
    """Redis errors degrade to a miss instead of failing the request."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = RedisConnectionError("down")
    mock_redis.pipeline.side_effect = RedisConnectionError("down")
    cache = BookedSlotCache(redis_client=mock_redis, ttl=30)

    assert cache.get(DAY) is None
    assert cache.version(DAY) is None
    assert cache.set(DAY, {"08:00"}, "0") is False
    assert cache.set(DAY, {"08:00"}, None) is False
    assert cache.invalidate(DAY) == 0


@pytest.mark.asyncio
async def test_availability_reads_through_cache(db_session: AsyncSession, clock: FixedClock):
    mock_redis, pipe = counting_redis()
    service = AppointmentService(db_session, clock, BookedSlotCache(mock_redis, ttl=30))

    await service.create_appointment("cust-a", booking(TOMORROW, "11:00"))
    _, slots = await service.availability.available_slots(TOMORROW)

    assert "11:00" not in [slot.value for slot in slots]
    pipe.setex.assert_called_once_with("slots:booked:2025-06-02", 30, '["11:00"]')


@pytest.mark.asyncio
async def test_fill_racing_a_delete_is_discarded(
    db_session: AsyncSession,
    clock: FixedClock,
    monkeypatch: pytest.MonkeyPatch,
):
    """A booked set read before a concurrent delete is never cached."""
    mock_redis, pipe = counting_redis()
    service = AppointmentService(db_session, clock, BookedSlotCache(mock_redis, ttl=30))
    appointment = await service.create_appointment("cust-a", booking(TOMORROW, "11:00"))

    read = service.store.list_by_date

    async def read_then_delete(day: date):
        booked = await read(day)
        await service.delete_appointment(appointment.id)
        return booked

    monkeypatch.setattr(service.store, "list_by_date", read_then_delete)
    _, slots = await service.availability.available_slots(TOMORROW)

    assert "11:00" not in [slot.value for slot in slots]
    pipe.setex.assert_not_called()

    monkeypatch.undo()
    _, slots = await service.availability.available_slots(TOMORROW)

    assert "11:00" in [slot.value for slot in slots]
    pipe.setex.assert_called_once_with("slots:booked:2025-06-02", 30, "[]")


@pytest.mark.asyncio
async def test_cache_hit_skips_database(db_session: AsyncSession, clock: FixedClock):
    mock_redis = MagicMock()
    mock_redis.get.return_value = '["08:00"]'
    service = AppointmentService(db_session, clock, BookedSlotCache(mock_redis, ttl=30))

    _, slots = await service.availability.available_slots(TOMORROW)

    assert [slot.value for slot in slots] == ["09:30", "11:00", "12:30", "14:00", "15:30"]
    mock_redis.pipeline.assert_not_called()


@pytest.mark.asyncio
async def test_stale_cache_never_allows_double_booking(
    db_session: AsyncSession, clock: FixedClock
):
    """Reservations ignore the cache; a stale entry cannot admit a second booking."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = "[]"
    service = AppointmentService(db_session, clock, BookedSlotCache(mock_redis, ttl=30))

    await service.create_appointment("cust-a", booking(TOMORROW, "11:00"))

    with pytest.raises(SlotTakenException):
        await service.create_appointment("cust-b", booking(TOMORROW, "11:00"))


@pytest.mark.asyncio
async def test_writes_invalidate_affected_dates(db_session: AsyncSession, clock: FixedClock):
    mock_redis = MagicMock()
    pipe = mock_redis.pipeline.return_value.__enter__.return_value
    service = AppointmentService(db_session, clock, BookedSlotCache(mock_redis, ttl=30))

    appointment = await service.create_appointment("cust-a", booking(TOMORROW, "11:00"))
    pipe.delete.assert_called_with("slots:booked:2025-06-02")

    pipe.reset_mock()
    await service.reschedule_appointment(
        appointment.id, AppointmentReschedule(appointment_date="2025-06-03")
    )
    deleted = [call.args for call in pipe.delete.call_args_list]
    assert ("slots:booked:2025-06-03",) in deleted
    assert ("slots:booked:2025-06-02",) in deleted

    pipe.reset_mock()
    await service.delete_appointment(appointment.id)
    pipe.delete.assert_called_once_with("slots:booked:2025-06-03")
