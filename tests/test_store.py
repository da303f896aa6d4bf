from datetime import date, timedelta

import pytest

from clinic_booking.scheduling.errors import PersistenceError
from clinic_booking.scheduling.models import DateRange
from clinic_booking.scheduling.store import AppointmentCollection

JUNE = DateRange(date(2024, 6, 1), date(2024, 6, 30))


@pytest.mark.asyncio
async def test_refresh_loads_range_and_buckets_by_day(backend, booked, today):
    first = booked("09:00")
    second = booked("10:00", day=today + timedelta(days=1), doctor_id="d2")
    booked("10:00", day=date(2024, 7, 2))

    collection = AppointmentCollection(backend)
    assert await collection.refresh(JUNE)

    assert len(collection) == 2
    assert collection.get(first.id) is first
    buckets = collection.by_day()
    assert buckets[today] == [first]
    assert buckets[today + timedelta(days=1)] == [second]
    assert collection.on_day(today + timedelta(days=1), "d1") == []
    assert collection.on_day(today + timedelta(days=1), "d2") == [second]


@pytest.mark.asyncio
async def test_failed_load_degrades_to_empty_with_retry(backend, booked):
    booked("09:00")
    collection = AppointmentCollection(backend)
    await collection.refresh(JUNE)
    assert len(collection) == 1

    backend.failures["list_appointments"] = PersistenceError("database locked")
    assert not await collection.refresh()
    assert len(collection) == 0
    assert collection.can_retry
    assert "locked" in str(collection.load_error)

    del backend.failures["list_appointments"]
    assert await collection.retry()
    assert len(collection) == 1
    assert collection.load_error is None


@pytest.mark.asyncio
async def test_unexpected_errors_become_persistence_errors(backend):
    backend.failures["list_appointments"] = RuntimeError("socket closed")
    collection = AppointmentCollection(backend)
    assert not await collection.refresh(JUNE)
    assert isinstance(collection.load_error, PersistenceError)


@pytest.mark.asyncio
async def test_refresh_without_range_is_a_programming_error(backend):
    with pytest.raises(ValueError):
        await AppointmentCollection(backend).refresh()
