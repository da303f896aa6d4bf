from datetime import timedelta

import pytest

from clinic_booking.scheduling.day_schedule import DaySchedule
from clinic_booking.scheduling.models import AppointmentStatus, DateRange, SchedulingSettings
from clinic_booking.scheduling.store import AppointmentCollection


async def _drawer(backend, today, **callbacks):
    collection = AppointmentCollection(backend)
    await collection.refresh(DateRange(today - timedelta(days=7), today + timedelta(days=7)))
    return DaySchedule(collection, SchedulingSettings(), today=lambda: today, **callbacks)


@pytest.mark.asyncio
async def test_empty_day_is_entirely_free(backend, today):
    drawer = await _drawer(backend, today)
    view = drawer.open(today)
    assert len(view.slots) == 16
    assert all(slot.is_free for slot in view.slots)
    assert not view.read_only
    assert backend.count("list_available_slots") == 0


@pytest.mark.asyncio
async def test_open_derives_from_collection_for_all_doctors(backend, booked, today):
    booked("09:30", name="A. Rao")
    booked("09:30", doctor_id="d2", name="B. Iyer")
    booked("11:00", status=AppointmentStatus.CANCELLED, name="C. Gone")
    drawer = await _drawer(backend, today)

    view = drawer.open(today)
    names = [appt.patient_name for appt in view.grid.slot_for("09:30").appointments]
    assert names == ["A. Rao", "B. Iyer"]
    assert view.grid.slot_for("11:00").is_free
    assert [appt.patient_name for appt in view.cancelled] == ["C. Gone"]

    only_d2 = drawer.open(today, "d2")
    assert [appt.patient_name for appt in only_d2.grid.slot_for("09:30").appointments] == ["B. Iyer"]
    assert backend.count("list_appointments") == 1


@pytest.mark.asyncio
async def test_late_booking_extends_the_drawer(backend, booked, today):
    booked("17:10", name="Late")
    drawer = await _drawer(backend, today)
    view = drawer.open(today)
    assert view.grid.extended
    assert "17:30" in view.grid.labels
    assert view.grid.slot_for("17:00").appointments[0].patient_name == "Late"


@pytest.mark.asyncio
async def test_clicks_route_to_callbacks(backend, booked, today):
    appt = booked("10:00")
    opened, created = [], []

    async def on_create(day, label):
        created.append((day, label))

    drawer = await _drawer(backend, today, on_open_appointment=opened.append, on_create=on_create)
    drawer.open(today)

    assert await drawer.select_appointment(appt.id)
    assert opened == [appt]
    assert await drawer.select_slot("14:00")
    assert created == [(today, "14:00")]
    assert not await drawer.select_slot("10:00")
    assert not await drawer.select_slot("03:00")


@pytest.mark.asyncio
async def test_past_day_is_read_only_but_viewable(backend, booked, today):
    yesterday = today - timedelta(days=1)
    appt = booked("09:00", day=yesterday)
    opened, created = [], []
    drawer = await _drawer(
        backend, today, on_open_appointment=opened.append, on_create=lambda d, t: created.append(t)
    )
    view = drawer.open(yesterday)
    assert view.read_only
    assert not await drawer.select_slot("10:00")
    assert created == []
    assert await drawer.select_appointment(appt.id)
    assert opened == [appt]


@pytest.mark.asyncio
async def test_reload_picks_up_refreshed_collection(backend, booked, today):
    drawer = await _drawer(backend, today)
    drawer.open(today)
    booked("12:00")
    await drawer._collection.refresh()
    view = drawer.reload()
    assert view.grid.slot_for("12:00").is_occupied
