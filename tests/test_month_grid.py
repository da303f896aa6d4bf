from datetime import date, timedelta

import pytest

from clinic_booking.scheduling.models import AppointmentStatus, SchedulingSettings
from clinic_booking.scheduling.month_grid import (
    STATUS_TREATMENTS,
    MonthAggregator,
    card_treatment,
    month_range,
    week_range,
)
from clinic_booking.scheduling.page import SchedulerPage
from clinic_booking.scheduling.store import AppointmentCollection


def test_every_status_has_exactly_one_treatment():
    assert set(STATUS_TREATMENTS) == set(AppointmentStatus)
    treatments = [card_treatment(status) for status in AppointmentStatus]
    assert len(set(treatments)) == len(treatments)
    assert card_treatment("no_show") is STATUS_TREATMENTS[AppointmentStatus.NO_SHOW]


def test_month_range_starts_on_sunday_and_spans_six_weeks():
    grid = month_range(2024, 6)
    assert grid.start == date(2024, 5, 26)
    assert grid.start.weekday() == 6
    assert len(list(grid)) == 42
    assert week_range(date(2024, 6, 5)).start == date(2024, 6, 2)


async def _grid(backend, today, **kwargs):
    collection = AppointmentCollection(backend)
    await collection.refresh(month_range(today.year, today.month))
    return MonthAggregator(collection, SchedulingSettings(cell_cap=4), today=lambda: today, **kwargs)


@pytest.mark.asyncio
async def test_cells_cap_cards_and_count_overflow(backend, booked, today):
    for index, time in enumerate(["12:00", "09:00", "10:00", "11:00", "13:00", "14:00"]):
        booked(time, name=f"P{index}")
    grid = await _grid(backend, today)

    cells = grid.month(2024, 6)
    cell = next(c for c in cells if c.day == today)
    assert len(cells) == 42
    assert len(cell.cards) == 4
    assert cell.total == 6
    assert cell.overflow == 2
    assert cell.overflow_label == "+2 more"
    assert [card.appointment.time for card in cell.cards] == ["09:00", "10:00", "11:00", "12:00"]
    assert cell.is_today


@pytest.mark.asyncio
async def test_out_of_month_cells_carry_no_cards(backend, booked, today):
    booked("09:00", day=date(2024, 5, 31))
    grid = await _grid(backend, today)
    cell = next(c for c in grid.month(2024, 6) if c.day == date(2024, 5, 31))
    assert not cell.in_range
    assert cell.cards == ()
    week = grid.week(date(2024, 5, 31))
    assert next(c for c in week if c.day == date(2024, 5, 31)).total == 1


@pytest.mark.asyncio
async def test_day_background_click_ignores_past_days(backend, today):
    opened = []
    grid = await _grid(backend, today, on_open_day=opened.append)
    assert not await grid.click_day(today - timedelta(days=1))
    assert await grid.click_day(today)
    assert opened == [today]


@pytest.mark.asyncio
async def test_card_click_opens_editor_directly(backend, booked, today):
    appt = booked("09:00")
    opened = []
    grid = await _grid(backend, today, on_open_appointment=opened.append)
    assert await grid.click_card(appt.id)
    assert opened == [appt]
    assert not await grid.click_card("missing")


@pytest.mark.asyncio
async def test_overflow_opens_drawer_with_every_appointment(backend, booked, today):
    for index in range(6):
        booked(f"{9 + index:02d}:00", name=f"P{index}")
    page = SchedulerPage(backend, SchedulingSettings(cell_cap=4), today=lambda: today)
    await page.load_month(2024, 6)

    cell = next(c for c in page.grid.month(2024, 6) if c.day == today)
    assert len(cell.cards) == 4 and cell.overflow == 2

    await page.grid.click_overflow(today)
    view = page.drawer.view
    assert view.day == today
    assert len([appt for slot in view.slots for appt in slot.appointments]) == 6
