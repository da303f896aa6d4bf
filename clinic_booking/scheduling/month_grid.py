"""Month and week calendar grids built from the appointment collection."""

from __future__ import annotations

import inspect
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Callable, Optional

from clinic_booking.scheduling.models import (
    Appointment,
    AppointmentStatus,
    DateRange,
    SchedulingSettings,
    as_day,
    minutes_of,
)
from clinic_booking.scheduling.store import AppointmentCollection

GRID_DAYS = 42
WEEK_DAYS = 7


@dataclass(frozen=True)
class CardTreatment:
    label: str
    background: str
    border: str
    text: str


STATUS_TREATMENTS: dict[AppointmentStatus, CardTreatment] = {
    AppointmentStatus.SCHEDULED: CardTreatment("Scheduled", "#DBEAFE", "#93C5FD", "#1E40AF"),
    AppointmentStatus.CONFIRMED: CardTreatment("Confirmed", "#F3EEF5", "#D1BED8", "#8B5C9E"),
    AppointmentStatus.COMPLETED: CardTreatment("Completed", "#8B5C9E", "#8B5C9E", "#FFFFFF"),
    AppointmentStatus.CANCELLED: CardTreatment("Cancelled", "#FEE2E2", "#FCA5A5", "#991B1B"),
    AppointmentStatus.NO_SHOW: CardTreatment("No show", "#F3F4F6", "#D1D5DB", "#1F2937"),
}

_missing = [status.value for status in AppointmentStatus if status not in STATUS_TREATMENTS]
if _missing:
    raise RuntimeError(f"no card treatment for status: {', '.join(_missing)}")


def card_treatment(status: AppointmentStatus | str) -> CardTreatment:
    return STATUS_TREATMENTS[AppointmentStatus.parse(status)]


def grid_start(year: int, month: int) -> date:
    """Sunday on or before the first of the month."""
    first = date(year, month, 1)
    return first - timedelta(days=(first.weekday() + 1) % 7)


def month_range(year: int, month: int) -> DateRange:
    start = grid_start(year, month)
    return DateRange(start, start + timedelta(days=GRID_DAYS - 1))


def week_range(day: date) -> DateRange:
    day = as_day(day)
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return DateRange(start, start + timedelta(days=WEEK_DAYS - 1))


@dataclass(frozen=True)
class Card:
    appointment: Appointment
    treatment: CardTreatment

    @property
    def title(self) -> str:
        if self.appointment.time:
            return f"{self.appointment.time} {self.appointment.patient_name}"
        return self.appointment.patient_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.appointment.id,
            "title": self.title,
            "status": self.appointment.status.value,
            "doctor_id": self.appointment.doctor_id,
            "treatment": asdict(self.treatment),
        }


@dataclass(frozen=True)
class DayCell:
    day: date
    in_range: bool
    is_today: bool
    is_past: bool
    cards: tuple[Card, ...] = ()
    total: int = 0

    @property
    def overflow(self) -> int:
        return self.total - len(self.cards)

    @property
    def overflow_label(self) -> str:
        return f"+{self.overflow} more" if self.overflow > 0 else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "in_range": self.in_range,
            "is_today": self.is_today,
            "is_past": self.is_past,
            "cards": [card.to_dict() for card in self.cards],
            "total": self.total,
            "overflow": self.overflow,
        }


def _card_order(pair: tuple[int, Appointment]) -> tuple[int, int, int]:
    index, appt = pair
    if appt.time:
        return (0, minutes_of(appt.time), index)
    return (1, 0, index)


class MonthAggregator:
    """Buckets the loaded collection into day cells and routes clicks."""

    def __init__(
        self,
        collection: AppointmentCollection,
        settings: SchedulingSettings,
        *,
        on_open_day: Optional[Callable[..., Any]] = None,
        on_open_appointment: Optional[Callable[[Appointment], Any]] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._collection = collection
        self._settings = settings
        self._today = today
        self.on_open_day = on_open_day
        self.on_open_appointment = on_open_appointment

    def _cell(self, day: date, appointments: list[Appointment], in_range: bool) -> DayCell:
        today = self._today()
        ordered = [appt for _, appt in sorted(enumerate(appointments), key=_card_order)]
        cap = max(self._settings.cell_cap, 0)
        cards = tuple(Card(appt, card_treatment(appt.status)) for appt in ordered[:cap])
        return DayCell(
            day=day,
            in_range=in_range,
            is_today=day == today,
            is_past=day < today,
            cards=cards,
            total=len(ordered),
        )

    def month(self, year: int, month: int) -> list[DayCell]:
        """42 cells from the Sunday before the 1st; only in-month cells carry cards."""
        days = list(month_range(year, month))
        buckets = self._collection.by_day(days)
        cells = []
        for day in days:
            in_month = day.month == month and day.year == year
            cells.append(self._cell(day, buckets.get(day, []) if in_month else [], in_month))
        return cells

    def week(self, day: date) -> list[DayCell]:
        days = list(week_range(day))
        buckets = self._collection.by_day(days)
        return [self._cell(item, buckets.get(item, []), True) for item in days]

    async def _call(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        result = callback(*args)
        if inspect.isawaitable(result):
            await result

    async def click_day(self, day: date) -> bool:
        """Background click; does nothing on past days."""
        day = as_day(day)
        if day < self._today():
            return False
        await self._call(self.on_open_day, day)
        return True

    async def click_overflow(self, day: date) -> bool:
        await self._call(self.on_open_day, as_day(day))
        return True

    async def click_card(self, appointment_id: str) -> bool:
        appointment = self._collection.get(appointment_id)
        if appointment is None:
            return False
        await self._call(self.on_open_appointment, appointment)
        return True
