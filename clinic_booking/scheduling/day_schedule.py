"""One day's slot timeline (the day drawer)."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Optional, Union

from clinic_booking.scheduling.models import Appointment, SchedulingSettings, as_day
from clinic_booking.scheduling.slots import Slot, SlotGrid, generate_slots
from clinic_booking.scheduling.store import AppointmentCollection

logger = logging.getLogger(__name__)

OpenAppointment = Callable[[Appointment], Union[Awaitable[Any], Any]]
CreateInSlot = Callable[[date, str], Union[Awaitable[Any], Any]]


async def _invoke(callback: Optional[Callable[..., Any]], *args: Any) -> Any:
    if callback is None:
        return None
    result = callback(*args)
    if inspect.isawaitable(result):
        return await result
    return result


@dataclass(frozen=True)
class DayView:
    day: date
    doctor_id: Optional[str]
    grid: SlotGrid
    read_only: bool
    cancelled: tuple[Appointment, ...] = field(default=())
    untimed: tuple[Appointment, ...] = field(default=())

    @property
    def slots(self) -> tuple[Slot, ...]:
        return self.grid.slots

    @property
    def appointments(self) -> list[Appointment]:
        booked = [appt for slot in self.grid.slots for appt in slot.appointments]
        return booked + list(self.untimed) + list(self.cancelled)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "doctor_id": self.doctor_id,
            "read_only": self.read_only,
            "extended": self.grid.extended,
            "slots": [
                {
                    "time": slot.label,
                    "end": slot.end_label,
                    "free": slot.is_free,
                    "appointments": [appt.to_dict() for appt in slot.appointments],
                }
                for slot in self.grid.slots
            ],
            "cancelled": [appt.to_dict() for appt in self.cancelled],
            "untimed": [appt.to_dict() for appt in self.untimed],
        }


class DaySchedule:
    """Derives a ``DayView`` from the page's collection; never fetches."""

    def __init__(
        self,
        collection: AppointmentCollection,
        settings: SchedulingSettings,
        *,
        on_open_appointment: Optional[OpenAppointment] = None,
        on_create: Optional[CreateInSlot] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._collection = collection
        self._settings = settings
        self._today = today
        self.on_open_appointment = on_open_appointment
        self.on_create = on_create
        self.view: Optional[DayView] = None

    @property
    def is_open(self) -> bool:
        return self.view is not None

    def open(self, day: date, doctor_id: Optional[str] = None, *, read_only: bool = False) -> DayView:
        day = as_day(day)
        appointments = self._collection.on_day(day, doctor_id)
        grid = generate_slots(
            self._settings.working_hours_start,
            self._settings.working_hours_end,
            self._settings.interval_minutes,
            appointments,
        )
        self.view = DayView(
            day=day,
            doctor_id=doctor_id,
            grid=grid,
            read_only=read_only or day < self._today(),
            cancelled=tuple(appt for appt in appointments if not appt.status.holds_slot),
            untimed=tuple(appt for appt in appointments if appt.status.holds_slot and not appt.time),
        )
        return self.view

    def reload(self) -> Optional[DayView]:
        """Re-derive the open day after the collection changed."""
        if self.view is None:
            return None
        return self.open(self.view.day, self.view.doctor_id, read_only=self.view.read_only)

    def close(self) -> None:
        self.view = None

    async def select_appointment(self, appointment_id: str) -> bool:
        if self.view is None:
            return False
        for appt in self.view.appointments:
            if appt.id == appointment_id:
                await _invoke(self.on_open_appointment, appt)
                return True
        logger.debug("Appointment %s is not on %s", appointment_id, self.view.day)
        return False

    async def select_slot(self, label: str) -> bool:
        """Create intent for a free slot; ignored on read-only days and occupied slots."""
        if self.view is None or self.view.read_only:
            return False
        slot = self.view.grid.slot_for(label)
        if slot is None or slot.is_occupied:
            return False
        await _invoke(self.on_create, self.view.day, slot.label)
        return True
