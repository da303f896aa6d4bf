"""Top-level scheduler page: owns the collection and routes intents."""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional

from clinic_booking.scheduling.backend import SchedulingBackend
from clinic_booking.scheduling.day_schedule import DaySchedule
from clinic_booking.scheduling.editor import AppointmentEditor, EditorResult
from clinic_booking.scheduling.errors import PersistenceError
from clinic_booking.scheduling.models import Appointment, DateRange, Doctor, SchedulingSettings
from clinic_booking.scheduling.month_grid import MonthAggregator, month_range
from clinic_booking.scheduling.store import AppointmentCollection

logger = logging.getLogger(__name__)


class SchedulerPage:
    """Grid, drawer and editor over one shared appointment collection.

    The editor writes through the backend; a successful write refreshes the
    collection and re-derives the open drawer.
    """

    def __init__(
        self,
        backend: SchedulingBackend,
        settings: Optional[SchedulingSettings] = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.backend = backend
        self.settings = settings or SchedulingSettings()
        self.doctors: list[Doctor] = []
        self.doctors_error: Optional[PersistenceError] = None
        self.doctor_filter: Optional[str] = None
        self.collection = AppointmentCollection(backend)
        self.drawer = DaySchedule(
            self.collection,
            self.settings,
            on_open_appointment=self.open_appointment,
            on_create=self.create_in_slot,
            today=today,
        )
        self.editor = AppointmentEditor(backend, on_saved=self._after_save, today=today)
        self.grid = MonthAggregator(
            self.collection,
            self.settings,
            on_open_day=self.open_day,
            on_open_appointment=self.open_appointment,
            today=today,
        )
        self._doctors_loaded = False

    async def load_doctors(self) -> list[Doctor]:
        """Read the roster once per page load."""
        if self._doctors_loaded:
            return self.doctors
        try:
            self.doctors = list(await self.backend.list_doctors())
            self.doctors_error = None
            self._doctors_loaded = True
        except PersistenceError as exc:
            logger.warning("Loading doctors failed: %s", exc)
            self.doctors_error = exc
        except Exception as exc:
            logger.exception("Loading doctors failed")
            self.doctors_error = PersistenceError(str(exc) or exc.__class__.__name__)
        self.editor.doctors = self.doctors
        return self.doctors

    async def load(self, date_range: DateRange) -> bool:
        await self.load_doctors()
        return await self.collection.refresh(date_range)

    async def load_month(self, year: int, month: int) -> bool:
        return await self.load(month_range(year, month))

    def open_day(self, day: date):
        return self.drawer.open(day, self.doctor_filter)

    async def open_appointment(self, appointment: Appointment) -> None:
        await self.editor.open_edit(appointment)

    async def create_in_slot(self, day: date, label: str) -> None:
        await self.editor.open_create(day, label, doctor_id=self.doctor_filter)

    async def _after_save(self, result: EditorResult) -> None:
        await self.collection.refresh()
        self.drawer.reload()
