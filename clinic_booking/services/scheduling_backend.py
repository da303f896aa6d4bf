"""In-process ``SchedulingBackend`` over the Flask persistence services."""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, TypeVar

from flask import Flask

from clinic_booking.scheduling.backend import SchedulingBackend
from clinic_booking.scheduling.errors import PersistenceError
from clinic_booking.scheduling.models import Appointment, AppointmentInput, DateRange, Doctor
from clinic_booking.services import appointments as appointment_service
from clinic_booking.services import doctors as doctor_service
from clinic_booking.services import schedules as schedule_service

T = TypeVar("T")


def to_persistence_error(exc: Exception) -> PersistenceError:
    """Translate service exceptions into the core's error type."""

    if isinstance(exc, appointment_service.AppointmentValidationError):
        message = "; ".join(f"{name}: {text}" for name, text in exc.field_errors.items())
        return PersistenceError(
            message or "validation_error", code="validation_error", field_errors=exc.field_errors
        )
    if isinstance(exc, appointment_service.AppointmentOverlap):
        return PersistenceError("This time slot is already booked", code="slot_taken")
    if isinstance(exc, (appointment_service.AppointmentNotFound, doctor_service.DoctorNotFound)):
        return PersistenceError(f"not found: {exc}", code="not_found")
    return PersistenceError(str(exc) or exc.__class__.__name__)


class LocalBackend(SchedulingBackend):
    """Runs the synchronous services in a worker thread inside an app context."""

    def __init__(self, app: Flask, *, now: Optional[Callable[[], datetime]] = None) -> None:
        self.app = app
        self._now = now or datetime.now

    async def _call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        def run() -> T:
            with self.app.app_context():
                return func(*args, **kwargs)

        return await asyncio.to_thread(run)

    async def _write(self, func: Callable[..., T], *args: Any) -> T:
        try:
            return await self._call(func, *args)
        except (appointment_service.AppointmentError, doctor_service.DoctorNotFound) as exc:
            raise to_persistence_error(exc) from exc

    async def list_appointments(self, date_range: DateRange) -> list[Appointment]:
        return await self._write(appointment_service.list_appointments, date_range.start, date_range.end)

    async def create_appointment(self, draft: AppointmentInput) -> Appointment:
        return await self._write(appointment_service.create_appointment, draft.to_payload())

    async def update_appointment(self, appointment_id: str, patch: Mapping[str, Any]) -> Appointment:
        return await self._write(appointment_service.update_appointment, appointment_id, dict(patch))

    async def delete_appointment(self, appointment_id: str) -> None:
        await self._write(appointment_service.delete_appointment, appointment_id)

    async def list_available_slots(self, doctor_id: str, day: date) -> list[str]:
        return await self._call(schedule_service.list_available_slots, doctor_id, day, now=self._now())

    async def list_doctors(self) -> list[Doctor]:
        return await self._write(doctor_service.list_doctors)
