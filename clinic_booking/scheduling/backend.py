"""Abstract persistence boundary the scheduling core talks to."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Mapping

from clinic_booking.scheduling.models import Appointment, AppointmentInput, DateRange, Doctor


class SchedulingBackend(ABC):
    """Async operations the core depends on.

    Implementations raise ``PersistenceError`` for create/update/delete/list
    failures and may raise anything for ``list_available_slots``; the
    fetcher converts those into ``SlotFetchError``.
    """

    @abstractmethod
    async def list_appointments(self, date_range: DateRange) -> list[Appointment]:
        ...

    @abstractmethod
    async def create_appointment(self, draft: AppointmentInput) -> Appointment:
        ...

    @abstractmethod
    async def update_appointment(self, appointment_id: str, patch: Mapping[str, Any]) -> Appointment:
        ...

    @abstractmethod
    async def delete_appointment(self, appointment_id: str) -> None:
        ...

    @abstractmethod
    async def list_available_slots(self, doctor_id: str, day: date) -> list[str]:
        ...

    @abstractmethod
    async def list_doctors(self) -> list[Doctor]:
        ...
