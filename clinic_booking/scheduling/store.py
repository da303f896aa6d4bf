"""Page-owned appointment collection and the selectors views derive from it."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from clinic_booking.scheduling.backend import SchedulingBackend
from clinic_booking.scheduling.errors import PersistenceError
from clinic_booking.scheduling.models import Appointment, DateRange, as_day

logger = logging.getLogger(__name__)


class AppointmentCollection:
    """Holds the appointments of the visible range.

    ``refresh`` is the only writer. Views read through ``on_day``,
    ``by_day`` and ``get`` and never mutate the returned objects.
    """

    def __init__(self, backend: SchedulingBackend) -> None:
        self._backend = backend
        self._items: tuple[Appointment, ...] = ()
        self._generation = 0
        self.range: Optional[DateRange] = None
        self.load_error: Optional[PersistenceError] = None
        self.version = 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    @property
    def can_retry(self) -> bool:
        return self.load_error is not None and self.range is not None

    async def refresh(self, date_range: Optional[DateRange] = None) -> bool:
        """Reload ``date_range`` (or the current range). Returns True on success.

        A failure leaves an empty collection with ``load_error`` set; the
        page keeps rendering an empty calendar.
        """

        date_range = date_range or self.range
        if date_range is None:
            raise ValueError("no range to refresh")
        self._generation += 1
        generation = self._generation
        self.range = date_range
        try:
            items = await self._backend.list_appointments(date_range)
        except PersistenceError as exc:
            error = exc
        except Exception as exc:
            logger.exception("Loading appointments for %s..%s failed", date_range.start, date_range.end)
            error = PersistenceError(str(exc) or exc.__class__.__name__)
        else:
            if generation != self._generation:
                return False
            self._items = tuple(items)
            self.load_error = None
            self.version += 1
            return True

        if generation != self._generation:
            return False
        logger.warning("Appointment load failed: %s", error)
        self._items = ()
        self.load_error = error
        self.version += 1
        return False

    async def retry(self) -> bool:
        return await self.refresh()

    def get(self, appointment_id: str) -> Optional[Appointment]:
        for item in self._items:
            if item.id == appointment_id:
                return item
        return None

    def on_day(self, day: date, doctor_id: Optional[str] = None) -> list[Appointment]:
        day = as_day(day)
        return [
            item
            for item in self._items
            if item.date == day and (doctor_id is None or item.doctor_id == doctor_id)
        ]

    def by_day(self, days: Optional[Iterable[date]] = None) -> dict[date, list[Appointment]]:
        """Bucket by ``date``; every appointment lands in exactly one bucket."""
        buckets: dict[date, list[Appointment]] = defaultdict(list)
        wanted = set(days) if days is not None else None
        for item in self._items:
            if wanted is None or item.date in wanted:
                buckets[item.date].append(item)
        return dict(buckets)
