"""Last-request-wins wrapper around ``list_available_slots``."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from clinic_booking.scheduling.backend import SchedulingBackend
from clinic_booking.scheduling.errors import SlotFetchError
from clinic_booking.scheduling.models import minutes_of

logger = logging.getLogger(__name__)

_LABEL_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass
class FetchOutcome:
    """Result of one ``request`` call.

    ``stale`` outcomes were superseded by a newer request and carry nothing.
    """

    doctor_id: str
    day: date
    slots: list[str] = field(default_factory=list)
    error: Optional[SlotFetchError] = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        return not self.stale and self.error is None


def _check_payload(payload: Any) -> list[str]:
    if not isinstance(payload, (list, tuple)):
        raise SlotFetchError(f"expected a list of slot labels, got {type(payload).__name__}")
    labels: list[str] = []
    previous = -1
    for item in payload:
        if not isinstance(item, str) or not _LABEL_RE.match(item):
            raise SlotFetchError(f"malformed slot label: {item!r}")
        current = minutes_of(item)
        if current <= previous:
            raise SlotFetchError("slot labels are not strictly ascending")
        previous = current
        labels.append(item)
    return labels


class AvailabilityFetcher:
    """Fetches bookable slots for (doctor, day) pairs one at a time.

    Every ``request`` takes a new token; only the holder of the latest token
    may write ``slots``/``error``. The previous in-flight call is cancelled
    when a new one starts, and any answer that still arrives for it is
    dropped.
    """

    def __init__(self, backend: SchedulingBackend) -> None:
        self._backend = backend
        self._token = 0
        self._task: Optional[asyncio.Task] = None
        self.slots: list[str] = []
        self.error: Optional[SlotFetchError] = None
        self.key: Optional[tuple[str, date]] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def _is_current(self, token: int) -> bool:
        return token == self._token

    async def request(self, doctor_id: str, day: date) -> FetchOutcome:
        self._token += 1
        token = self._token
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.key = (doctor_id, day)
        task = asyncio.ensure_future(self._backend.list_available_slots(doctor_id, day))
        self._task = task

        try:
            payload = await task
            labels = _check_payload(payload)
        except asyncio.CancelledError:
            if not self._is_current(token):
                return FetchOutcome(doctor_id, day, stale=True)
            raise
        except SlotFetchError as exc:
            exc.doctor_id, exc.day = doctor_id, day
            return self._fail(token, doctor_id, day, exc)
        except Exception as exc:
            logger.warning("Slot lookup for %s on %s failed: %s", doctor_id, day, exc)
            error = SlotFetchError(str(exc) or exc.__class__.__name__, doctor_id=doctor_id, day=day)
            return self._fail(token, doctor_id, day, error)

        if not self._is_current(token):
            logger.debug("Dropping stale slots for %s on %s", doctor_id, day)
            return FetchOutcome(doctor_id, day, stale=True)
        self.slots = labels
        self.error = None
        return FetchOutcome(doctor_id, day, slots=list(labels))

    def _fail(self, token: int, doctor_id: str, day: date, error: SlotFetchError) -> FetchOutcome:
        if not self._is_current(token):
            return FetchOutcome(doctor_id, day, stale=True)
        # Keep whatever slots were shown before.
        self.error = error
        return FetchOutcome(doctor_id, day, slots=list(self.slots), error=error)

    def dismiss_error(self) -> None:
        self.error = None

    def reset(self) -> None:
        self._token += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.slots = []
        self.error = None
        self.key = None
