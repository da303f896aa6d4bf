"""Appointment editor: a small state machine over one draft.

States::

    CLOSED --open_create--> CREATING --submit--> SUBMITTING --ok--> CLOSED
    CLOSED --open_edit----> EDITING  --submit/delete--> SUBMITTING --ok--> CLOSED
    CLOSED --open_edit(past)--> VIEWING (read-only)

A failed submit returns to CREATING/EDITING with the draft untouched.
Every open/close starts a new session; results that come back for an older
session are reported as stale and change nothing.
"""

from __future__ import annotations

import enum
import inspect
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from clinic_booking.scheduling.availability import AvailabilityFetcher, FetchOutcome
from clinic_booking.scheduling.backend import SchedulingBackend
from clinic_booking.scheduling.errors import (
    EditorStateError,
    PersistenceError,
    SchedulingError,
    SlotFetchError,
    ValidationError,
)
from clinic_booking.scheduling.models import (
    Appointment,
    AppointmentInput,
    AppointmentStatus,
    Doctor,
    as_day,
)
from clinic_booking.scheduling.validation import normalize_time, validate_input

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("patient_name", "email", "phone", "notes", "customer_id")


class EditorState(enum.Enum):
    CLOSED = "closed"
    CREATING = "creating"
    EDITING = "editing"
    VIEWING = "viewing"
    SUBMITTING = "submitting"


MUTABLE_STATES = (EditorState.CREATING, EditorState.EDITING)


@dataclass
class EditorResult:
    action: str
    ok: bool
    appointment: Optional[Appointment] = None
    error: Optional[SchedulingError] = None
    stale: bool = False

    @property
    def field_errors(self) -> dict[str, str]:
        if isinstance(self.error, ValidationError):
            return self.error.field_errors
        return {}


SavedCallback = Callable[[EditorResult], Union[Awaitable[Any], Any]]


@dataclass
class _Session:
    token: int
    original: Optional[Appointment] = None
    pinned_time: Optional[str] = None
    field_errors: dict[str, str] = field(default_factory=dict)


class AppointmentEditor:
    def __init__(
        self,
        backend: SchedulingBackend,
        *,
        fetcher: Optional[AvailabilityFetcher] = None,
        doctors: Sequence[Doctor] = (),
        on_saved: Optional[SavedCallback] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._backend = backend
        self.fetcher = fetcher or AvailabilityFetcher(backend)
        self.doctors = list(doctors)
        self.on_saved = on_saved
        self._today = today
        self._token = 0
        self._session = _Session(token=0)
        self.state = EditorState.CLOSED
        self.draft = AppointmentInput()
        self.error: Optional[PersistenceError] = None

    # -- read-side -----------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.state is not EditorState.CLOSED

    @property
    def mode(self) -> Optional[str]:
        if self.state is EditorState.CLOSED:
            return None
        return "edit" if self._session.original is not None else "create"

    @property
    def original(self) -> Optional[Appointment]:
        return self._session.original

    @property
    def field_errors(self) -> dict[str, str]:
        return dict(self._session.field_errors)

    @property
    def slot_error(self) -> Optional[SlotFetchError]:
        return self.fetcher.error

    @property
    def slots_loading(self) -> bool:
        return self.fetcher.pending

    def dismiss_slot_error(self) -> None:
        """Hide the slot lookup notice; the last good slot list stays."""
        self.fetcher.dismiss_error()

    @property
    def time_selector_visible(self) -> bool:
        return self.is_open and self.draft.status is not AppointmentStatus.CANCELLED

    @property
    def slot_options(self) -> list[str]:
        """Fetched slots, plus the appointment's own time while it stays on its own doctor/day."""
        options = list(self.fetcher.slots)
        pinned = self._session.pinned_time
        if pinned and pinned not in options:
            options.append(pinned)
            options.sort()
        return options

    @property
    def can_submit(self) -> bool:
        if self.state not in MUTABLE_STATES:
            return False
        return bool(self.draft.time) or self.draft.status is AppointmentStatus.CANCELLED

    # -- opening and closing ---------------------------------------------

    def _new_session(self, original: Optional[Appointment] = None) -> int:
        self._token += 1
        self._session = _Session(token=self._token, original=original)
        self.fetcher.reset()
        self.error = None
        return self._token

    async def open_create(
        self,
        day: date,
        time: Optional[str] = None,
        *,
        doctor_id: Optional[str] = None,
    ) -> None:
        day = as_day(day)
        if day < self._today():
            raise EditorStateError("cannot create an appointment in the past")
        self._new_session()
        if doctor_id is None and self.doctors:
            doctor_id = self.doctors[0].id
        self.draft = AppointmentInput(doctor_id=doctor_id or "", date=day, time=normalize_time(time))
        self.state = EditorState.CREATING
        await self._load_slots()

    async def open_edit(self, appointment: Appointment) -> None:
        self._new_session(original=appointment)
        self.draft = appointment.to_input()
        self._session.pinned_time = self.draft.time
        if appointment.date < self._today():
            self.state = EditorState.VIEWING
            return
        self.state = EditorState.EDITING
        await self._load_slots()

    def close(self) -> None:
        """Close the editor; an in-flight submit finishes but its result is dropped."""
        self._new_session()
        self.state = EditorState.CLOSED
        self.draft = AppointmentInput()

    # -- field changes ---------------------------------------------------

    def _require_mutable(self) -> None:
        if self.state not in MUTABLE_STATES:
            raise EditorStateError(f"editor is {self.state.value}")

    def _touch(self, name: str) -> None:
        self._session.field_errors.pop(name, None)

    def set_field(self, name: str, value: Any) -> None:
        self._require_mutable()
        if name not in TEXT_FIELDS:
            raise EditorStateError(f"not a text field: {name}")
        if name == "customer_id":
            value = value or None
        else:
            value = "" if value is None else str(value)
        self.draft = replace(self.draft, **{name: value})
        self._touch(name)

    def set_time(self, label: Optional[str]) -> None:
        self._require_mutable()
        if self.draft.status is AppointmentStatus.CANCELLED:
            raise EditorStateError("cancelled appointments carry no time")
        self.draft = replace(self.draft, time=normalize_time(label))
        self._touch("time")

    async def change_doctor(self, doctor_id: str) -> Optional[FetchOutcome]:
        self._require_mutable()
        if doctor_id == self.draft.doctor_id:
            return None
        self.draft = replace(self.draft, doctor_id=doctor_id)
        self._touch("doctor_id")
        return await self._after_key_change()

    async def change_date(self, day: date) -> Optional[FetchOutcome]:
        self._require_mutable()
        day = as_day(day)
        if day == self.draft.date:
            return None
        self.draft = replace(self.draft, date=day)
        self._touch("date")
        return await self._after_key_change()

    async def set_status(self, status: Union[str, AppointmentStatus]) -> Optional[FetchOutcome]:
        self._require_mutable()
        new_status = AppointmentStatus.parse(status)
        previous = self.draft.status
        if new_status is AppointmentStatus.CANCELLED:
            self.draft = replace(self.draft, status=new_status, time=None)
            self._touch("time")
            return None
        self.draft = replace(self.draft, status=new_status)
        if previous is AppointmentStatus.CANCELLED and self.fetcher.key != self._key():
            return await self._load_slots()
        return None

    def _key(self) -> Optional[tuple[str, date]]:
        if not self.draft.doctor_id or self.draft.date is None:
            return None
        return (self.draft.doctor_id, self.draft.date)

    def _original_key(self) -> Optional[tuple[str, date]]:
        original = self._session.original
        if original is None:
            return None
        return (original.doctor_id, original.date)

    def _repin(self) -> None:
        # The appointment's own slot is offered again only on its own doctor/day.
        original = self._session.original
        if original is not None and self._key() == self._original_key():
            self._session.pinned_time = original.time
        else:
            self._session.pinned_time = None

    async def _after_key_change(self) -> Optional[FetchOutcome]:
        self._repin()
        if self.draft.status is AppointmentStatus.CANCELLED:
            return None
        self.draft = replace(self.draft, time=None)
        return await self._load_slots()

    async def _load_slots(self) -> Optional[FetchOutcome]:
        key = self._key()
        if key is None or self.draft.status is AppointmentStatus.CANCELLED:
            return None
        token = self._session.token
        outcome = await self.fetcher.request(*key)
        if token != self._session.token:
            return replace(outcome, stale=True)
        if outcome.ok and self.draft.time and self.draft.time not in self.slot_options:
            self.draft = replace(self.draft, time=None)
        return outcome

    # -- persistence -----------------------------------------------------

    def _patch(self) -> dict[str, Any]:
        original = self._session.original
        current = self.draft.to_payload()
        if original is None:
            return current
        before = original.to_input().to_payload()
        return {key: value for key, value in current.items() if before.get(key) != value}

    async def _finish(self, result: EditorResult, token: int, fallback: EditorState) -> EditorResult:
        if token != self._session.token:
            logger.debug("Dropping %s result for a closed editor session", result.action)
            result.stale = True
            return result
        if not result.ok:
            self.state = fallback
            self.error = result.error if isinstance(result.error, PersistenceError) else None
            if self.error is not None and self.error.field_errors:
                self._session.field_errors.update(self.error.field_errors)
            return result
        self.close()
        if self.on_saved is not None:
            outcome = self.on_saved(result)
            if inspect.isawaitable(outcome):
                await outcome
        return result

    async def submit(self) -> EditorResult:
        self._require_mutable()
        action = "update" if self._session.original is not None else "create"
        errors = validate_input(self.draft)
        if errors:
            self._session.field_errors = errors
            return EditorResult(action, ok=False, error=ValidationError(errors))
        self._session.field_errors = {}

        fallback = self.state
        token = self._session.token
        self.state = EditorState.SUBMITTING
        self.error = None
        try:
            if action == "create":
                saved = await self._backend.create_appointment(replace(self.draft))
            else:
                saved = await self._backend.update_appointment(self._session.original.id, self._patch())
        except PersistenceError as exc:
            result = EditorResult(action, ok=False, error=exc)
        except Exception as exc:
            logger.exception("Appointment %s failed", action)
            result = EditorResult(action, ok=False, error=PersistenceError(str(exc) or exc.__class__.__name__))
        else:
            result = EditorResult(action, ok=True, appointment=saved)
        return await self._finish(result, token, fallback)

    async def delete(self) -> EditorResult:
        if self.state is not EditorState.EDITING or self._session.original is None:
            raise EditorStateError("delete is only available while editing a saved appointment")
        original = self._session.original
        token = self._session.token
        self.state = EditorState.SUBMITTING
        self.error = None
        try:
            await self._backend.delete_appointment(original.id)
        except PersistenceError as exc:
            result = EditorResult("delete", ok=False, error=exc)
        except Exception as exc:
            logger.exception("Deleting appointment %s failed", original.id)
            result = EditorResult("delete", ok=False, error=PersistenceError(str(exc) or exc.__class__.__name__))
        else:
            result = EditorResult("delete", ok=True, appointment=original)
        return await self._finish(result, token, EditorState.EDITING)
