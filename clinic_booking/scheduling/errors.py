"""Error taxonomy for the scheduling core."""

from __future__ import annotations

from typing import Mapping


class SchedulingError(Exception):
    """Base exception for scheduling operations."""


class ValidationError(SchedulingError):
    """Field-scoped validation failure raised before any network call."""

    def __init__(self, field_errors: Mapping[str, str]) -> None:
        self.field_errors = dict(field_errors)
        super().__init__(", ".join(f"{k}: {v}" for k, v in self.field_errors.items()))


class SlotFetchError(SchedulingError):
    """Availability lookup failed or returned a malformed payload."""

    def __init__(self, message: str, *, doctor_id: str | None = None, day=None) -> None:
        super().__init__(message)
        self.doctor_id = doctor_id
        self.day = day


class PersistenceError(SchedulingError):
    """A create/update/delete/list call against the backend failed."""

    def __init__(
        self,
        message: str,
        code: str = "persistence_error",
        *,
        field_errors: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.field_errors = dict(field_errors or {})
        self.retryable = code not in {"not_found", "validation_error"}


class EditorStateError(SchedulingError):
    """The editor was asked to do something its current state forbids."""
