"""Field validators shared by the editor and the persistence layer."""

from __future__ import annotations

import re
from typing import Optional

from clinic_booking.scheduling.models import AppointmentInput, AppointmentStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
TIME_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"
PHONE_MIN_DIGITS = 7
PHONE_MAX_DIGITS = 15

_EMAIL_RE = re.compile(EMAIL_PATTERN)
_TIME_RE = re.compile(TIME_PATTERN)
_PHONE_CHARS_RE = re.compile(r"^\+?[\d\s().-]+$")


def email_error(value: str) -> Optional[str]:
    if value and not _EMAIL_RE.match(value.strip()):
        return "Enter a valid email address"
    return None


def phone_error(value: str) -> Optional[str]:
    if not value:
        return None
    text = value.strip()
    digits = re.sub(r"\D", "", text)
    if not _PHONE_CHARS_RE.match(text) or not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        return f"Phone number must have {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits"
    return None


def time_error(value: Optional[str], status: AppointmentStatus) -> Optional[str]:
    if not value:
        if status is AppointmentStatus.CANCELLED:
            return None
        return "Time is required"
    if not _TIME_RE.match(value):
        return "Invalid time format - must be HH:MM"
    return None


def validate_input(draft: AppointmentInput) -> dict[str, str]:
    """Return `{field: message}` for every invalid field (empty when valid)."""

    errors: dict[str, str] = {}
    if not (draft.patient_name or "").strip():
        errors["patient_name"] = "Patient name is required"
    if not draft.doctor_id:
        errors["doctor_id"] = "Doctor is required"
    if draft.date is None:
        errors["date"] = "Date is required"
    message = email_error(draft.email)
    if message:
        errors["email"] = message
    message = phone_error(draft.phone)
    if message:
        errors["phone"] = message
    message = time_error(draft.time, draft.status)
    if message:
        errors["time"] = message
    return errors


def normalize_time(value: Optional[str]) -> Optional[str]:
    """`"9:05"` -> `"09:05"`; blank -> None."""
    if not value:
        return None
    text = value.strip()
    if not _TIME_RE.match(text):
        return text
    hours, minutes = text.split(":")
    return f"{int(hours):02d}:{minutes}"
