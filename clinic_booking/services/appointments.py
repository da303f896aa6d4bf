"""Appointment persistence helpers (the server side of the scheduling boundary)."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import date
from typing import Any, Mapping

from flask import current_app

from clinic_booking.scheduling.models import (
    Appointment,
    AppointmentInput,
    AppointmentStatus,
    as_day,
)
from clinic_booking.scheduling.validation import normalize_time, validate_input
from clinic_booking.services.database import db


# Status changes accepted by the dedicated status endpoint.
VALID_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.NO_SHOW: set(),
}

PATCHABLE_FIELDS = (
    "patient_name",
    "email",
    "phone",
    "doctor_id",
    "date",
    "time",
    "status",
    "customer_id",
    "notes",
)


class AppointmentError(Exception):
    """Base exception for appointment operations."""


class AppointmentOverlap(AppointmentError):
    """Raised when a requested slot is already held by another booking."""


class AppointmentNotFound(AppointmentError):
    """Raised when an appointment cannot be located."""


class AppointmentValidationError(AppointmentError):
    """Raised when submitted fields fail validation."""

    def __init__(self, field_errors: Mapping[str, str]) -> None:
        self.field_errors = dict(field_errors)
        super().__init__("validation_error")


def _allow_overbooking() -> bool:
    return bool(current_app.config.get("APPOINTMENT_ALLOW_OVERBOOKING", False))


def _row_to_appointment(row: sqlite3.Row) -> Appointment:
    keys = row.keys()
    return Appointment(
        id=row["id"],
        patient_name=row["patient_name"] or "",
        doctor_id=row["doctor_id"],
        date=as_day(row["appointment_date"]),
        time=row["appointment_time"] or None,
        status=AppointmentStatus.parse(row["status"]),
        email=row["email"] or "",
        phone=row["phone"] or "",
        customer_id=row["customer_id"],
        notes=row["notes"] or "",
        doctor_name=(row["doctor_name"] if "doctor_name" in keys else None) or "",
    )


_SELECT = """
    SELECT a.*, d.name AS doctor_name
    FROM appointments a
    LEFT JOIN doctors d ON d.id = a.doctor_id
"""


def _doctor_exists(conn: sqlite3.Connection, doctor_id: str) -> bool:
    row = conn.execute("SELECT 1 FROM doctors WHERE id = ?", (doctor_id,)).fetchone()
    return row is not None


def _check_overlap(
    conn: sqlite3.Connection,
    doctor_id: str,
    day: date,
    time: str | None,
    *,
    exclude_id: str | None = None,
) -> None:
    if not time or _allow_overbooking():
        return
    params: list[Any] = [doctor_id, day.isoformat(), time, AppointmentStatus.CANCELLED.value]
    sql = """
        SELECT id
        FROM appointments
        WHERE doctor_id = ?
          AND appointment_date = ?
          AND appointment_time = ?
          AND status != ?
    """
    if exclude_id:
        sql += " AND id != ?"
        params.append(exclude_id)
    conflict = conn.execute(sql, params).fetchone()
    if conflict:
        raise AppointmentOverlap(f"conflict_with:{conflict['id']}")


def _validate(conn: sqlite3.Connection, draft: AppointmentInput) -> None:
    errors = validate_input(draft)
    if draft.doctor_id and "doctor_id" not in errors and not _doctor_exists(conn, draft.doctor_id):
        errors["doctor_id"] = "Unknown doctor"
    if errors:
        raise AppointmentValidationError(errors)


def input_from_mapping(data: Mapping[str, Any], base: AppointmentInput | None = None) -> AppointmentInput:
    """Build an ``AppointmentInput`` from request/patch data layered over ``base``."""

    draft = base or AppointmentInput()
    values = {name: getattr(draft, name) for name in PATCHABLE_FIELDS}
    for name in PATCHABLE_FIELDS:
        if name in data:
            values[name] = data[name]
    try:
        status = AppointmentStatus.parse(values["status"])
    except ValueError:
        raise AppointmentValidationError({"status": "Unknown status"})
    try:
        day = as_day(values["date"]) if values["date"] else None
    except ValueError:
        raise AppointmentValidationError({"date": "Date must be YYYY-MM-DD"})
    time = normalize_time(values["time"])
    if status is AppointmentStatus.CANCELLED:
        time = None
    return AppointmentInput(
        patient_name=(values["patient_name"] or "").strip(),
        doctor_id=(values["doctor_id"] or "").strip(),
        date=day,
        time=time,
        status=status,
        email=(values["email"] or "").strip(),
        phone=(values["phone"] or "").strip(),
        customer_id=values["customer_id"] or None,
        notes=(values["notes"] or "").strip(),
    )


def list_appointments(
    start_day: date,
    end_day: date,
    *,
    doctor_id: str | None = None,
) -> list[Appointment]:
    params: list[Any] = [start_day.isoformat(), end_day.isoformat()]
    sql = _SELECT + " WHERE a.appointment_date BETWEEN ? AND ?"
    if doctor_id:
        sql += " AND a.doctor_id = ?"
        params.append(doctor_id)
    sql += " ORDER BY a.appointment_date ASC, a.appointment_time IS NULL, a.appointment_time ASC, a.created_at ASC"
    conn = db()
    try:
        rows = conn.execute(sql, params).fetchall()
    finally:
        conn.close()
    result = []
    for row in rows:
        try:
            result.append(_row_to_appointment(row))
        except (ValueError, TypeError) as exc:
            current_app.logger.warning("Skipping invalid appointment record %s: %s", row["id"], exc)
    return result


def get_appointment(appt_id: str) -> Appointment:
    conn = db()
    try:
        row = conn.execute(_SELECT + " WHERE a.id = ?", (appt_id,)).fetchone()
    finally:
        conn.close()
    if not row:
        raise AppointmentNotFound(appt_id)
    return _row_to_appointment(row)


def create_appointment(data: Mapping[str, Any] | AppointmentInput) -> Appointment:
    draft = data if isinstance(data, AppointmentInput) else input_from_mapping(data)
    conn = db()
    try:
        _validate(conn, draft)
        conn.execute("BEGIN IMMEDIATE")
        _check_overlap(conn, draft.doctor_id, draft.date, draft.time)
        appt_id = str(uuid.uuid4())
        conn.execute(
            """
            INSERT INTO appointments(
                id, patient_name, email, phone, doctor_id,
                appointment_date, appointment_time, status, customer_id, notes,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, datetime('now'), datetime('now'))
            """,
            (
                appt_id,
                draft.patient_name,
                draft.email or None,
                draft.phone or None,
                draft.doctor_id,
                draft.date.isoformat(),
                draft.time,
                draft.status.value,
                draft.customer_id,
                draft.notes or None,
            ),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    current_app.logger.info(
        "Created appointment %s for %s on %s %s", appt_id, draft.doctor_id, draft.date, draft.time
    )
    return get_appointment(appt_id)


def update_appointment(appt_id: str, patch: Mapping[str, Any]) -> Appointment:
    existing = get_appointment(appt_id)
    draft = input_from_mapping(patch, base=existing.to_input())
    conn = db()
    try:
        _validate(conn, draft)
        conn.execute("BEGIN IMMEDIATE")
        if draft.status.holds_slot:
            _check_overlap(conn, draft.doctor_id, draft.date, draft.time, exclude_id=appt_id)
        conn.execute(
            """
            UPDATE appointments
            SET patient_name=?,
                email=?,
                phone=?,
                doctor_id=?,
                appointment_date=?,
                appointment_time=?,
                status=?,
                customer_id=?,
                notes=?,
                updated_at=datetime('now')
            WHERE id=?
            """,
            (
                draft.patient_name,
                draft.email or None,
                draft.phone or None,
                draft.doctor_id,
                draft.date.isoformat(),
                draft.time,
                draft.status.value,
                draft.customer_id,
                draft.notes or None,
                appt_id,
            ),
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return get_appointment(appt_id)


def update_status(appt_id: str, status: str) -> Appointment:
    try:
        new_status = AppointmentStatus.parse(status)
    except ValueError:
        raise AppointmentError("invalid_status")
    current = get_appointment(appt_id)
    if new_status not in VALID_TRANSITIONS[current.status]:
        raise AppointmentError(f"invalid_transition:{current.status.value}->{new_status.value}")
    patch: dict[str, Any] = {"status": new_status.value}
    return update_appointment(appt_id, patch)


def delete_appointment(appt_id: str) -> None:
    conn = db()
    try:
        cur = conn.execute("SELECT id FROM appointments WHERE id=?", (appt_id,)).fetchone()
        if not cur:
            raise AppointmentNotFound(appt_id)
        conn.execute("DELETE FROM appointments WHERE id=?", (appt_id,))
        conn.commit()
    finally:
        conn.close()
    current_app.logger.info("Deleted appointment %s", appt_id)


def booked_times(conn: sqlite3.Connection, doctor_id: str, day: date) -> set[str]:
    """Times held by non-cancelled appointments for one doctor/day."""
    rows = conn.execute(
        """
        SELECT appointment_time
        FROM appointments
        WHERE doctor_id = ? AND appointment_date = ? AND status != ?
          AND appointment_time IS NOT NULL
        """,
        (doctor_id, day.isoformat(), AppointmentStatus.CANCELLED.value),
    ).fetchall()
    return {row["appointment_time"] for row in rows}
