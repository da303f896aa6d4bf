"""Doctor roster helpers."""

from __future__ import annotations

import sqlite3
from typing import Iterable

from flask import current_app

from clinic_booking.scheduling.models import Doctor
from clinic_booking.services.database import db


class DoctorNotFound(LookupError):
    """Raised when a doctor id is unknown."""


def slugify(label: str) -> str:
    keep = []
    for ch in label.lower():
        if ch.isalnum():
            keep.append(ch)
        elif ch in {" ", "-", "_"}:
            keep.append("-")
    slug = "".join(keep).strip("-")
    while "--" in slug:
        slug = slug.replace("--", "-")
    return slug or "doctor"


def _row_to_doctor(row: sqlite3.Row) -> Doctor:
    return Doctor(
        id=row["id"],
        name=row["name"],
        speciality=row["speciality"] or "",
        fee=int(row["fee"] or 0),
    )


def list_doctors(*, active_only: bool = True) -> list[Doctor]:
    sql = "SELECT id, name, speciality, fee FROM doctors"
    if active_only:
        sql += " WHERE is_active = 1"
    sql += " ORDER BY sort_order ASC, name ASC"
    conn = db()
    try:
        rows = conn.execute(sql).fetchall()
    finally:
        conn.close()
    return [_row_to_doctor(row) for row in rows]


def get_doctor(doctor_id: str) -> Doctor:
    conn = db()
    try:
        row = conn.execute(
            "SELECT id, name, speciality, fee FROM doctors WHERE id = ?", (doctor_id,)
        ).fetchone()
    finally:
        conn.close()
    if not row:
        raise DoctorNotFound(doctor_id)
    return _row_to_doctor(row)


def create_doctor(
    name: str,
    *,
    doctor_id: str | None = None,
    speciality: str = "",
    fee: int = 0,
) -> Doctor:
    name = name.strip()
    if not name:
        raise ValueError("doctor_name_required")
    doctor_id = doctor_id or slugify(name)
    conn = db()
    try:
        next_order = conn.execute("SELECT COALESCE(MAX(sort_order), -1) + 1 FROM doctors").fetchone()[0]
        conn.execute(
            """
            INSERT INTO doctors(id, name, speciality, fee, is_active, sort_order)
            VALUES (?, ?, ?, ?, 1, ?)
            """,
            (doctor_id, name, speciality, int(fee), next_order),
        )
        conn.commit()
    finally:
        conn.close()
    return Doctor(id=doctor_id, name=name, speciality=speciality, fee=int(fee))


def seed_default_doctors(names: Iterable[str] | None = None) -> list[Doctor]:
    """Insert the configured doctors when the roster is empty."""

    if names is None:
        names = current_app.config.get("CLINIC_DOCTORS", [])
    conn = db()
    try:
        count = conn.execute("SELECT COUNT(*) FROM doctors").fetchone()[0]
    finally:
        conn.close()
    if count:
        return []
    created = []
    for name in names:
        if name.strip():
            created.append(create_doctor(name))
    if created:
        current_app.logger.info("Seeded %d doctors", len(created))
    return created
