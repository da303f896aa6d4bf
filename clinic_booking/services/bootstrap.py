"""Bootstrap helper to ensure the scheduling tables exist for first-time runs."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterable

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS doctors (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        speciality TEXT,
        fee INTEGER NOT NULL DEFAULT 0,
        is_active INTEGER NOT NULL DEFAULT 1,
        sort_order INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS doctor_schedules (
        doctor_id TEXT NOT NULL,
        day_of_week INTEGER NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        slot_duration INTEGER NOT NULL DEFAULT 30,
        buffer_time INTEGER NOT NULL DEFAULT 0,
        break_start TEXT,
        break_end TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        PRIMARY KEY (doctor_id, day_of_week),
        FOREIGN KEY(doctor_id) REFERENCES doctors(id) ON DELETE CASCADE,
        CHECK(day_of_week BETWEEN 0 AND 6)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS special_dates (
        id TEXT PRIMARY KEY,
        special_date TEXT NOT NULL,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        doctor_id TEXT,
        reason TEXT,
        start_time TEXT,
        end_time TEXT,
        break_start TEXT,
        break_end TEXT,
        FOREIGN KEY(doctor_id) REFERENCES doctors(id) ON DELETE CASCADE,
        CHECK(type IN ('HOLIDAY','BREAK','SPECIAL_HOURS'))
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_special_dates_day ON special_dates(special_date)
    """,
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id TEXT PRIMARY KEY,
        patient_name TEXT NOT NULL,
        email TEXT,
        phone TEXT,
        doctor_id TEXT NOT NULL,
        appointment_date TEXT NOT NULL,
        appointment_time TEXT,
        status TEXT NOT NULL DEFAULT 'SCHEDULED',
        customer_id TEXT,
        notes TEXT,
        created_at TEXT NOT NULL DEFAULT (datetime('now')),
        updated_at TEXT NOT NULL DEFAULT (datetime('now')),
        FOREIGN KEY(doctor_id) REFERENCES doctors(id) ON DELETE RESTRICT,
        CHECK(status IN ('SCHEDULED','CONFIRMED','COMPLETED','CANCELLED','NO_SHOW'))
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_appointments_doctor_day
    ON appointments(doctor_id, appointment_date)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_appointments_day ON appointments(appointment_date)
    """,
)


def _execute_statements(conn: sqlite3.Connection, statements: Iterable[str]) -> None:
    for stmt in statements:
        conn.execute(stmt)


def ensure_base_tables(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        _execute_statements(conn, SCHEMA_STATEMENTS)
        conn.commit()
    finally:
        conn.close()
