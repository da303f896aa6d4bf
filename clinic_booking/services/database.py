"""Database helpers backed by the SQLAlchemy engine."""

from __future__ import annotations

import sqlite3

from sqlalchemy import text

from clinic_booking.extensions import db as clinic_db

SCHEDULING_TABLES = ("doctors", "doctor_schedules", "special_dates", "appointments")


def db() -> sqlite3.Connection:
    """Return a raw sqlite3 connection (rows as ``sqlite3.Row``) with PRAGMAs applied."""

    return clinic_db.raw_connection()


def table_counts() -> dict[str, int]:
    """Row counts for the scheduling tables, used by the health endpoint."""

    with clinic_db.engine.connect() as conn:
        return {
            table: int(conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one())
            for table in SCHEDULING_TABLES
        }
