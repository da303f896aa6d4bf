"""Doctor working schedules, special dates and slot availability."""

from __future__ import annotations

import re
import sqlite3
import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping, Optional

from flask import current_app

from clinic_booking.scheduling.models import as_day, label_of, minutes_of
from clinic_booking.scheduling.validation import TIME_PATTERN, normalize_time
from clinic_booking.services.appointments import booked_times
from clinic_booking.services.database import db
from clinic_booking.services.doctors import DoctorNotFound

_TIME_RE = re.compile(TIME_PATTERN)

SPECIAL_DATE_TYPES = ("HOLIDAY", "BREAK", "SPECIAL_HOURS")
DISABLED_DATES_RANGE_DAYS = 60


class ScheduleError(ValueError):
    """Raised for malformed schedule or special-date input."""


@dataclass
class DoctorSchedule:
    doctor_id: str
    day_of_week: int  # 0 = Sunday
    start_time: str
    end_time: str
    slot_duration: int = 30
    buffer_time: int = 0
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    is_active: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SpecialDate:
    id: str
    date: date
    name: str
    type: str
    doctor_id: Optional[str] = None
    reason: str = ""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_start: Optional[str] = None
    break_end: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


def day_of_week(day: date) -> int:
    """Sunday-based weekday index (0 = Sunday ... 6 = Saturday)."""
    return (day.weekday() + 1) % 7


def _clock(value: Any, field_name: str, *, required: bool = True) -> Optional[str]:
    text = normalize_time(str(value)) if value else None
    if not text:
        if required:
            raise ScheduleError(f"{field_name}_required")
        return None
    if not _TIME_RE.match(text):
        raise ScheduleError(f"{field_name}_invalid")
    return text


def _row_to_schedule(row: sqlite3.Row) -> DoctorSchedule:
    return DoctorSchedule(
        doctor_id=row["doctor_id"],
        day_of_week=int(row["day_of_week"]),
        start_time=row["start_time"],
        end_time=row["end_time"],
        slot_duration=int(row["slot_duration"]),
        buffer_time=int(row["buffer_time"]),
        break_start=row["break_start"],
        break_end=row["break_end"],
        is_active=bool(row["is_active"]),
    )


def _row_to_special(row: sqlite3.Row) -> SpecialDate:
    return SpecialDate(
        id=row["id"],
        date=as_day(row["special_date"]),
        name=row["name"],
        type=row["type"],
        doctor_id=row["doctor_id"],
        reason=row["reason"] or "",
        start_time=row["start_time"],
        end_time=row["end_time"],
        break_start=row["break_start"],
        break_end=row["break_end"],
    )


def _ensure_doctor(conn: sqlite3.Connection, doctor_id: str) -> None:
    if not conn.execute("SELECT 1 FROM doctors WHERE id = ?", (doctor_id,)).fetchone():
        raise DoctorNotFound(doctor_id)


def list_schedules(doctor_id: str) -> list[DoctorSchedule]:
    conn = db()
    try:
        _ensure_doctor(conn, doctor_id)
        rows = conn.execute(
            "SELECT * FROM doctor_schedules WHERE doctor_id = ? ORDER BY day_of_week",
            (doctor_id,),
        ).fetchall()
    finally:
        conn.close()
    return [_row_to_schedule(row) for row in rows]


def set_schedule(doctor_id: str, entries: Iterable[Mapping[str, Any]]) -> list[DoctorSchedule]:
    """Replace a doctor's weekly schedule."""

    parsed: list[DoctorSchedule] = []
    seen: set[int] = set()
    for entry in entries:
        try:
            dow = int(entry["day_of_week"])
        except (KeyError, TypeError, ValueError):
            raise ScheduleError("day_of_week_invalid")
        if not 0 <= dow <= 6 or dow in seen:
            raise ScheduleError("day_of_week_invalid")
        seen.add(dow)
        schedule = DoctorSchedule(
            doctor_id=doctor_id,
            day_of_week=dow,
            start_time=_clock(entry.get("start_time"), "start_time"),
            end_time=_clock(entry.get("end_time"), "end_time"),
            slot_duration=int(entry.get("slot_duration") or 30),
            buffer_time=int(entry.get("buffer_time") or 0),
            break_start=_clock(entry.get("break_start"), "break_start", required=False),
            break_end=_clock(entry.get("break_end"), "break_end", required=False),
            is_active=bool(entry.get("is_active", True)),
        )
        if minutes_of(schedule.end_time) <= minutes_of(schedule.start_time):
            raise ScheduleError("end_before_start")
        if schedule.slot_duration <= 0 or schedule.buffer_time < 0:
            raise ScheduleError("slot_duration_invalid")
        if bool(schedule.break_start) != bool(schedule.break_end):
            raise ScheduleError("break_incomplete")
        parsed.append(schedule)

    conn = db()
    try:
        _ensure_doctor(conn, doctor_id)
        conn.execute("BEGIN IMMEDIATE")
        conn.execute("DELETE FROM doctor_schedules WHERE doctor_id = ?", (doctor_id,))
        for item in parsed:
            conn.execute(
                """
                INSERT INTO doctor_schedules(
                    doctor_id, day_of_week, start_time, end_time, slot_duration,
                    buffer_time, break_start, break_end, is_active
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.doctor_id,
                    item.day_of_week,
                    item.start_time,
                    item.end_time,
                    item.slot_duration,
                    item.buffer_time,
                    item.break_start,
                    item.break_end,
                    1 if item.is_active else 0,
                ),
            )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
    return parsed


def add_special_date(data: Mapping[str, Any]) -> SpecialDate:
    kind = (data.get("type") or "HOLIDAY").strip().upper()
    if kind not in SPECIAL_DATE_TYPES:
        raise ScheduleError("type_invalid")
    name = (data.get("name") or "").strip()
    if not name:
        raise ScheduleError("name_required")
    try:
        day = as_day(data["date"])
    except (KeyError, ValueError):
        raise ScheduleError("date_invalid")
    special = SpecialDate(
        id=str(uuid.uuid4()),
        date=day,
        name=name,
        type=kind,
        doctor_id=data.get("doctor_id") or None,
        reason=(data.get("reason") or "").strip(),
        start_time=_clock(data.get("start_time"), "start_time", required=kind == "SPECIAL_HOURS"),
        end_time=_clock(data.get("end_time"), "end_time", required=kind == "SPECIAL_HOURS"),
        break_start=_clock(data.get("break_start"), "break_start", required=kind == "BREAK"),
        break_end=_clock(data.get("break_end"), "break_end", required=kind == "BREAK"),
    )
    conn = db()
    try:
        if special.doctor_id:
            _ensure_doctor(conn, special.doctor_id)
        conn.execute(
            """
            INSERT INTO special_dates(
                id, special_date, name, type, doctor_id, reason,
                start_time, end_time, break_start, break_end
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                special.id,
                special.date.isoformat(),
                special.name,
                special.type,
                special.doctor_id,
                special.reason or None,
                special.start_time,
                special.end_time,
                special.break_start,
                special.break_end,
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return special


def list_special_dates(
    start_day: date | None = None,
    end_day: date | None = None,
    *,
    doctor_id: str | None = None,
) -> list[SpecialDate]:
    sql = "SELECT * FROM special_dates WHERE 1=1"
    params: list[Any] = []
    if start_day:
        sql += " AND special_date >= ?"
        params.append(start_day.isoformat())
    if end_day:
        sql += " AND special_date <= ?"
        params.append(end_day.isoformat())
    if doctor_id:
        sql += " AND (doctor_id IS NULL OR doctor_id = ?)"
        params.append(doctor_id)
    sql += " ORDER BY special_date ASC"
    conn = db()
    try:
        rows = conn.execute(sql, params).fetchall()
    finally:
        conn.close()
    return [_row_to_special(row) for row in rows]


def delete_special_date(special_id: str) -> bool:
    conn = db()
    try:
        cur = conn.execute("DELETE FROM special_dates WHERE id = ?", (special_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


def _default_schedule(doctor_id: str, day: date) -> DoctorSchedule:
    cfg = current_app.config
    return DoctorSchedule(
        doctor_id=doctor_id,
        day_of_week=day_of_week(day),
        start_time=label_of(int(cfg.get("CLINIC_WORKING_HOURS_START", 9)) * 60),
        end_time=label_of(int(cfg.get("CLINIC_WORKING_HOURS_END", 17)) * 60),
        slot_duration=int(cfg.get("APPOINTMENT_SLOT_MINUTES", 30)),
    )


def _schedule_for(conn: sqlite3.Connection, doctor_id: str, day: date) -> DoctorSchedule | None:
    """Active schedule for the weekday; clinic defaults when none is configured at all."""
    rows = conn.execute(
        "SELECT * FROM doctor_schedules WHERE doctor_id = ?", (doctor_id,)
    ).fetchall()
    if not rows:
        return _default_schedule(doctor_id, day)
    dow = day_of_week(day)
    for row in rows:
        if int(row["day_of_week"]) == dow and row["is_active"]:
            return _row_to_schedule(row)
    return None


def _specials_on(conn: sqlite3.Connection, doctor_id: str, day: date) -> list[SpecialDate]:
    rows = conn.execute(
        """
        SELECT * FROM special_dates
        WHERE special_date = ? AND (doctor_id IS NULL OR doctor_id = ?)
        ORDER BY doctor_id IS NULL
        """,
        (day.isoformat(), doctor_id),
    ).fetchall()
    return [_row_to_special(row) for row in rows]


def _blocked(schedule: DoctorSchedule | None, specials: list[SpecialDate]) -> bool:
    return schedule is None or any(item.type == "HOLIDAY" for item in specials)


def list_available_slots(doctor_id: str, day: date, *, now: datetime | None = None) -> list[str]:
    """Bookable `"HH:MM"` labels for one doctor/day, ascending."""

    now = now or datetime.now()
    if day < now.date():
        return []

    conn = db()
    try:
        _ensure_doctor(conn, doctor_id)
        schedule = _schedule_for(conn, doctor_id, day)
        specials = _specials_on(conn, doctor_id, day)
        if _blocked(schedule, specials):
            return []
        taken = booked_times(conn, doctor_id, day)
    finally:
        conn.close()

    start = minutes_of(schedule.start_time)
    end = minutes_of(schedule.end_time)
    breaks: list[tuple[int, int]] = []
    if schedule.break_start and schedule.break_end:
        breaks.append((minutes_of(schedule.break_start), minutes_of(schedule.break_end)))
    # Doctor-specific entries sort first, so they win over clinic-wide hours.
    for special in specials:
        if special.type == "SPECIAL_HOURS" and special.start_time and special.end_time:
            start, end = minutes_of(special.start_time), minutes_of(special.end_time)
            break
    for special in specials:
        if special.type == "BREAK" and special.break_start and special.break_end:
            breaks.append((minutes_of(special.break_start), minutes_of(special.break_end)))

    step = schedule.slot_duration + schedule.buffer_time
    now_minutes = now.hour * 60 + now.minute if day == now.date() else None
    slots: list[str] = []
    current = start
    while current < end:
        label = label_of(current)
        in_past = now_minutes is not None and current < now_minutes
        in_break = any(b_start <= current < b_end for b_start, b_end in breaks)
        if not (in_past or in_break or label in taken):
            slots.append(label)
        current += step
    return slots


def disabled_dates(
    doctor_id: str,
    *,
    today: date | None = None,
    days: int = DISABLED_DATES_RANGE_DAYS,
) -> list[date]:
    """Upcoming dates with no working schedule or a blocking special date."""

    today = today or date.today()
    conn = db()
    try:
        _ensure_doctor(conn, doctor_id)
        result = []
        for offset in range(days):
            day = today + timedelta(days=offset)
            if _blocked(_schedule_for(conn, doctor_id, day), _specials_on(conn, doctor_id, day)):
                result.append(day)
    finally:
        conn.close()
    return result
