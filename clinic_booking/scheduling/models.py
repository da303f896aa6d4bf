"""Plain data types shared by the scheduling core and the persistence layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterator, Optional


DATE_FMT = "%Y-%m-%d"
TIME_FMT = "%H:%M"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @classmethod
    def parse(cls, value: "str | AppointmentStatus | None") -> "AppointmentStatus":
        """Accept any casing (`scheduled`, `No_Show`); empty means SCHEDULED."""
        if isinstance(value, cls):
            return value
        raw = (value or "").strip().upper()
        if not raw:
            return cls.SCHEDULED
        try:
            return cls(raw)
        except ValueError as exc:
            raise ValueError(f"invalid_status:{value}") from exc

    @property
    def holds_slot(self) -> bool:
        return self is not AppointmentStatus.CANCELLED


def as_day(value: "date | datetime | str") -> date:
    """Strip time-of-day; ISO strings are accepted with or without a time part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    return datetime.strptime(text[:10], DATE_FMT).date()


def minutes_of(label: str) -> int:
    """`"09:30"` -> 570."""
    hours, minutes = label.split(":")
    return int(hours) * 60 + int(minutes)


def label_of(total_minutes: int) -> str:
    """570 -> `"09:30"`. Values past midnight keep counting hours (`"24:00"`)."""
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


@dataclass
class Doctor:
    id: str
    name: str
    speciality: str = ""
    fee: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AppointmentInput:
    """Writable appointment fields, used for drafts and create payloads."""

    patient_name: str = ""
    doctor_id: str = ""
    date: Optional[date] = None
    time: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    email: str = ""
    phone: str = ""
    customer_id: Optional[str] = None
    notes: str = ""

    def to_payload(self) -> dict[str, Any]:
        payload = {f.name: getattr(self, f.name) for f in fields(self)}
        payload["date"] = self.date.isoformat() if self.date else None
        payload["status"] = self.status.value
        return payload


@dataclass
class Appointment:
    id: Optional[str]
    patient_name: str
    doctor_id: str
    date: date
    time: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    email: str = ""
    phone: str = ""
    customer_id: Optional[str] = None
    notes: str = ""
    doctor_name: str = ""

    def __post_init__(self) -> None:
        self.date = as_day(self.date)
        self.status = AppointmentStatus.parse(self.status)

    @property
    def occupies_slot(self) -> bool:
        return self.status.holds_slot and bool(self.time)

    def to_input(self) -> AppointmentInput:
        return AppointmentInput(
            patient_name=self.patient_name or "",
            doctor_id=self.doctor_id or "",
            date=self.date,
            time=self.time or None,
            status=self.status,
            email=self.email or "",
            phone=self.phone or "",
            customer_id=self.customer_id or None,
            notes=self.notes or "",
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Appointment":
        return cls(
            id=data.get("id"),
            patient_name=data.get("patient_name") or "",
            doctor_id=data.get("doctor_id") or "",
            date=as_day(data["date"]),
            time=data.get("time") or None,
            status=AppointmentStatus.parse(data.get("status")),
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            customer_id=data.get("customer_id") or None,
            notes=data.get("notes") or "",
            doctor_name=data.get("doctor_name") or "",
        )


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("end before start")

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= as_day(day) <= self.end

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(day, day)


@dataclass
class SchedulingSettings:
    working_hours_start: int = 9
    working_hours_end: int = 17
    interval_minutes: int = 30
    cell_cap: int = 4

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "SchedulingSettings":
        return cls(
            working_hours_start=int(config.get("CLINIC_WORKING_HOURS_START", 9)),
            working_hours_end=int(config.get("CLINIC_WORKING_HOURS_END", 17)),
            interval_minutes=int(config.get("APPOINTMENT_SLOT_MINUTES", 30)),
            cell_cap=int(config.get("CALENDAR_CELL_CAP", 4)),
        )
