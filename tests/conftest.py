import asyncio
import os
import pathlib
import shutil
import sys
from dataclasses import fields
from datetime import date

import pytest

root = pathlib.Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from clinic_booking import create_app
from clinic_booking.scheduling.backend import SchedulingBackend
from clinic_booking.scheduling.errors import PersistenceError
from clinic_booking.scheduling.models import Appointment, AppointmentStatus, Doctor, as_day
from clinic_booking.services.database import db as raw_db

TODAY = date(2024, 6, 3)


@pytest.fixture(scope="session")
def _template_db(tmp_path_factory):
    """Build a migrated DB once per test session; each ``app`` copies it."""
    db_path = tmp_path_factory.mktemp("template") / "app.db"
    saved = {key: os.environ.get(key) for key in ("CLINIC_DB_PATH", "CLINIC_SECRET_KEY", "CLINIC_AUTO_MIGRATE")}
    os.environ["CLINIC_DB_PATH"] = str(db_path)
    os.environ["CLINIC_SECRET_KEY"] = "test-secret"
    os.environ["CLINIC_AUTO_MIGRATE"] = "1"
    try:
        _app = create_app()
        with _app.app_context():
            pass
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
    return db_path


@pytest.fixture
def app(tmp_path, monkeypatch, _template_db):
    db_path = tmp_path / "app.db"
    shutil.copy2(_template_db, db_path)
    monkeypatch.setenv("CLINIC_DB_PATH", str(db_path))
    monkeypatch.setenv("CLINIC_SECRET_KEY", "test-secret")
    monkeypatch.setenv("CLINIC_AUTO_MIGRATE", "0")
    monkeypatch.setenv("RATELIMIT_ENABLED", "0")
    app = create_app()
    app.config.update(TESTING=True, WTF_CSRF_ENABLED=False)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def doctor_d1(app):
    """A doctor with the short id used throughout the API tests."""
    conn = raw_db()
    try:
        conn.execute(
            "INSERT INTO doctors(id, name, speciality, fee, is_active, sort_order) "
            "VALUES ('d1', 'Dr. One', 'General', 300, 1, 10)"
        )
        conn.commit()
    finally:
        conn.close()
    return "d1"


class FakeBackend(SchedulingBackend):
    """In-memory backend with hooks for failures and controllable latency."""

    def __init__(self, doctors=None):
        self.doctors = list(doctors or [])
        self.appointments: dict[str, Appointment] = {}
        self.slots: dict[tuple[str, date], object] = {}
        self.calls: list[tuple] = []
        self.failures: dict[str, Exception] = {}
        self.gates: dict[object, asyncio.Event] = {}
        self._next_id = 1

    def add(self, **values) -> Appointment:
        values.setdefault("id", f"a{self._next_id}")
        self._next_id += 1
        appt = Appointment(**values)
        self.appointments[appt.id] = appt
        return appt

    async def _enter(self, name, gate_key=None):
        gate = self.gates.get(gate_key if gate_key is not None else name)
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            raise self.failures[name]

    async def list_appointments(self, date_range):
        self.calls.append(("list_appointments", date_range))
        await self._enter("list_appointments")
        return [appt for appt in self.appointments.values() if appt.date in date_range]

    async def create_appointment(self, draft):
        self.calls.append(("create_appointment", draft))
        await self._enter("create_appointment")
        values = {f.name: getattr(draft, f.name) for f in fields(draft)}
        return self.add(**values)

    async def update_appointment(self, appointment_id, patch):
        self.calls.append(("update_appointment", appointment_id, dict(patch)))
        await self._enter("update_appointment")
        if appointment_id not in self.appointments:
            raise PersistenceError("missing", code="not_found")
        data = self.appointments[appointment_id].to_dict()
        data.update(patch)
        updated = Appointment.from_dict(data)
        self.appointments[appointment_id] = updated
        return updated

    async def delete_appointment(self, appointment_id):
        self.calls.append(("delete_appointment", appointment_id))
        await self._enter("delete_appointment")
        if self.appointments.pop(appointment_id, None) is None:
            raise PersistenceError("missing", code="not_found")

    async def list_available_slots(self, doctor_id, day):
        self.calls.append(("list_available_slots", doctor_id, day))
        await self._enter("list_available_slots", gate_key=(doctor_id, day))
        return self.slots.get((doctor_id, as_day(day)), [])

    async def list_doctors(self):
        self.calls.append(("list_doctors",))
        await self._enter("list_doctors")
        return list(self.doctors)

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def backend():
    return FakeBackend(doctors=[Doctor("d1", "Dr. One"), Doctor("d2", "Dr. Two")])


@pytest.fixture
def booked(backend):
    """Helper to add a stored appointment with sensible defaults."""

    def _booked(time="09:30", day=TODAY, doctor_id="d1", status=AppointmentStatus.SCHEDULED, name="A. Rao"):
        return backend.add(patient_name=name, doctor_id=doctor_id, date=day, time=time, status=status)

    return _booked
