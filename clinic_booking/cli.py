"""Flask CLI commands for migrations, seeding, calendars and bookings."""

from __future__ import annotations

import asyncio
from datetime import date, datetime

import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from clinic_booking.scheduling.day_schedule import DaySchedule
from clinic_booking.scheduling.editor import AppointmentEditor, EditorResult
from clinic_booking.scheduling.errors import EditorStateError
from clinic_booking.scheduling.models import DateRange, SchedulingSettings
from clinic_booking.scheduling.month_grid import MonthAggregator, month_range
from clinic_booking.scheduling.store import AppointmentCollection
from clinic_booking.services.appointments import AppointmentError, update_status
from clinic_booking.services.doctors import seed_default_doctors
from clinic_booking.services.migrations import run_migrations
from clinic_booking.services.scheduling_backend import LocalBackend


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD")


def _load(date_range: DateRange) -> AppointmentCollection:
    collection = AppointmentCollection(LocalBackend(current_app._get_current_object()))
    asyncio.run(collection.refresh(date_range))
    if collection.load_error:
        raise click.ClickException(f"Could not load appointments: {collection.load_error}")
    return collection


async def _book(
    doctor: str,
    day: date,
    time: str,
    patient: str,
    email: str,
    phone: str,
) -> tuple[EditorResult, list[str]]:
    backend = LocalBackend(current_app._get_current_object())
    editor = AppointmentEditor(backend, doctors=await backend.list_doctors())
    await editor.open_create(day, time, doctor_id=doctor)
    editor.set_field("patient_name", patient)
    editor.set_field("email", email)
    editor.set_field("phone", phone)
    options = editor.slot_options
    if editor.slot_error is not None:
        raise click.ClickException(f"Could not load available times: {editor.slot_error}")
    if editor.draft.time is None:
        return EditorResult("create", ok=False), options
    return await editor.submit(), options


def register_cli(app) -> None:
    db_group = AppGroup("db", help="Database maintenance.")

    @db_group.command("upgrade")
    @with_appcontext
    def upgrade() -> None:
        run_migrations(current_app._get_current_object())
        click.echo("Database upgraded to head.")

    app.cli.add_command(db_group)

    @app.cli.command("seed-doctors")
    @with_appcontext
    def seed_doctors() -> None:
        created = seed_default_doctors()
        if not created:
            click.echo("Doctor roster already populated.")
            return
        for doctor in created:
            click.echo(f"{doctor.id}\t{doctor.name}")

    calendar_group = AppGroup("calendar", help="Print calendar views.")

    @calendar_group.command("month")
    @click.option("--month", "month_value", default=None, help="YYYY-MM, defaults to this month")
    @with_appcontext
    def calendar_month(month_value: str | None) -> None:
        raw = month_value or date.today().strftime("%Y-%m")
        try:
            anchor = datetime.strptime(raw, "%Y-%m").date()
        except ValueError:
            raise click.BadParameter("expected YYYY-MM", param_hint="--month")
        collection = _load(month_range(anchor.year, anchor.month))
        grid = MonthAggregator(collection, SchedulingSettings.from_config(current_app.config))
        for cell in grid.month(anchor.year, anchor.month):
            if not cell.in_range or not cell.total:
                continue
            titles = ", ".join(card.title for card in cell.cards)
            suffix = f" {cell.overflow_label}" if cell.overflow else ""
            click.echo(f"{cell.day.isoformat()}  {titles}{suffix}")

    @calendar_group.command("day")
    @click.option("--date", "day_value", required=True, help="YYYY-MM-DD")
    @click.option("--doctor", default=None, help="Doctor id (all doctors when omitted)")
    @with_appcontext
    def calendar_day(day_value: str, doctor: str | None) -> None:
        day = _parse_day(day_value)
        collection = _load(DateRange.single(day))
        view = DaySchedule(collection, SchedulingSettings.from_config(current_app.config)).open(day, doctor)
        for slot in view.slots:
            names = ", ".join(appt.patient_name for appt in slot.appointments)
            click.echo(f"{slot.label}  {names or '-'}")
        for appt in view.cancelled:
            click.echo(f"cancelled  {appt.patient_name}")

    app.cli.add_command(calendar_group)

    appointments_group = AppGroup("appointments", help="Book and cancel appointments.")

    @appointments_group.command("book")
    @click.option("--doctor", required=True)
    @click.option("--date", "day_value", required=True, help="YYYY-MM-DD")
    @click.option("--time", "time_value", required=True, help="HH:MM")
    @click.option("--patient", required=True)
    @click.option("--email", default="")
    @click.option("--phone", default="")
    @with_appcontext
    def book(doctor: str, day_value: str, time_value: str, patient: str, email: str, phone: str) -> None:
        day = _parse_day(day_value)
        try:
            result, options = asyncio.run(_book(doctor, day, time_value, patient, email, phone))
        except EditorStateError as exc:
            raise click.ClickException(str(exc))
        if result.ok and result.appointment is not None:
            appt = result.appointment
            click.echo(f"Booked {appt.id} {appt.date.isoformat()} {appt.time} {appt.patient_name}")
            return
        if result.error is None:
            available = ", ".join(options) or "none"
            raise click.ClickException(f"{time_value} is not available. Available: {available}")
        details = result.field_errors or getattr(result.error, "field_errors", {})
        if details:
            lines = "; ".join(f"{name}: {message}" for name, message in details.items())
            raise click.ClickException(lines)
        raise click.ClickException(str(result.error))

    @appointments_group.command("cancel")
    @click.argument("appointment_id")
    @with_appcontext
    def cancel(appointment_id: str) -> None:
        try:
            appt = update_status(appointment_id, "CANCELLED")
        except AppointmentError as exc:
            raise click.ClickException(str(exc) or exc.__class__.__name__)
        click.echo(f"Cancelled {appt.id}")

    app.cli.add_command(appointments_group)
