"""Month grid and day drawer views served as JSON."""

from __future__ import annotations

import asyncio
from datetime import date, datetime

from flask import Blueprint, current_app, jsonify, request

from clinic_booking.scheduling.day_schedule import DaySchedule
from clinic_booking.scheduling.models import DateRange, SchedulingSettings
from clinic_booking.scheduling.month_grid import MonthAggregator, month_range
from clinic_booking.scheduling.store import AppointmentCollection
from clinic_booking.services.errors import record_exception
from clinic_booking.services.scheduling_backend import LocalBackend

bp = Blueprint("calendar", __name__)


def _collection(date_range: DateRange) -> AppointmentCollection:
    collection = AppointmentCollection(LocalBackend(current_app._get_current_object()))
    asyncio.run(collection.refresh(date_range))
    return collection


def _settings() -> SchedulingSettings:
    return SchedulingSettings.from_config(current_app.config)


@bp.route("/api/calendar/month", methods=["GET"])
def month_view():
    raw = request.args.get("month") or date.today().strftime("%Y-%m")
    try:
        anchor = datetime.strptime(raw, "%Y-%m").date()
    except ValueError:
        return jsonify({"ok": False, "error": "month_invalid"}), 400
    try:
        collection = _collection(month_range(anchor.year, anchor.month))
        grid = MonthAggregator(collection, _settings())
        cells = grid.month(anchor.year, anchor.month)
        return jsonify(
            {
                "month": raw,
                "cells": [cell.to_dict() for cell in cells],
                "load_error": str(collection.load_error) if collection.load_error else None,
            }
        )
    except Exception as exc:
        record_exception("calendar.month", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500


@bp.route("/api/calendar/day", methods=["GET"])
def day_view():
    try:
        day = date.fromisoformat(request.args.get("date") or date.today().isoformat())
    except ValueError:
        return jsonify({"ok": False, "error": "date_invalid"}), 400
    try:
        collection = _collection(DateRange.single(day))
        drawer = DaySchedule(collection, _settings())
        view = drawer.open(day, request.args.get("doctor_id") or None)
        payload = view.to_dict()
        payload["load_error"] = str(collection.load_error) if collection.load_error else None
        return jsonify(payload)
    except Exception as exc:
        record_exception("calendar.day", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500
