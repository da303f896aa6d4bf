"""Doctor roster, weekly schedules, special dates and slot availability."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, jsonify, request

from clinic_booking.extensions import limiter
from clinic_booking.services.doctors import DoctorNotFound, get_doctor, list_doctors
from clinic_booking.services.errors import record_exception
from clinic_booking.services.schedules import (
    ScheduleError,
    add_special_date,
    delete_special_date,
    disabled_dates,
    list_available_slots,
    list_schedules,
    list_special_dates,
    set_schedule,
)

bp = Blueprint("doctors", __name__)


def _write_limit() -> str:
    return current_app.config["WRITE_RATE_LIMIT"]


def _parse_day(value: str | None, field: str = "date") -> date:
    if not value:
        raise ScheduleError(f"{field}_required")
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ScheduleError(f"{field}_invalid")


@bp.route("/api/doctors", methods=["GET"])
def doctors_index():
    try:
        doctors = list_doctors()
    except Exception as exc:
        record_exception("doctors.index", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500
    return jsonify({"doctors": [doctor.to_dict() for doctor in doctors]})


@bp.route("/api/doctors/<doctor_id>", methods=["GET"])
def doctor_show(doctor_id: str):
    try:
        doctor = get_doctor(doctor_id)
    except DoctorNotFound:
        return jsonify({"ok": False, "error": "doctor_not_found"}), 404
    return jsonify({"doctor": doctor.to_dict()})


@bp.route("/api/doctors/<doctor_id>/schedule", methods=["GET", "PUT"])
@limiter.limit(_write_limit, methods=["PUT"])
def doctor_schedule(doctor_id: str):
    try:
        if request.method == "PUT":
            payload = request.get_json(silent=True) or {}
            entries = payload.get("schedules") if isinstance(payload, dict) else payload
            if not isinstance(entries, list):
                return jsonify({"ok": False, "error": "schedules_required"}), 400
            schedules = set_schedule(doctor_id, entries)
            current_app.logger.info("Updated schedule for %s (%d days)", doctor_id, len(schedules))
        else:
            schedules = list_schedules(doctor_id)
        return jsonify({"doctor_id": doctor_id, "schedules": [item.to_dict() for item in schedules]})
    except DoctorNotFound:
        return jsonify({"ok": False, "error": "doctor_not_found"}), 404
    except ScheduleError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 400
    except Exception as exc:
        record_exception("doctors.schedule", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500


@bp.route("/api/special-dates", methods=["GET", "POST"])
@limiter.limit(_write_limit, methods=["POST"])
def special_dates():
    try:
        if request.method == "POST":
            special = add_special_date(request.get_json(silent=True) or {})
            return jsonify({"ok": True, "special_date": special.to_dict()}), 201
        start = request.args.get("start")
        end = request.args.get("end")
        items = list_special_dates(
            _parse_day(start, "start") if start else None,
            _parse_day(end, "end") if end else None,
            doctor_id=request.args.get("doctor_id") or None,
        )
        return jsonify({"special_dates": [item.to_dict() for item in items]})
    except DoctorNotFound:
        return jsonify({"ok": False, "error": "doctor_not_found"}), 404
    except ScheduleError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 400
    except Exception as exc:
        record_exception("doctors.special_dates", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500


@bp.route("/api/special-dates/<special_id>", methods=["DELETE"])
@limiter.limit(_write_limit)
def special_date_delete(special_id: str):
    if not delete_special_date(special_id):
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": True})


@bp.route("/api/available-slots", methods=["GET"])
def available_slots():
    doctor_id = (request.args.get("doctor_id") or "").strip()
    if not doctor_id:
        return jsonify({"ok": False, "error": "doctor_id_required"}), 400
    try:
        raw_day = request.args.get("date")
        if not raw_day:
            days = disabled_dates(doctor_id)
            return jsonify({"disabled_dates": [day.isoformat() for day in days]})
        day = _parse_day(raw_day)
        return jsonify({"slots": list_available_slots(doctor_id, day)})
    except DoctorNotFound:
        return jsonify({"ok": False, "error": "doctor_not_found"}), 404
    except ScheduleError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 400
    except Exception as exc:
        record_exception("doctors.available_slots", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500
