"""JSON API for appointments."""

from __future__ import annotations

from datetime import date, timedelta

from flask import Blueprint, current_app, jsonify, request

from clinic_booking.extensions import limiter
from clinic_booking.forms.appointments import form_errors, form_for
from clinic_booking.services.appointments import (
    AppointmentError,
    AppointmentNotFound,
    AppointmentOverlap,
    AppointmentValidationError,
    create_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    update_appointment,
    update_status,
)
from clinic_booking.services.errors import record_exception

bp = Blueprint("appointments", __name__)

DEFAULT_RANGE_DAYS = 30


def _write_limit() -> str:
    return current_app.config["WRITE_RATE_LIMIT"]


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error_response(exc: AppointmentError):
    if isinstance(exc, AppointmentValidationError):
        return jsonify({"ok": False, "error": "validation_error", "field_errors": exc.field_errors}), 400
    if isinstance(exc, AppointmentOverlap):
        return jsonify({"ok": False, "error": "slot_taken", "message": "This time slot is already booked"}), 409
    if isinstance(exc, AppointmentNotFound):
        return jsonify({"ok": False, "error": "not_found"}), 404
    return jsonify({"ok": False, "error": str(exc)}), 400


def _validated_payload():
    payload = _payload()
    form = form_for(payload)
    if not form.validate():
        raise AppointmentValidationError(form_errors(form))
    return payload


@bp.route("/api/appointments", methods=["GET"])
def index():
    try:
        start_raw = request.args.get("start")
        end_raw = request.args.get("end")
        try:
            start = date.fromisoformat(start_raw) if start_raw else date.today()
            end = date.fromisoformat(end_raw) if end_raw else start + timedelta(days=DEFAULT_RANGE_DAYS)
        except ValueError:
            return jsonify({"ok": False, "error": "invalid_date"}), 400
        if end < start:
            return jsonify({"ok": False, "error": "invalid_range"}), 400
        items = list_appointments(start, end, doctor_id=request.args.get("doctor_id") or None)
        return jsonify({"appointments": [item.to_dict() for item in items]})
    except Exception as exc:
        record_exception("appointments.index", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500


@bp.route("/api/appointments", methods=["POST"])
@limiter.limit(_write_limit)
def create():
    try:
        appointment = create_appointment(_validated_payload())
        return jsonify({"ok": True, "appointment": appointment.to_dict()}), 201
    except AppointmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        record_exception("appointments.create", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500


@bp.route("/api/appointments/<appt_id>", methods=["GET"])
def show(appt_id: str):
    try:
        return jsonify({"appointment": get_appointment(appt_id).to_dict()})
    except AppointmentError as exc:
        return _error_response(exc)


@bp.route("/api/appointments/<appt_id>", methods=["PATCH"])
@limiter.limit(_write_limit)
def patch(appt_id: str):
    try:
        appointment = update_appointment(appt_id, _validated_payload())
        return jsonify({"ok": True, "appointment": appointment.to_dict()})
    except AppointmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        record_exception("appointments.patch", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500


@bp.route("/api/appointments/<appt_id>", methods=["DELETE"])
@limiter.limit(_write_limit)
def delete(appt_id: str):
    try:
        delete_appointment(appt_id)
        return jsonify({"ok": True})
    except AppointmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        record_exception("appointments.delete", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500


@bp.route("/api/appointments/<appt_id>/status", methods=["POST"])
@limiter.limit(_write_limit)
def change_status(appt_id: str):
    new_status = str(_payload().get("status") or request.form.get("status") or "").strip()
    if not new_status:
        return jsonify({"ok": False, "error": "status_required"}), 400
    try:
        appointment = update_status(appt_id, new_status)
        return jsonify({"ok": True, "appointment": appointment.to_dict()})
    except AppointmentError as exc:
        return _error_response(exc)
    except Exception as exc:
        record_exception("appointments.status", exc)
        return jsonify({"ok": False, "error": "server_error"}), 500
