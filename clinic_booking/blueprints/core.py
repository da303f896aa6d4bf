"""Health and CSRF token endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_wtf.csrf import generate_csrf

from clinic_booking.extensions import limiter
from clinic_booking.services.database import table_counts
from clinic_booking.services.errors import record_exception

bp = Blueprint("core", __name__)


@bp.route("/api/csrf-token", methods=["GET"])
@limiter.exempt
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})


@bp.route("/api/health", methods=["GET"])
@limiter.exempt
def health():
    try:
        counts = table_counts()
    except Exception as exc:
        record_exception("core.health", exc)
        return jsonify({"ok": False, "error": "database_unavailable"}), 503
    return jsonify({"ok": True, "tables": counts})
