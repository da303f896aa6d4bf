"""Clinic booking package exposing the Flask application factory."""

from __future__ import annotations

import os
from pathlib import Path

from flask import Flask, jsonify
from flask_wtf.csrf import CSRFError

from .blueprints import register_blueprints
from .cli import register_cli
from .extensions import init_extensions
from .services.bootstrap import ensure_base_tables
from .services.doctors import seed_default_doctors
from .services.migrations import auto_upgrade

APP_HOST = "127.0.0.1"
APP_PORT = 8080


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _data_root(base_dir: Path, override: Path | None = None) -> Path:
    root = override if override else base_dir / "data"
    root.mkdir(parents=True, exist_ok=True)
    (root / "logs").mkdir(parents=True, exist_ok=True)
    return root


def create_app() -> Flask:
    repo_root = Path(__file__).resolve().parent.parent
    db_override = os.getenv("CLINIC_DB_PATH")
    data_root = _data_root(repo_root, Path(db_override).parent if db_override else None)
    db_path = Path(db_override) if db_override else data_root / "app.db"

    app = Flask(__name__)

    secret_key = os.getenv("CLINIC_SECRET_KEY")
    if not secret_key:
        secret_key = os.urandom(32)

    doctor_list = [
        doc.strip()
        for doc in os.getenv("CLINIC_DOCTORS", "Dr. Lina,Dr. Omar").split(",")
        if doc.strip()
    ]

    app.config.update(
        SECRET_KEY=secret_key,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{db_path}",
        SQLALCHEMY_ENGINE_OPTIONS={"connect_args": {"check_same_thread": False}},
        RATELIMIT_STORAGE_URI=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
        RATELIMIT_ENABLED=_flag("RATELIMIT_ENABLED", "1"),
        DATA_ROOT=str(data_root),
        CLINIC_DB=str(db_path),
        CLINIC_AUTO_MIGRATE=_flag("CLINIC_AUTO_MIGRATE", "1"),
        CLINIC_DOCTORS=doctor_list,
        CLINIC_WORKING_HOURS_START=int(os.getenv("CLINIC_WORKING_HOURS_START", "9")),
        CLINIC_WORKING_HOURS_END=int(os.getenv("CLINIC_WORKING_HOURS_END", "17")),
        CLINIC_DB_BUSY_TIMEOUT_MS=int(os.getenv("CLINIC_DB_BUSY_TIMEOUT_MS", "5000")),
        APPOINTMENT_SLOT_MINUTES=int(os.getenv("APPOINTMENT_SLOT_MINUTES", "30")),
        CALENDAR_CELL_CAP=int(os.getenv("CALENDAR_CELL_CAP", "4")),
        APPOINTMENT_ALLOW_OVERBOOKING=_flag("APPOINTMENT_ALLOW_OVERBOOKING"),
        WRITE_RATE_LIMIT=os.getenv("WRITE_RATE_LIMIT", "60 per minute"),
    )

    init_extensions(app)
    register_blueprints(app)
    auto_upgrade(app)
    ensure_base_tables(Path(app.config["CLINIC_DB"]))
    with app.app_context():
        seed_default_doctors()
    register_cli(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning("CSRF validation failed: %s", e.description)
        return jsonify({"ok": False, "error": "csrf_failed", "message": e.description}), 400

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify({"ok": False, "error": "not_found"}), 404

    @app.errorhandler(429)
    def handle_rate_limited(e):
        return jsonify({"ok": False, "error": "rate_limited", "message": str(e.description)}), 429

    return app


__all__ = ["create_app", "APP_HOST", "APP_PORT"]
