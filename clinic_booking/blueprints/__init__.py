"""Blueprint registration."""

from __future__ import annotations

from flask import Flask


def register_blueprints(app: Flask) -> None:
    from clinic_booking.blueprints.appointments import bp as appointments_bp
    from clinic_booking.blueprints.appointments import calendar_bp
    from clinic_booking.blueprints.core import bp as core_bp
    from clinic_booking.blueprints.doctors import bp as doctors_bp

    app.register_blueprint(core_bp)
    app.register_blueprint(doctors_bp)
    app.register_blueprint(appointments_bp)
    app.register_blueprint(calendar_bp)
