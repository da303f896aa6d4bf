"""Appointment and calendar API blueprints."""

from __future__ import annotations

from clinic_booking.blueprints.appointments import calendar, routes

bp = routes.bp
calendar_bp = calendar.bp

__all__ = ["bp", "calendar_bp"]
