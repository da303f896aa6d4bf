"""Request payload forms for the appointment API."""

from __future__ import annotations

from typing import Any, Mapping

from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField, TextAreaField
from wtforms.validators import AnyOf, Length, Optional, Regexp

from clinic_booking.scheduling.models import AppointmentStatus
from clinic_booking.scheduling.validation import EMAIL_PATTERN, TIME_PATTERN

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?)?$"
PHONE_PATTERN = r"^\+?[\d\s().-]+$"


class AppointmentForm(FlaskForm):
    """Shape checks for create/patch payloads; required-field rules live in the service."""

    class Meta:
        csrf = False

    patient_name = StringField("Patient name", validators=[Optional(), Length(max=200)])
    email = StringField(
        "Email",
        validators=[Optional(), Length(max=254), Regexp(EMAIL_PATTERN, message="Enter a valid email address")],
    )
    phone = StringField(
        "Phone",
        validators=[Optional(), Length(max=32), Regexp(PHONE_PATTERN, message="Phone may only contain digits")],
    )
    doctor_id = StringField("Doctor", validators=[Optional(), Length(max=120)])
    date = StringField(
        "Date", validators=[Optional(), Regexp(DATE_PATTERN, message="Date must be YYYY-MM-DD")]
    )
    time = StringField(
        "Time",
        validators=[Optional(), Regexp(TIME_PATTERN, message="Invalid time format - must be HH:MM")],
    )
    status = StringField(
        "Status",
        validators=[
            Optional(),
            AnyOf([status.value for status in AppointmentStatus], message="Unknown status"),
        ],
        filters=[lambda value: value.strip().upper() if isinstance(value, str) else value],
    )
    customer_id = StringField("Customer", validators=[Optional(), Length(max=120)])
    notes = TextAreaField("Notes", validators=[Optional(), Length(max=2000)])


def form_for(payload: Mapping[str, Any]) -> AppointmentForm:
    """Bind a JSON payload; nulls are left out so they read as absent."""

    formdata = MultiDict(
        {key: str(value) for key, value in payload.items() if value is not None and not isinstance(value, (dict, list))}
    )
    return AppointmentForm(formdata=formdata)


def form_errors(form: AppointmentForm) -> dict[str, str]:
    return {name: messages[0] for name, messages in form.errors.items() if messages}
