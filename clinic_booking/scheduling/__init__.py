"""Framework-agnostic appointment scheduling core."""

from clinic_booking.scheduling.availability import AvailabilityFetcher, FetchOutcome
from clinic_booking.scheduling.backend import SchedulingBackend
from clinic_booking.scheduling.day_schedule import DaySchedule, DayView
from clinic_booking.scheduling.editor import AppointmentEditor, EditorResult, EditorState
from clinic_booking.scheduling.errors import (
    EditorStateError,
    PersistenceError,
    SchedulingError,
    SlotFetchError,
    ValidationError,
)
from clinic_booking.scheduling.models import (
    Appointment,
    AppointmentInput,
    AppointmentStatus,
    DateRange,
    Doctor,
    SchedulingSettings,
)
from clinic_booking.scheduling.month_grid import MonthAggregator, card_treatment
from clinic_booking.scheduling.page import SchedulerPage
from clinic_booking.scheduling.slots import Slot, SlotGrid, generate_slots
from clinic_booking.scheduling.store import AppointmentCollection

__all__ = [
    "Appointment",
    "AppointmentCollection",
    "AppointmentEditor",
    "AppointmentInput",
    "AppointmentStatus",
    "AvailabilityFetcher",
    "DateRange",
    "DaySchedule",
    "DayView",
    "Doctor",
    "EditorResult",
    "EditorState",
    "EditorStateError",
    "FetchOutcome",
    "MonthAggregator",
    "PersistenceError",
    "SchedulerPage",
    "SchedulingBackend",
    "SchedulingError",
    "SchedulingSettings",
    "Slot",
    "SlotFetchError",
    "SlotGrid",
    "ValidationError",
    "card_treatment",
    "generate_slots",
]
