"""Slot generation for a single doctor/day timeline.

``generate_slots`` is a pure function: the same working hours, interval and
appointments always give the same ``SlotGrid``. Occupancy here is an
optimistic display aid only; the persistence layer performs the
authoritative conflict check when an appointment is written.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from clinic_booking.scheduling.models import Appointment, label_of, minutes_of


@dataclass(frozen=True)
class Slot:
    label: str
    start_minutes: int
    end_minutes: int
    appointments: tuple[Appointment, ...] = ()

    @property
    def end_label(self) -> str:
        return label_of(self.end_minutes)

    @property
    def is_free(self) -> bool:
        return not self.appointments

    @property
    def is_occupied(self) -> bool:
        return bool(self.appointments)


@dataclass(frozen=True)
class SlotGrid:
    slots: tuple[Slot, ...]
    start_minutes: int
    end_minutes: int
    extended: bool = False
    nominal: tuple[int, int] = field(default=(0, 0))

    @property
    def labels(self) -> list[str]:
        return [slot.label for slot in self.slots]

    @property
    def free(self) -> list[Slot]:
        return [slot for slot in self.slots if slot.is_free]

    @property
    def occupied(self) -> list[Slot]:
        return [slot for slot in self.slots if slot.is_occupied]

    def slot_for(self, label: str) -> Slot | None:
        for slot in self.slots:
            if slot.label == label:
                return slot
        return None


def _effective_window(
    start_hour: int, end_hour: int, interval: int, times: Sequence[int]
) -> tuple[int, int]:
    start = start_hour * 60
    end = end_hour * 60
    if not times:
        return start, end
    latest = max(times)
    if latest >= end:
        # First interval boundary strictly after the latest booking, then up to a whole hour.
        boundary = (latest // interval + 1) * interval
        end = max(end, math.ceil(boundary / 60) * 60)
    earliest = min(times)
    if earliest < start:
        start = min(start, (earliest // 60) * 60)
    return start, end


def generate_slots(
    working_hours_start: int,
    working_hours_end: int,
    interval_minutes: int,
    appointments: Iterable[Appointment] = (),
) -> SlotGrid:
    """Partition ``[start, end)`` into ``interval_minutes`` slots.

    Cancelled appointments and appointments without a time are ignored.
    The window grows past closing time (and before opening time) so that
    every remaining appointment lands in exactly one slot.
    """

    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")
    if working_hours_end < working_hours_start:
        raise ValueError("working hours end before they start")

    # Input order is kept as the final tie-break.
    booked = [appt for appt in appointments if appt.occupies_slot]
    ordered = sorted(
        enumerate(booked), key=lambda pair: (minutes_of(pair[1].time or "00:00"), pair[0])
    )
    times = [minutes_of(appt.time or "00:00") for _, appt in ordered]

    nominal = (working_hours_start * 60, working_hours_end * 60)
    start, end = _effective_window(working_hours_start, working_hours_end, interval_minutes, times)

    slots: list[Slot] = []
    cursor = 0
    current = start
    while current < end:
        upper = current + interval_minutes
        bucket: list[Appointment] = []
        while cursor < len(ordered) and times[cursor] < upper:
            bucket.append(ordered[cursor][1])
            cursor += 1
        slots.append(Slot(label_of(current), current, upper, tuple(bucket)))
        current = upper

    return SlotGrid(
        slots=tuple(slots),
        start_minutes=start,
        end_minutes=slots[-1].end_minutes if slots else end,
        extended=(start, end) != nominal,
        nominal=nominal,
    )
