from datetime import date, datetime

import pytest

from clinic_booking.services.appointments import create_appointment, update_status
from clinic_booking.services.doctors import DoctorNotFound
from clinic_booking.services.schedules import (
    ScheduleError,
    add_special_date,
    day_of_week,
    delete_special_date,
    disabled_dates,
    list_available_slots,
    list_schedules,
    list_special_dates,
    set_schedule,
)

MONDAY = date(2031, 3, 10)
TUESDAY = date(2031, 3, 11)
BEFORE = datetime(2031, 3, 1, 8, 0)

MONDAY_HOURS = {
    "day_of_week": 1,
    "start_time": "10:00",
    "end_time": "13:00",
    "slot_duration": 30,
    "break_start": "11:00",
    "break_end": "11:30",
}


def test_day_of_week_is_sunday_based():
    assert day_of_week(date(2031, 3, 9)) == 0
    assert day_of_week(MONDAY) == 1


def test_clinic_hours_apply_when_doctor_has_no_schedule(app, doctor_d1):
    with app.app_context():
        slots = list_available_slots("d1", MONDAY, now=BEFORE)
    assert slots[0] == "09:00"
    assert slots[-1] == "16:30"
    assert len(slots) == 16


def test_booked_times_are_excluded_until_cancelled(app, doctor_d1):
    with app.app_context():
        appt = create_appointment(
            {"patient_name": "A. Rao", "doctor_id": "d1", "date": MONDAY.isoformat(), "time": "09:30"}
        )
        assert "09:30" not in list_available_slots("d1", MONDAY, now=BEFORE)
        update_status(appt.id, "CANCELLED")
        assert "09:30" in list_available_slots("d1", MONDAY, now=BEFORE)


def test_weekly_schedule_with_break(app, doctor_d1):
    with app.app_context():
        set_schedule("d1", [MONDAY_HOURS])
        assert list_available_slots("d1", MONDAY, now=BEFORE) == ["10:00", "10:30", "11:30", "12:00", "12:30"]
        assert list_available_slots("d1", TUESDAY, now=BEFORE) == []
        saved = list_schedules("d1")
    assert [item.day_of_week for item in saved] == [1]


def test_buffer_time_widens_the_step(app, doctor_d1):
    with app.app_context():
        set_schedule(
            "d1",
            [{"day_of_week": 1, "start_time": "10:00", "end_time": "12:00", "slot_duration": 30, "buffer_time": 15}],
        )
        assert list_available_slots("d1", MONDAY, now=BEFORE) == ["10:00", "10:45", "11:30"]


def test_inactive_weekday_gives_no_slots(app, doctor_d1):
    with app.app_context():
        set_schedule("d1", [dict(MONDAY_HOURS, is_active=False)])
        assert list_available_slots("d1", MONDAY, now=BEFORE) == []


def test_past_days_and_elapsed_slots_are_hidden(app, doctor_d1):
    with app.app_context():
        assert list_available_slots("d1", MONDAY, now=datetime(2031, 3, 11, 8, 0)) == []
        slots = list_available_slots("d1", MONDAY, now=datetime(2031, 3, 10, 10, 10))
    assert slots[0] == "10:30"


def test_special_dates(app, doctor_d1):
    with app.app_context():
        holiday = add_special_date({"date": MONDAY.isoformat(), "name": "Spring holiday", "type": "holiday"})
        assert list_available_slots("d1", MONDAY, now=BEFORE) == []
        assert delete_special_date(holiday.id)
        assert not delete_special_date(holiday.id)

        add_special_date(
            {"date": MONDAY.isoformat(), "name": "Short day", "type": "SPECIAL_HOURS", "doctor_id": "d1",
             "start_time": "14:00", "end_time": "15:00"}
        )
        add_special_date(
            {"date": MONDAY.isoformat(), "name": "Staff meeting", "type": "BREAK",
             "break_start": "14:30", "break_end": "15:00"}
        )
        assert list_available_slots("d1", MONDAY, now=BEFORE) == ["14:00"]
        listed = list_special_dates(MONDAY, MONDAY, doctor_id="d1")
    assert {item.type for item in listed} == {"SPECIAL_HOURS", "BREAK"}


def test_disabled_dates_cover_days_off_and_holidays(app, doctor_d1):
    with app.app_context():
        set_schedule("d1", [MONDAY_HOURS, dict(MONDAY_HOURS, day_of_week=2)])
        add_special_date({"date": TUESDAY.isoformat(), "name": "Closed", "type": "HOLIDAY", "doctor_id": "d1"})
        days = disabled_dates("d1", today=date(2031, 3, 9), days=7)
    assert date(2031, 3, 9) in days
    assert MONDAY not in days
    assert TUESDAY in days
    assert len(days) == 6


@pytest.mark.parametrize(
    "entry,error",
    [
        (dict(MONDAY_HOURS, end_time="09:00"), "end_before_start"),
        (dict(MONDAY_HOURS, day_of_week=9), "day_of_week_invalid"),
        (dict(MONDAY_HOURS, start_time="10h"), "start_time_invalid"),
        (dict(MONDAY_HOURS, break_end=None), "break_incomplete"),
    ],
)
def test_schedule_input_is_checked(app, doctor_d1, entry, error):
    with app.app_context():
        with pytest.raises(ScheduleError, match=error):
            set_schedule("d1", [entry])


def test_unknown_doctor(app):
    with app.app_context():
        with pytest.raises(DoctorNotFound):
            list_available_slots("ghost", MONDAY, now=BEFORE)


def test_schedule_and_slot_endpoints(client, doctor_d1):
    resp = client.put("/api/doctors/d1/schedule", json={"schedules": [MONDAY_HOURS]})
    assert resp.status_code == 200
    assert client.get("/api/doctors/d1/schedule").get_json()["schedules"][0]["break_start"] == "11:00"

    slots = client.get(f"/api/available-slots?doctor_id=d1&date={MONDAY.isoformat()}").get_json()
    assert slots == {"slots": ["10:00", "10:30", "11:30", "12:00", "12:30"]}
    assert "disabled_dates" in client.get("/api/available-slots?doctor_id=d1").get_json()

    assert client.get("/api/available-slots").status_code == 400
    assert client.get("/api/available-slots?doctor_id=ghost&date=2031-03-10").status_code == 404
    assert client.get("/api/available-slots?doctor_id=d1&date=soon").status_code == 400
    assert client.put("/api/doctors/ghost/schedule", json={"schedules": []}).status_code == 404


def test_special_date_endpoints(client, doctor_d1):
    resp = client.post(
        "/api/special-dates", json={"date": "2031-03-10", "name": "Holiday", "type": "HOLIDAY"}
    )
    assert resp.status_code == 201
    special_id = resp.get_json()["special_date"]["id"]
    listed = client.get("/api/special-dates?start=2031-03-01&end=2031-03-31").get_json()["special_dates"]
    assert [item["id"] for item in listed] == [special_id]
    assert client.post("/api/special-dates", json={"date": "2031-03-10", "name": "X", "type": "PARTY"}).status_code == 400
    assert client.delete(f"/api/special-dates/{special_id}").status_code == 200
    assert client.delete(f"/api/special-dates/{special_id}").status_code == 404


def test_doctor_roster_endpoint(client, doctor_d1):
    doctors = client.get("/api/doctors").get_json()["doctors"]
    ids = [doctor["id"] for doctor in doctors]
    assert ids[-1] == "d1"
    assert {"dr-lina", "dr-omar"} <= set(ids)
    assert client.get("/api/doctors/d1").get_json()["doctor"]["name"] == "Dr. One"
    assert client.get("/api/doctors/ghost").status_code == 404
