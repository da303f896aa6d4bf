import pytest

DAY = "2031-03-10"


def _payload(**overrides):
    data = {
        "patient_name": "A. Rao",
        "doctor_id": "d1",
        "date": DAY,
        "time": "09:30",
        "status": "SCHEDULED",
        "email": "a.rao@example.com",
        "phone": "+20 100 123 4567",
    }
    data.update(overrides)
    return data


def _create(client, **overrides):
    resp = client.post("/api/appointments", json=_payload(**overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["appointment"]


def test_create_list_show(client, doctor_d1):
    created = _create(client)
    assert created["id"]
    assert created["status"] == "SCHEDULED"
    assert created["doctor_name"] == "Dr. One"

    listed = client.get(f"/api/appointments?start={DAY}&end={DAY}").get_json()["appointments"]
    assert [item["id"] for item in listed] == [created["id"]]

    shown = client.get(f"/api/appointments/{created['id']}").get_json()["appointment"]
    assert shown["time"] == "09:30"


def test_list_filters_by_doctor_and_range(client, doctor_d1):
    _create(client)
    _create(client, doctor_id="dr-lina", time="10:00")
    _create(client, date="2031-03-12", time="10:00")
    listed = client.get(f"/api/appointments?start={DAY}&end={DAY}&doctor_id=d1").get_json()["appointments"]
    assert len(listed) == 1
    assert client.get("/api/appointments?start=2031-03-12&end=2031-03-10").status_code == 400


def test_validation_errors_are_field_scoped(client, doctor_d1):
    resp = client.post("/api/appointments", json=_payload(patient_name="", time=None, email="nope"))
    assert resp.status_code == 400
    errors = resp.get_json()["field_errors"]
    assert "email" in errors

    resp = client.post("/api/appointments", json=_payload(patient_name="", time=None))
    errors = resp.get_json()["field_errors"]
    assert set(errors) == {"patient_name", "time"}


def test_unknown_doctor_is_rejected(client):
    resp = client.post("/api/appointments", json=_payload(doctor_id="ghost"))
    assert resp.status_code == 400
    assert resp.get_json()["field_errors"]["doctor_id"] == "Unknown doctor"


def test_double_booking_same_slot_conflicts(client, doctor_d1):
    _create(client)
    resp = client.post("/api/appointments", json=_payload(patient_name="B. Iyer"))
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "slot_taken"


def test_overbooking_can_be_allowed(app, client, doctor_d1):
    app.config["APPOINTMENT_ALLOW_OVERBOOKING"] = True
    _create(client)
    _create(client, patient_name="B. Iyer")
    listed = client.get(f"/api/appointments?start={DAY}&end={DAY}").get_json()["appointments"]
    assert len(listed) == 2


def test_cancelled_appointment_frees_its_slot(client, doctor_d1):
    first = _create(client)
    resp = client.patch(f"/api/appointments/{first['id']}", json={"status": "cancelled"})
    assert resp.status_code == 200
    body = resp.get_json()["appointment"]
    assert body["status"] == "CANCELLED"
    assert body["time"] is None
    _create(client, patient_name="B. Iyer")


def test_patch_moves_appointment_and_checks_conflicts(client, doctor_d1):
    first = _create(client)
    second = _create(client, time="10:00", patient_name="B. Iyer")
    resp = client.patch(f"/api/appointments/{second['id']}", json={"time": "09:30"})
    assert resp.status_code == 409
    resp = client.patch(f"/api/appointments/{second['id']}", json={"time": "11:00", "notes": "moved"})
    assert resp.status_code == 200
    assert resp.get_json()["appointment"]["notes"] == "moved"
    # Re-saving an appointment onto its own slot is not a conflict.
    assert client.patch(f"/api/appointments/{first['id']}", json={"phone": "0100 123 4567"}).status_code == 200


def test_patch_rejects_bad_time_format(client, doctor_d1):
    appt = _create(client)
    resp = client.patch(f"/api/appointments/{appt['id']}", json={"time": "9am"})
    assert resp.status_code == 400
    assert "time" in resp.get_json()["field_errors"]


@pytest.mark.parametrize(
    "steps,expected",
    [
        (["CONFIRMED", "COMPLETED"], [200, 200]),
        (["CONFIRMED", "NO_SHOW"], [200, 200]),
        (["COMPLETED"], [400]),
        (["CANCELLED", "CONFIRMED"], [200, 400]),
    ],
)
def test_status_transitions(client, doctor_d1, steps, expected):
    appt = _create(client)
    codes = [
        client.post(f"/api/appointments/{appt['id']}/status", json={"status": step}).status_code
        for step in steps
    ]
    assert codes == expected


def test_delete_and_not_found(client, doctor_d1):
    appt = _create(client)
    assert client.delete(f"/api/appointments/{appt['id']}").status_code == 200
    assert client.get(f"/api/appointments/{appt['id']}").status_code == 404
    assert client.delete(f"/api/appointments/{appt['id']}").status_code == 404
    assert client.patch("/api/appointments/missing", json={"notes": "x"}).status_code == 404


def test_csrf_token_is_required_when_enabled(app, client, doctor_d1):
    app.config["WTF_CSRF_ENABLED"] = True
    resp = client.post("/api/appointments", json=_payload())
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "csrf_failed"

    token = client.get("/api/csrf-token").get_json()["csrf_token"]
    resp = client.post("/api/appointments", json=_payload(), headers={"X-CSRFToken": token})
    assert resp.status_code == 201


@pytest.mark.parametrize("value", ["2031-03-10junk", "2031-03-10 09:30", "10/03/2031"])
def test_trailing_garbage_in_date_is_rejected(client, doctor_d1, value):
    resp = client.post("/api/appointments", json=_payload(date=value))
    assert resp.status_code == 400
    assert "date" in resp.get_json()["field_errors"]


def test_iso_timestamp_date_is_accepted(client, doctor_d1):
    created = _create(client, date="2031-03-10T00:00:00Z")
    assert created["date"] == DAY
