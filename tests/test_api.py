"""
HTTP tests through FastAPI's TestClient. These run against the real clock,
so bookings are placed a month ahead.
"""
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from scheduling_api.config import settings
from scheduling_api.exceptions import StoreError
from scheduling_api.services import appointments as service

BASE = "/api/appointments"
DAY = date.today() + timedelta(days=30)


def slot(hour, minute=0):
    return datetime(DAY.year, DAY.month, DAY.day, hour, minute)


def payload(start_at, doctor_id="D1", **extra):
    body = {
        "patient_id": str(uuid.uuid4()),
        "doctor_id": doctor_id,
        "start_at": start_at.isoformat(),
        "type": "Consultation",
        "duration_minutes": 30,
    }
    body.update(extra)
    return body


def free_slots(client, doctor_id="D1"):
    resp = client.get(f"{BASE}/available-slots", params={"doctor_id": doctor_id, "date": DAY.isoformat()})
    assert resp.status_code == 200
    return resp.json()["slots"]


@pytest.fixture
def booked(client):
    resp = client.post(BASE, json=payload(slot(9)))
    assert resp.status_code == 201
    return resp.json()


def test_root(client):
    assert client.get("/").json()["ok"] is True


def test_create_returns_scheduled_record(client):
    resp = client.post(BASE, json=payload(slot(10), status="Completed", notes="hello"))

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "Scheduled"
    assert body["notes"] == "hello"
    assert body["updated_at"] is None
    assert body["version"] == 1
    assert resp.headers["location"] == f"{BASE}/{body['id']}"


def test_booking_flow_and_slots(client, booked):
    slots = free_slots(client)
    assert len(slots) == 15
    assert slot(9).isoformat() not in slots

    resp = client.post(BASE, json=payload(slot(9)))
    assert resp.status_code == 409
    assert resp.json() == {"detail": "The selected time slot is not available", "error": "conflict"}

    resp = client.put(f"{BASE}/{booked['id']}/status", json="Cancelled")
    assert resp.status_code == 204
    assert len(free_slots(client)) == 16


def test_past_booking_rejected(client):
    past = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)
    resp = client.post(BASE, json=payload(past))

    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


def test_payload_validation(client):
    resp = client.post(BASE, json=payload(slot(11), duration_minutes=0))
    assert resp.status_code == 422


def test_get_by_id(client, booked):
    resp = client.get(f"{BASE}/{booked['id']}")
    assert resp.status_code == 200
    assert resp.json()["doctor_id"] == "D1"

    resp = client.get(f"{BASE}/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"


def test_status_update(client, booked):
    url = f"{BASE}/{booked['id']}/status"

    resp = client.put(url, json="Archived")
    assert resp.status_code == 400
    assert "Scheduled, Completed, Cancelled, NoShow" in resp.json()["detail"]

    for value in ("Completed", "Scheduled", "NoShow"):
        assert client.put(url, json=value).status_code == 204

    body = client.get(f"{BASE}/{booked['id']}").json()
    assert body["status"] == "NoShow"
    assert body["updated_at"] is not None

    assert client.put(f"{BASE}/{uuid.uuid4()}/status", json="Completed").status_code == 404


def test_full_update(client, booked):
    body = dict(booked, start_at=slot(14).isoformat(), notes="moved")
    resp = client.put(f"{BASE}/{booked['id']}", json=body)
    assert resp.status_code == 204

    stored = client.get(f"{BASE}/{booked['id']}").json()
    assert stored["start_at"] == slot(14).isoformat()
    assert stored["version"] == 2
    assert slot(9).isoformat() in free_slots(client)
    assert slot(14).isoformat() not in free_slots(client)


def test_full_update_id_mismatch(client, booked):
    body = dict(booked, id=str(uuid.uuid4()))
    resp = client.put(f"{BASE}/{booked['id']}", json=body)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Appointment ID mismatch"


def test_full_update_stale_version(client, booked):
    client.put(f"{BASE}/{booked['id']}/status", json="Completed")

    resp = client.put(f"{BASE}/{booked['id']}", json=dict(booked, notes="stale"))
    assert resp.status_code == 409


def test_full_update_onto_taken_slot(client, booked):
    other = client.post(BASE, json=payload(slot(15))).json()

    resp = client.put(f"{BASE}/{other['id']}", json=dict(other, start_at=slot(9).isoformat()))
    assert resp.status_code == 409


def test_history_queries(client, booked):
    later = client.post(BASE, json=payload(slot(16), patient_id=booked["patient_id"])).json()

    resp = client.get(f"{BASE}/patient/{booked['patient_id']}")
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == [later["id"], booked["id"]]

    assert client.get(f"{BASE}/doctor/D1").status_code == 200
    assert client.get(f"{BASE}/doctor/D404").status_code == 404
    assert client.get(f"{BASE}/patient/{uuid.uuid4()}").status_code == 404
    assert len(client.get(BASE).json()) == 2


def test_delete(client, booked):
    url = f"{BASE}/{booked['id']}"

    assert client.delete(url).status_code == 204
    assert client.get(url).status_code == 404
    assert client.delete(url).status_code == 404


def test_slots_bad_date(client):
    resp = client.get(f"{BASE}/available-slots", params={"doctor_id": "D1", "date": "not-a-date"})
    assert resp.status_code == 400
    assert resp.json() == {"detail": "Invalid date format. Use YYYY-MM-DD.", "error": "validation_error"}


@pytest.mark.parametrize("value", ["6/2", "2025-06-02 13:45", "2025-06-02T09:00"])
def test_slots_date_must_be_plain_iso_date(client, value):
    resp = client.get(f"{BASE}/available-slots", params={"doctor_id": "D1", "date": value})
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


def test_offset_timestamps_are_stored_as_utc(client):
    body = payload(slot(0))
    body["start_at"] = "%sT12:00:00+02:00" % DAY.isoformat()
    resp = client.post(BASE, json=body)

    assert resp.status_code == 201
    assert resp.json()["start_at"] == slot(10).isoformat()


class TestStoreErrors:
    def test_details_shown_in_dev(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise StoreError("A database error occurred while saving the appointment", details="disk full")

        monkeypatch.setattr(service, "create_appointment", broken)
        monkeypatch.setattr(settings, "ENV", "dev")

        resp = client.post(BASE, json=payload(slot(10)))
        assert resp.status_code == 500
        assert resp.json() == {
            "detail": "A database error occurred while saving the appointment",
            "error": "store_error",
            "details": "disk full",
        }

    def test_details_hidden_outside_dev(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise StoreError("A database error occurred while saving the appointment", details="disk full")

        monkeypatch.setattr(service, "create_appointment", broken)
        monkeypatch.setattr(settings, "ENV", "production")

        resp = client.post(BASE, json=payload(slot(10)))
        assert resp.status_code == 500
        assert resp.json() == {
            "detail": "A database error occurred while saving the appointment",
            "error": "store_error",
        }

    def test_unhandled_database_error_on_read(self, client, monkeypatch):
        def broken(db):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(service, "list_appointments", broken)
        monkeypatch.setattr(settings, "ENV", "production")

        resp = client.get(BASE)
        assert resp.status_code == 500
        assert resp.json() == {
            "detail": "A database error occurred while processing your request",
            "error": "store_error",
        }
