"""
Pytest configuration: every test runs against a throwaway SQLite file.
The environment is set before any scheduling_api import because the engine
is built at import time from settings.
"""
import os
import tempfile
import uuid
from datetime import datetime

_TMP_DIR = tempfile.mkdtemp(prefix="scheduling-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP_DIR, "test.db")
os.environ["ENV"] = "test"
os.environ["DB_INIT_RETRIES"] = "0"

import pytest  # noqa: E402

from scheduling_api import models  # noqa: E402,F401
from scheduling_api import schemas  # noqa: E402
from scheduling_api.database import Base, SessionLocal, engine  # noqa: E402

# Fixed clock for service-level tests: the day before the reference scenario
NOW = datetime(2025, 6, 1, 8, 0)


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def other_db():
    """A second session, standing in for a concurrent request handler."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from scheduling_api.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def booking():
    """Factory for AppointmentCreate payloads."""
    def _make(start_at, doctor_id="D1", **overrides):
        data = {
            "patient_id": uuid.uuid4(),
            "doctor_id": doctor_id,
            "start_at": start_at,
            "type": "Consultation",
            "duration_minutes": 30,
            "notes": None,
        }
        data.update(overrides)
        return schemas.AppointmentCreate(**data)
    return _make


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def full_update():
    """Factory for full-update payloads mirroring a stored record."""
    def _make(appt, **overrides):
        data = {
            "id": appt.id,
            "patient_id": appt.patient_id,
            "doctor_id": appt.doctor_id,
            "start_at": appt.start_at,
            "type": appt.type,
            "duration_minutes": appt.duration_minutes,
            "notes": appt.notes,
        }
        data.update(overrides)
        return schemas.AppointmentUpdate(**data)
    return _make
