"""Pytest fixtures — file-backed SQLite database, fresh for each test."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from reservation_portal.database import Base, get_db
from reservation_portal.main import app
from reservation_portal.services.calendar_service import slot_interval

# Import all models so they register with Base.metadata
from reservation_portal.models.user import User                      # noqa: F401
from reservation_portal.models.room import Room                      # noqa: F401
from reservation_portal.models.reservation import Reservation        # noqa: F401
from reservation_portal.models.email_log import EmailLog             # noqa: F401
from reservation_portal.models.integration import IntegrationConnection  # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session bound to the test engine."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers: create entities via the API, return the JSON response dict
# ---------------------------------------------------------------------------
def future_day(days: int = 7) -> date:
    """A day safely in the future so no slot counts as past."""
    return date.today() + timedelta(days=days)


def slot(day: date, hour: int, hours: int = 1) -> tuple[str, str]:
    """ISO start/end of ``hours`` consecutive hourly slots starting at ``hour``."""
    start, _ = slot_interval(day, hour)
    _, end = slot_interval(day, hour + hours - 1)
    return start.isoformat(), end.isoformat()


def create_test_user(client: TestClient, name: str = "Test User", role: str = "applicant",
                     email: str | None = "user@example.com") -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={
        "display_name": name,
        "email": email,
        "role": role,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_room(client: TestClient, name: str = "Room A", capacity: int = 4) -> dict:
    """Helper — POST /api/rooms and return response JSON."""
    resp = client.post("/api/rooms/", json={
        "name": name,
        "capacity": capacity,
        "facilities": ["Monitor", "Whiteboard"],
        "floor": "10F",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


def book(client: TestClient, user_id: str, room_id: str, day: date, hour: int, hours: int = 1,
         purpose: str = "Team sync", participants: int = 2, visitors: list | None = None):
    """Helper — POST /api/reservations for whole hourly slots; returns the raw response."""
    start, end = slot(day, hour, hours)
    payload = {
        "room_id": room_id,
        "user_id": user_id,
        "start_time": start,
        "end_time": end,
        "purpose": purpose,
        "participants": participants,
    }
    if visitors is not None:
        payload["external_visitors"] = visitors
    return client.post("/api/reservations/", json=payload)


def approved_reservation(client: TestClient, user_id: str, room_id: str, day: date, hour: int,
                         **kwargs) -> dict:
    """Helper — book and approve, returning the approved reservation JSON."""
    resp = book(client, user_id, room_id, day, hour, **kwargs)
    assert resp.status_code == 201, resp.text
    approved = client.post(f"/api/reservations/{resp.json()['reservation_id']}/approve")
    assert approved.status_code == 200, approved.text
    return approved.json()
