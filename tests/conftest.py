"""
Shared fixtures.

The app is imported against an in-memory SQLite database and with SMTP
unconfigured, so confirmation emails are skipped and tests read the issued
code straight from the session store.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")
for _var in ("SMTP_HOST", "SMTP_USER", "SMTP_PASS"):
    os.environ.pop(_var, None)

import datetime

import pytest
from fastapi.testclient import TestClient

from volunteer_app.core.timezone_utils import utcnow
from volunteer_app.db.session import Base, SessionLocal, create_db, engine
from volunteer_app.main import app
from volunteer_app.models.association import Association
from volunteer_app.models.event import Event
from volunteer_app.models.interest import Interest
from volunteer_app.models.volunteer import Volunteer
from volunteer_app.services.auth import get_password_hash
from volunteer_app.services.sessions import SessionStore, get_session_store

PASSWORD = "CorrectPass1!"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SessionStore(ttl=3600, clock=clock)


@pytest.fixture
def database():
    create_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(database, store):
    app.dependency_overrides[get_session_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _insert(obj):
    with SessionLocal() as db:
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj


@pytest.fixture
def make_volunteer(database):
    def _make(email="vol@example.com", password=PASSWORD, password_hash=None, **fields):
        values = dict(
            first_name="Ada",
            last_name="Rossi",
            phone="+39 333 0000000",
            date_of_birth=datetime.date(1990, 5, 17),
        )
        values.update(fields)
        volunteer = Volunteer(email=email, password_hash=password_hash or get_password_hash(password), **values)
        return _insert(volunteer).id
    return _make


@pytest.fixture
def make_association(database):
    def _make(email="assoc@example.com", password=PASSWORD, name="Green Hands", **fields):
        association = Association(email=email, name=name, password_hash=get_password_hash(password), **fields)
        return _insert(association).id
    return _make


@pytest.fixture
def make_event(database):
    def _make(creator_id, name="Beach clean-up", days_ahead=10, max_capacity=None, **fields):
        event = Event(
            name=name,
            description=fields.pop("description", "Collect litter along the shore"),
            location=fields.pop("location", "Via del Mare 1"),
            date=utcnow() + datetime.timedelta(days=days_ahead),
            max_capacity=max_capacity,
            is_private=fields.pop("is_private", False),
            creator_id=creator_id,
            **fields,
        )
        return _insert(event).id
    return _make


@pytest.fixture
def make_interest(database):
    def _make(name="Environment", description=None):
        return _insert(Interest(name=name, description=description)).id
    return _make


@pytest.fixture
def link(database):
    """Insert join-table rows: link(VolunteerEvent, volunteer_id=1, event_id=2)."""
    def _link(model, **keys):
        _insert(model(**keys))
    return _link


@pytest.fixture
def login_as(client, store):
    def _login(email, password=PASSWORD):
        r = client.post("/API/login", json={"identifier": email, "password": password})
        assert r.json()["state"] == 0, r.text
        code = store.get(email).confirmation_code
        r = client.post("/API/login", json={"identifier": email, "code": code})
        assert r.json()["state"] == -1, r.text
    return _login
