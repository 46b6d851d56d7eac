import datetime

import pytest

from volunteer_app.core.timezone_utils import utcnow
from volunteer_app.db.session import SessionLocal
from volunteer_app.models.event import Event
from volunteer_app.models.interest import EventInterest
from volunteer_app.models.participation import EventAssociation, VolunteerEvent

VOLUNTEER = "ada@example.com"
ASSOCIATION = "org@example.com"


@pytest.fixture
def volunteer_id(make_volunteer, login_as):
    vid = make_volunteer(email=VOLUNTEER)
    login_as(VOLUNTEER)
    return vid


@pytest.fixture
def association_id(make_association, login_as):
    aid = make_association(email=ASSOCIATION)
    login_as(ASSOCIATION)
    return aid


def _publish_body(**overrides):
    body = {
        "identifier": ASSOCIATION,
        "name": "Park restoration",
        "description": "Plant trees in the north park",
        "location": "Parco Nord, Milano",
        "date": (utcnow() + datetime.timedelta(days=30)).replace(microsecond=0).isoformat(),
        "is_private": False,
        "max_capacity": 20,
    }
    body.update(overrides)
    return body


# --- publishEvent -------------------------------------------------------------

def test_publish_event_with_interests(client, association_id, make_interest):
    green = make_interest("Environment")
    kids = make_interest("Children")

    r = client.post("/API/publishEvent", json=_publish_body(interest_ids=[green, str(kids), green]))

    assert r.status_code == 201
    assert r.json()["state"] == 0
    event_id = r.json()["event_id"]
    with SessionLocal() as db:
        event = db.get(Event, event_id)
        assert event.creator_id == association_id
        assert event.max_capacity == 20
        linked = {row.interest_id for row in db.query(EventInterest).filter(EventInterest.event_id == event_id)}
    assert linked == {green, kids}


def test_publish_event_missing_fields(client, association_id):
    body = _publish_body()
    del body["location"]

    r = client.post("/API/publishEvent", json=body)

    assert r.json()["state"] == 4


def test_publish_event_requires_login(client, make_association):
    make_association(email=ASSOCIATION)

    assert client.post("/API/publishEvent", json=_publish_body()).json()["state"] == 2


def test_publish_event_rejects_volunteers(client, volunteer_id):
    r = client.post("/API/publishEvent", json=_publish_body(identifier=VOLUNTEER))

    assert r.status_code == 403
    assert r.json()["state"] == 3


@pytest.mark.parametrize(
    "overrides",
    [
        {"date": "next tuesday"},
        {"max_capacity": 0},
        {"interest_ids": ["abc"]},
        {"interest_ids": [999]},
    ],
)
def test_publish_event_invalid_values(client, association_id, overrides):
    r = client.post("/API/publishEvent", json=_publish_body(**overrides))

    assert r.json()["state"] == 5


# --- updateEvent --------------------------------------------------------------

def test_update_event_changes_allowed_columns(client, association_id, make_event):
    event_id = make_event(association_id, name="Old name")

    r = client.post(
        "/API/updateEvent",
        json={"identifier": ASSOCIATION, "event_id": event_id, "fields_to_update": {"name": "New name", "max_capacity": 5}},
    )

    assert r.json()["state"] == 0
    with SessionLocal() as db:
        event = db.get(Event, event_id)
        assert event.name == "New name"
        assert event.max_capacity == 5


def test_update_event_rejects_unknown_columns(client, association_id, make_event):
    event_id = make_event(association_id, name="Old name")

    r = client.post(
        "/API/updateEvent",
        json={"identifier": ASSOCIATION, "event_id": event_id, "fields_to_update": {"creator_id": 99, "name": "x"}},
    )

    assert r.json()["state"] == 6
    assert any(d["field"] == "creator_id" for d in r.json()["details"])
    with SessionLocal() as db:
        event = db.get(Event, event_id)
        assert event.creator_id == association_id
        assert event.name == "Old name"


def test_update_event_rejects_null_required_column(client, association_id, make_event):
    event_id = make_event(association_id)

    r = client.post(
        "/API/updateEvent",
        json={"identifier": ASSOCIATION, "event_id": event_id, "fields_to_update": {"name": None}},
    )

    assert r.json()["state"] == 6


@pytest.mark.parametrize("fields", [{}, [], "name=x", None])
def test_update_event_nothing_to_update(client, association_id, make_event, fields):
    event_id = make_event(association_id)

    r = client.post("/API/updateEvent", json={"identifier": ASSOCIATION, "event_id": event_id, "fields_to_update": fields})

    assert r.json()["state"] == 5


def test_update_event_owned_by_another_association(client, association_id, make_association, make_event):
    other = make_association(email="other@example.com", name="Other")
    event_id = make_event(other)

    r = client.post(
        "/API/updateEvent",
        json={"identifier": ASSOCIATION, "event_id": event_id, "fields_to_update": {"name": "Mine now"}},
    )

    assert r.status_code == 403
    assert r.json()["state"] == 4


def test_update_event_unknown_or_invalid_id(client, association_id):
    body = {"identifier": ASSOCIATION, "fields_to_update": {"name": "x"}}

    assert client.post("/API/updateEvent", json={**body, "event_id": "abc"}).json()["state"] == 3
    assert client.post("/API/updateEvent", json={**body, "event_id": 404}).json()["state"] == 3


# --- joinEvent ----------------------------------------------------------------

def test_join_event_then_duplicate(client, volunteer_id, make_association, make_event):
    event_id = make_event(make_association())

    first = client.post("/API/joinEvent", json={"identifier": VOLUNTEER, "event_id": event_id})
    second = client.post("/API/joinEvent", json={"identifier": VOLUNTEER, "event_id": str(event_id)})

    assert first.json()["state"] == 0
    assert second.json()["state"] == 6
    with SessionLocal() as db:
        assert db.query(VolunteerEvent).filter(VolunteerEvent.event_id == event_id).count() == 1


def test_join_full_event(client, volunteer_id, make_volunteer, make_association, make_event, link):
    event_id = make_event(make_association(), max_capacity=1)
    other = make_volunteer(email="bob@example.com")
    link(VolunteerEvent, volunteer_id=other, event_id=event_id)

    r = client.post("/API/joinEvent", json={"identifier": VOLUNTEER, "event_id": event_id})

    assert r.json()["state"] == 8


def test_join_event_input_errors(client, volunteer_id):
    assert client.post("/API/joinEvent", json={"identifier": VOLUNTEER}).json()["state"] == 4
    assert client.post("/API/joinEvent", json={"identifier": VOLUNTEER, "event_id": "x"}).json()["state"] == 5
    r = client.post("/API/joinEvent", json={"identifier": VOLUNTEER, "event_id": 12345})
    assert r.status_code == 404
    assert r.json()["state"] == 7


def test_join_event_auth_errors(client, association_id, make_event):
    event_id = make_event(association_id)

    assert client.post("/API/joinEvent", json={"event_id": event_id}).json()["state"] == 2
    assert client.post("/API/joinEvent", json={"identifier": ASSOCIATION, "event_id": event_id}).json()["state"] == 3


# --- removeVolunteerFromEvent -------------------------------------------------

def test_volunteer_leaves_event(client, volunteer_id, make_association, make_event, link):
    event_id = make_event(make_association())
    link(VolunteerEvent, volunteer_id=volunteer_id, event_id=event_id)

    r = client.post("/API/removeVolunteerFromEvent", json={"identifier": VOLUNTEER, "event_id": event_id})
    again = client.post("/API/removeVolunteerFromEvent", json={"identifier": VOLUNTEER, "event_id": event_id})

    assert r.json()["state"] == 0
    assert again.json()["state"] == 3


def test_association_removes_volunteer_from_own_event(client, association_id, make_volunteer, make_event, link):
    vid = make_volunteer(email="bob@example.com")
    event_id = make_event(association_id)
    link(VolunteerEvent, volunteer_id=vid, event_id=event_id)

    missing = client.post("/API/removeVolunteerFromEvent", json={"identifier": ASSOCIATION, "event_id": event_id})
    r = client.post(
        "/API/removeVolunteerFromEvent",
        json={"identifier": ASSOCIATION, "event_id": event_id, "volunteer_id": vid},
    )

    assert missing.json()["state"] == 3
    assert r.json()["state"] == 0
    with SessionLocal() as db:
        assert db.query(VolunteerEvent).count() == 0


def test_association_cannot_remove_from_foreign_event(client, association_id, make_association, make_volunteer, make_event, link):
    vid = make_volunteer(email="bob@example.com")
    event_id = make_event(make_association(email="other@example.com", name="Other"))
    link(VolunteerEvent, volunteer_id=vid, event_id=event_id)

    r = client.post(
        "/API/removeVolunteerFromEvent",
        json={"identifier": ASSOCIATION, "event_id": event_id, "volunteer_id": vid},
    )

    assert r.status_code == 403
    assert r.json()["state"] == 4


def test_remove_requires_login(client):
    r = client.post("/API/removeVolunteerFromEvent", json={"identifier": VOLUNTEER, "event_id": 1})

    assert r.json()["state"] == 2


# --- participants -------------------------------------------------------------

def test_participants_visible_to_creator_without_passwords(client, association_id, make_volunteer, make_event, link):
    event_id = make_event(association_id)
    link(VolunteerEvent, volunteer_id=make_volunteer(email="bob@example.com", first_name="Bob"), event_id=event_id)

    r = client.post("/API/getParticipantsOfEvent", json={"identifier": ASSOCIATION, "event_id": event_id})

    assert r.json()["state"] == 0
    participants = r.json()["participants"]
    assert [p["first_name"] for p in participants] == ["Bob"]
    assert "password_hash" not in participants[0]


def test_participants_visible_to_participating_association(client, association_id, make_association, make_volunteer, make_event, link):
    event_id = make_event(make_association(email="other@example.com", name="Other"))
    link(EventAssociation, event_id=event_id, association_id=association_id)
    link(VolunteerEvent, volunteer_id=make_volunteer(email="bob@example.com"), event_id=event_id)

    r = client.post("/API/getParticipantsOfEvent", json={"identifier": ASSOCIATION, "event_id": event_id})

    assert r.json()["state"] == 0


def test_participants_hidden_from_uninvolved_association(client, association_id, make_association, make_event):
    event_id = make_event(make_association(email="other@example.com", name="Other"))

    r = client.post("/API/getParticipantsOfEvent", json={"identifier": ASSOCIATION, "event_id": event_id})

    assert r.status_code == 403
    assert r.json()["state"] == 4


def test_participants_none_found(client, association_id, make_event):
    event_id = make_event(association_id)

    r = client.post("/API/getParticipantsOfEvent", json={"identifier": ASSOCIATION, "event_id": event_id})

    assert r.status_code == 404
    assert r.json()["state"] == 5


def test_number_of_participants_is_public(client, make_volunteer, make_association, make_event, link):
    event_id = make_event(make_association())
    link(VolunteerEvent, volunteer_id=make_volunteer(email="a@example.com"), event_id=event_id)
    link(VolunteerEvent, volunteer_id=make_volunteer(email="b@example.com"), event_id=event_id)

    r = client.post("/API/getNumberOfParticipants", json={"event_id": event_id})

    assert r.json() == {"state": 0, "message": "Number of participants retrieved successfully", "num_participants": 2}


def test_number_of_participants_input_errors(client):
    assert client.post("/API/getNumberOfParticipants", json={}).json()["state"] == 1
    assert client.post("/API/getNumberOfParticipants", json={"event_id": "abc"}).json()["state"] == 2


def test_associations_of_event(client, volunteer_id, make_association, make_event, link):
    creator = make_association(email="creator@example.com", name="Creator")
    helper = make_association(email="helper@example.com", name="Helper")
    event_id = make_event(creator)
    link(EventAssociation, event_id=event_id, association_id=helper)

    r = client.post("/API/getAssociationsOfEvent", json={"identifier": VOLUNTEER, "event_id": event_id})

    assert r.json()["state"] == 0
    assert [a["name"] for a in r.json()["associations"]] == ["Helper"]
    assert "password_hash" not in r.json()["associations"][0]
