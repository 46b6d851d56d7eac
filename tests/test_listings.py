import pytest

from volunteer_app.models.interest import EventInterest, VolunteerInterest
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


def _names(rows):
    return [row["name"] for row in rows]


# --- volunteer views ----------------------------------------------------------

def test_volunteer_events(client, volunteer_id, make_association, make_event, link):
    creator = make_association()
    joined = make_event(creator, name="Joined", days_ahead=3)
    make_event(creator, name="Not joined")
    link(VolunteerEvent, volunteer_id=volunteer_id, event_id=joined)

    r = client.get("/API/getVolunteerEvents", params={"identifier": VOLUNTEER})

    assert r.json()["state"] == 0
    assert _names(r.json()["events"]) == ["Joined"]


def test_volunteer_events_none_and_role(client, volunteer_id, association_id):
    r = client.get("/API/getVolunteerEvents", params={"identifier": VOLUNTEER})
    assert (r.status_code, r.json()["state"]) == (404, 4)

    r = client.get("/API/getVolunteerEvents", params={"identifier": ASSOCIATION})
    assert (r.status_code, r.json()["state"]) == (403, 3)

    r = client.get("/API/getVolunteerEvents")
    assert (r.status_code, r.json()["state"]) == (401, 2)


def test_available_events_skip_past_joined_and_full(
    client, volunteer_id, make_volunteer, make_association, make_event, link
):
    creator = make_association()
    make_event(creator, name="Past", days_ahead=-2)
    joined = make_event(creator, name="Joined")
    full = make_event(creator, name="Full", max_capacity=1)
    make_event(creator, name="Open late", days_ahead=20, max_capacity=5)
    make_event(creator, name="Open soon", days_ahead=5)
    link(VolunteerEvent, volunteer_id=volunteer_id, event_id=joined)
    link(VolunteerEvent, volunteer_id=make_volunteer(email="bob@example.com"), event_id=full)

    r = client.get("/API/getAvailableEventsForVolunteer", params={"identifier": VOLUNTEER})

    assert r.json()["state"] == 0
    assert _names(r.json()["data"]) == ["Open soon", "Open late"]


def test_available_events_none(client, volunteer_id):
    r = client.get("/API/getAvailableEventsForVolunteer", params={"identifier": VOLUNTEER})

    assert (r.status_code, r.json()["state"]) == (404, 3)


# --- association views --------------------------------------------------------

def test_events_of_association(client, association_id, make_association, make_event):
    make_event(association_id, name="Ours")
    make_event(make_association(email="other@example.com", name="Other"), name="Theirs")

    r = client.post("/API/getEventsOfAssociation", json={"identifier": ASSOCIATION, "association_id": str(association_id)})

    assert r.json()["state"] == 0
    assert _names(r.json()["events"]) == ["Ours"]


def test_events_of_association_id_checks(client, association_id, make_association):
    other = make_association(email="other@example.com", name="Other")

    r = client.post("/API/getEventsOfAssociation", json={"identifier": ASSOCIATION})
    assert r.json()["state"] == 3
    r = client.post("/API/getEventsOfAssociation", json={"identifier": ASSOCIATION, "association_id": "abc"})
    assert r.json()["state"] == 4
    r = client.post("/API/getEventsOfAssociation", json={"identifier": ASSOCIATION, "association_id": other})
    assert r.json()["state"] == 4
    r = client.post("/API/getEventsOfAssociation", json={"identifier": ASSOCIATION, "association_id": association_id})
    assert (r.status_code, r.json()["state"]) == (404, 5)


def test_events_of_association_only_participation(client, association_id, make_association, make_event, link):
    other = make_association(email="other@example.com", name="Other")
    helping = make_event(other, name="Helping")
    make_event(other, name="Not helping")
    own = make_event(association_id, name="Own")
    link(EventAssociation, event_id=helping, association_id=association_id)
    link(EventAssociation, event_id=own, association_id=association_id)

    r = client.post("/API/getEventsOfAssociationOnlyParticipation", json={"identifier": ASSOCIATION})

    assert r.json()["state"] == 0
    assert _names(r.json()["events"]) == ["Helping"]


def test_events_of_association_only_participation_role(client, volunteer_id):
    r = client.post("/API/getEventsOfAssociationOnlyParticipation", json={"identifier": VOLUNTEER})

    assert (r.status_code, r.json()["state"]) == (403, 3)


def test_events_not_participating(client, association_id, make_association, make_event, link):
    other = make_association(email="other@example.com", name="Other")
    make_event(association_id, name="Own")
    helping = make_event(other, name="Helping")
    make_event(other, name="Past", days_ahead=-1)
    make_event(other, name="Candidate")
    link(EventAssociation, event_id=helping, association_id=association_id)

    r = client.get("/API/getEventsNotParticipating", params={"identifier": ASSOCIATION})

    assert r.json()["state"] == 0
    assert _names(r.json()["data"]) == ["Candidate"]


# --- interests ----------------------------------------------------------------

def test_interest_list_is_public_and_sorted(client, make_interest):
    r = client.get("/API/getInterestList")
    assert (r.status_code, r.json()["state"]) == (404, 1)

    make_interest("Sports")
    make_interest("Animals", description="Shelters and sanctuaries")

    r = client.get("/API/getInterestList")
    assert r.json()["state"] == 0
    assert _names(r.json()["data"]) == ["Animals", "Sports"]


def test_interests_of_event(client, volunteer_id, make_association, make_event, make_interest, link):
    event_id = make_event(make_association())
    link(EventInterest, event_id=event_id, interest_id=make_interest("Environment"))

    r = client.post("/API/getInterestsOfEvent", json={"identifier": VOLUNTEER, "event_id": event_id})
    assert r.json()["state"] == 0
    assert _names(r.json()["interests"]) == ["Environment"]

    r = client.post("/API/getInterestsOfEvent", json={"identifier": VOLUNTEER, "event_id": "abc"})
    assert r.json()["state"] == 3
    r = client.post("/API/getInterestsOfEvent", json={"event_id": event_id})
    assert r.json()["state"] == 2


def test_interests_of_volunteer(client, volunteer_id, make_interest, link):
    r = client.get("/API/getInterestsOfVolunteer", params={"identifier": VOLUNTEER})
    assert (r.status_code, r.json()["state"]) == (404, 3)

    link(VolunteerInterest, volunteer_id=volunteer_id, interest_id=make_interest("Elderly care"))

    r = client.get("/API/getInterestsOfVolunteer", params={"identifier": VOLUNTEER})
    assert r.json()["state"] == 0
    assert _names(r.json()["interests"]) == ["Elderly care"]
