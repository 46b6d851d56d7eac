import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from volunteer_app.core.results import StateCode, coerce_id, dump_rows
from volunteer_app.db.session import get_db
from volunteer_app.models.interest import EventInterest, Interest as InterestModel
from volunteer_app.schemas.event import EventRequest
from volunteer_app.schemas.interest import InterestRead
from volunteer_app.services.auth import authorize
from volunteer_app.services.sessions import SessionStore, get_session_store

router = APIRouter(prefix="/API", tags=["Interests"])
logger = logging.getLogger("volunteer_app.routes.interests")


class InterestListOutcome(StateCode):
    FOUND = (0, 200, "Results retrieved successfully")
    NONE_FOUND = (1, 404, "No results found for the query")
    INTERNAL_ERROR = (1, 500, "Internal server error")


class EventInterestsOutcome(StateCode):
    FOUND = (0, 200, "Interests retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    INVALID_ID = (3, 400, "Invalid event ID")
    NONE_FOUND = (4, 404, "No interests found for this event")


# public: the catalogue is shown on the registration form
@router.get("/getInterestList")
def get_interest_list(db: Session = Depends(get_db)):
    try:
        rows = db.query(InterestModel).order_by(InterestModel.name.asc()).all()
    except Exception as e:
        logger.exception("getInterestList failed")
        return InterestListOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return InterestListOutcome.NONE_FOUND.respond()
    return InterestListOutcome.FOUND.respond(data=dump_rows(InterestRead, rows))


@router.post("/getInterestsOfEvent")
def get_interests_of_event(
    payload: EventRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, payload.identifier)
    if not auth.ok:
        return EventInterestsOutcome.NOT_LOGGED_IN.respond()

    event_id = coerce_id(payload.event_id)
    if event_id is None:
        return EventInterestsOutcome.INVALID_ID.respond()

    try:
        rows = (
            db.query(InterestModel)
            .join(EventInterest, EventInterest.interest_id == InterestModel.id)
            .filter(EventInterest.event_id == event_id)
            .order_by(InterestModel.name.asc())
            .all()
        )
    except Exception as e:
        logger.exception("getInterestsOfEvent failed")
        return EventInterestsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return EventInterestsOutcome.NONE_FOUND.respond()
    return EventInterestsOutcome.FOUND.respond(interests=dump_rows(InterestRead, rows))
