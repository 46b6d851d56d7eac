import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from volunteer_app.core.results import StateCode, coerce_id, dump_rows
from volunteer_app.core.timezone_utils import utcnow
from volunteer_app.db.session import get_db
from volunteer_app.models.event import Event as EventModel
from volunteer_app.models.interest import Interest as InterestModel, VolunteerInterest
from volunteer_app.models.participation import VolunteerEvent
from volunteer_app.models.volunteer import Volunteer as VolunteerModel
from volunteer_app.schemas.event import EventRead
from volunteer_app.schemas.interest import InterestRead
from volunteer_app.schemas.volunteer import VolunteerDetailsRequest, VolunteerProfileUpdate, VolunteerRead
from volunteer_app.services import auth as auth_service
from volunteer_app.services.auth import AuthStatus, authorize
from volunteer_app.services.sessions import PrincipalRole, SessionStore, get_session_store

router = APIRouter(prefix="/API", tags=["Volunteers"])
logger = logging.getLogger("volunteer_app.routes.volunteers")


class VolunteerDetailsOutcome(StateCode):
    FOUND = (0, 200, "Volunteer details retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_VOLUNTEER = (2, 403, "Not logged in as a volunteer")
    INVALID_ID = (3, 400, "Volunteer not found")
    NOT_FOUND = (3, 404, "Volunteer not found")


class VolunteerProfileOutcome(StateCode):
    UPDATED = (0, 200, "Volunteer profile updated successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_VOLUNTEER = (2, 403, "Not logged in as a volunteer")
    NOTHING_TO_UPDATE = (3, 400, "No fields to update")
    NOT_FOUND = (4, 404, "No volunteer found or no changes made")


class VolunteerEventsOutcome(StateCode):
    FOUND = (0, 200, "Events retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_VOLUNTEER = (3, 403, "Not authorized as a volunteer")
    NONE_FOUND = (4, 404, "No events found for this volunteer")


class AvailableEventsOutcome(StateCode):
    FOUND = (0, 200, "Available events retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_VOLUNTEER = (2, 403, "Not logged in as a volunteer")
    NONE_FOUND = (3, 404, "No available events found")


class VolunteerInterestsOutcome(StateCode):
    FOUND = (0, 200, "Interests retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_VOLUNTEER = (2, 403, "Not logged in as a volunteer")
    NONE_FOUND = (3, 404, "No interests found for this volunteer")


@router.post("/fetchVolunteerDetails")
def fetch_volunteer_details(
    payload: VolunteerDetailsRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, payload.identifier, PrincipalRole.volunteer)
    if auth.status is AuthStatus.unauthenticated:
        return VolunteerDetailsOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return VolunteerDetailsOutcome.NOT_VOLUNTEER.respond()

    volunteer_id = coerce_id(payload.volunteer_id)
    if volunteer_id is None:
        return VolunteerDetailsOutcome.INVALID_ID.respond()

    try:
        volunteer = db.query(VolunteerModel).filter(VolunteerModel.id == volunteer_id).first()
    except Exception as e:
        logger.exception("fetchVolunteerDetails failed")
        return VolunteerDetailsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not volunteer:
        return VolunteerDetailsOutcome.NOT_FOUND.respond()
    return VolunteerDetailsOutcome.FOUND.respond(data=VolunteerRead.model_validate(volunteer).model_dump())


@router.post("/updateVolunteerProfile")
def update_volunteer_profile(
    payload: VolunteerProfileUpdate,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, payload.identifier, PrincipalRole.volunteer)
    if auth.status is AuthStatus.unauthenticated:
        return VolunteerProfileOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return VolunteerProfileOutcome.NOT_VOLUNTEER.respond()

    provided = payload.model_fields_set
    updates = {name: getattr(payload, name) for name in ("photo", "availability") if name in provided}
    if "password" in provided and payload.password:
        updates["password_hash"] = auth_service.get_password_hash(payload.password)
    if not updates:
        return VolunteerProfileOutcome.NOTHING_TO_UPDATE.respond()

    try:
        volunteer = db.query(VolunteerModel).filter(VolunteerModel.id == auth.principal_id).first()
        if not volunteer:
            return VolunteerProfileOutcome.NOT_FOUND.respond()
        for column, value in updates.items():
            setattr(volunteer, column, value)
        db.add(volunteer)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("updateVolunteerProfile failed")
        return VolunteerProfileOutcome.INTERNAL_ERROR.respond(details=str(e))
    return VolunteerProfileOutcome.UPDATED.respond()


@router.get("/getVolunteerEvents")
def get_volunteer_events(
    identifier: Optional[str] = None,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, identifier, PrincipalRole.volunteer)
    if auth.status is AuthStatus.unauthenticated:
        return VolunteerEventsOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return VolunteerEventsOutcome.NOT_VOLUNTEER.respond()

    try:
        rows = (
            db.query(EventModel)
            .join(VolunteerEvent, VolunteerEvent.event_id == EventModel.id)
            .filter(VolunteerEvent.volunteer_id == auth.principal_id)
            .order_by(EventModel.date.asc())
            .all()
        )
    except Exception as e:
        logger.exception("getVolunteerEvents failed")
        return VolunteerEventsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return VolunteerEventsOutcome.NONE_FOUND.respond()
    return VolunteerEventsOutcome.FOUND.respond(events=dump_rows(EventRead, rows))


@router.get("/getAvailableEventsForVolunteer")
def get_available_events_for_volunteer(
    identifier: Optional[str] = None,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Future events the volunteer has not joined yet and that still have room."""
    auth = authorize(store, identifier, PrincipalRole.volunteer)
    if auth.status is AuthStatus.unauthenticated:
        return AvailableEventsOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return AvailableEventsOutcome.NOT_VOLUNTEER.respond()

    joined = select(VolunteerEvent.event_id).where(VolunteerEvent.volunteer_id == auth.principal_id)
    participants = (
        select(func.count(VolunteerEvent.volunteer_id))
        .where(VolunteerEvent.event_id == EventModel.id)
        .correlate(EventModel)
        .scalar_subquery()
    )
    try:
        rows = (
            db.query(EventModel)
            .filter(
                EventModel.date > utcnow(),
                EventModel.id.not_in(joined),
                or_(EventModel.max_capacity.is_(None), participants < EventModel.max_capacity),
            )
            .order_by(EventModel.date.asc())
            .all()
        )
    except Exception as e:
        logger.exception("getAvailableEventsForVolunteer failed")
        return AvailableEventsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return AvailableEventsOutcome.NONE_FOUND.respond()
    return AvailableEventsOutcome.FOUND.respond(data=dump_rows(EventRead, rows))


@router.get("/getInterestsOfVolunteer")
def get_interests_of_volunteer(
    identifier: Optional[str] = None,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, identifier, PrincipalRole.volunteer)
    if auth.status is AuthStatus.unauthenticated:
        return VolunteerInterestsOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return VolunteerInterestsOutcome.NOT_VOLUNTEER.respond()

    try:
        rows = (
            db.query(InterestModel)
            .join(VolunteerInterest, VolunteerInterest.interest_id == InterestModel.id)
            .filter(VolunteerInterest.volunteer_id == auth.principal_id)
            .order_by(InterestModel.name.asc())
            .all()
        )
    except Exception as e:
        logger.exception("getInterestsOfVolunteer failed")
        return VolunteerInterestsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return VolunteerInterestsOutcome.NONE_FOUND.respond()
    return VolunteerInterestsOutcome.FOUND.respond(interests=dump_rows(InterestRead, rows))
