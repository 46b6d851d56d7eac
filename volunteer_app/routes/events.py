import logging

from fastapi import APIRouter, Depends
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from volunteer_app.core.results import StateCode, coerce_id, dump_rows, is_missing
from volunteer_app.db.session import get_db
from volunteer_app.models.association import Association as AssociationModel
from volunteer_app.models.event import Event as EventModel
from volunteer_app.models.interest import EventInterest, Interest as InterestModel
from volunteer_app.models.participation import EventAssociation, VolunteerEvent
from volunteer_app.models.volunteer import Volunteer as VolunteerModel
from volunteer_app.schemas.association import AssociationRead
from volunteer_app.schemas.event import (
    EventFields,
    EventRequest,
    NewEventFields,
    ParticipantCountRequest,
    PublishEventRequest,
    RemoveVolunteerRequest,
    UpdateEventRequest,
)
from volunteer_app.schemas.volunteer import VolunteerRead
from volunteer_app.services.auth import AuthStatus, authorize
from volunteer_app.services.sessions import PrincipalRole, SessionStore, get_session_store

router = APIRouter(prefix="/API", tags=["Events"])
logger = logging.getLogger("volunteer_app.routes.events")


class PublishEventOutcome(StateCode):
    CREATED = (0, 201, "Event created successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "User not logged in")
    NOT_ASSOCIATION = (3, 403, "Insufficient permissions")
    MISSING_FIELDS = (4, 400, "Missing required fields")
    INVALID_FIELDS = (5, 400, "Invalid field values")


class UpdateEventOutcome(StateCode):
    UPDATED = (0, 200, "Event details updated successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_ASSOCIATION = (2, 403, "Not logged in as an association")
    INVALID_ID = (3, 400, "Invalid event ID")
    NOT_OWNER = (4, 403, "Association does not own this event")
    NOTHING_TO_UPDATE = (5, 400, "No event found or no changes made")
    INVALID_FIELDS = (6, 400, "Fields cannot be updated")


class JoinEventOutcome(StateCode):
    JOINED = (0, 200, "Volunteer added to the event successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_VOLUNTEER = (3, 403, "Insufficient permissions")
    MISSING_ID = (4, 400, "Missing event ID")
    INVALID_ID = (5, 400, "Invalid event ID")
    ALREADY_JOINED = (6, 400, "Volunteer already registered for this event")
    NO_SUCH_EVENT = (7, 404, "Event does not exist")
    EVENT_FULL = (8, 400, "Event has reached its maximum capacity")


class RemoveVolunteerOutcome(StateCode):
    REMOVED = (0, 200, "Volunteer removed from the event successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    INVALID_INPUT = (3, 400, "Invalid input")
    NOT_ENROLLED = (3, 400, "Invalid input: the volunteer is not registered for this event")
    INVALID_VOLUNTEER_ID = (3, 400, "Invalid input: missing or invalid volunteer_id")
    NO_SUCH_EVENT = (3, 400, "Invalid input: the event does not exist")
    NOT_OWNER = (4, 403, "The event does not belong to the association")


class ParticipantsOutcome(StateCode):
    FOUND = (0, 200, "Participants retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_ASSOCIATION = (2, 403, "Not logged in as an association")
    INVALID_ID = (3, 400, "Missing or invalid event ID")
    NO_SUCH_EVENT = (3, 400, "Invalid event ID")
    NOT_INVOLVED = (4, 403, "The association is neither the creator nor a participant of the event")
    NONE_FOUND = (5, 404, "No participants found for this event")


class ParticipantCountOutcome(StateCode):
    COUNTED = (0, 200, "Number of participants retrieved successfully")
    MISSING_ID = (1, 400, "Missing event ID")
    INVALID_ID = (2, 400, "Invalid event ID")
    INTERNAL_ERROR = (3, 500, "Internal server error")


class EventAssociationsOutcome(StateCode):
    FOUND = (0, 200, "Participating associations retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    INVALID_ID = (3, 400, "Invalid event ID")
    NONE_FOUND = (4, 404, "No participating associations found for this event")


def _validation_details(exc: ValidationError) -> list:
    return [{"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]} for err in exc.errors()]


@router.post("/publishEvent")
def publish_event(
    payload: PublishEventRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    required = (payload.identifier, payload.name, payload.description, payload.location, payload.date)
    if any(is_missing(v) for v in required) or payload.is_private is None:
        return PublishEventOutcome.MISSING_FIELDS.respond()

    auth = authorize(store, payload.identifier, PrincipalRole.association)
    if auth.status is AuthStatus.unauthenticated:
        return PublishEventOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return PublishEventOutcome.NOT_ASSOCIATION.respond()

    try:
        fields = NewEventFields.model_validate(
            payload.model_dump(exclude={"identifier", "interest_ids"}, exclude_none=True)
        )
    except ValidationError as exc:
        return PublishEventOutcome.INVALID_FIELDS.respond(details=_validation_details(exc))

    interest_ids = [coerce_id(i) for i in (payload.interest_ids or [])]
    if any(i is None for i in interest_ids):
        return PublishEventOutcome.INVALID_FIELDS.respond(details=[{"field": "interest_ids", "error": "ids must be integers"}])
    interest_ids = sorted(set(interest_ids))

    try:
        if interest_ids:
            known = {i for (i,) in db.query(InterestModel.id).filter(InterestModel.id.in_(interest_ids)).all()}
            unknown = [i for i in interest_ids if i not in known]
            if unknown:
                return PublishEventOutcome.INVALID_FIELDS.respond(
                    details=[{"field": "interest_ids", "error": f"unknown interests: {unknown}"}]
                )
        event = EventModel(**fields.model_dump(), creator_id=auth.principal_id)
        db.add(event)
        db.flush()
        for interest_id in interest_ids:
            db.add(EventInterest(event_id=event.id, interest_id=interest_id))
        db.commit()
        db.refresh(event)
    except Exception as e:
        db.rollback()
        logger.exception("publishEvent failed")
        return PublishEventOutcome.INTERNAL_ERROR.respond(details=str(e))
    logger.info(f"Association {auth.principal_id} published event {event.id}")
    return PublishEventOutcome.CREATED.respond(event_id=event.id)


@router.post("/updateEvent")
def update_event(
    payload: UpdateEventRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Update an event owned by the calling association.

    ``fields_to_update`` may only name columns listed on ``EventFields``.
    """
    event_id = coerce_id(payload.event_id)
    if is_missing(payload.identifier) or event_id is None:
        return UpdateEventOutcome.INVALID_ID.respond()

    auth = authorize(store, payload.identifier, PrincipalRole.association)
    if auth.status is AuthStatus.unauthenticated:
        return UpdateEventOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return UpdateEventOutcome.NOT_ASSOCIATION.respond()

    if not isinstance(payload.fields_to_update, dict) or not payload.fields_to_update:
        return UpdateEventOutcome.NOTHING_TO_UPDATE.respond()

    try:
        event = db.query(EventModel).filter(EventModel.id == event_id).first()
    except Exception as e:
        logger.exception("updateEvent failed")
        return UpdateEventOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not event:
        return UpdateEventOutcome.INVALID_ID.respond()
    if event.creator_id != auth.principal_id:
        return UpdateEventOutcome.NOT_OWNER.respond()

    try:
        fields = EventFields.model_validate(payload.fields_to_update)
    except ValidationError as exc:
        return UpdateEventOutcome.INVALID_FIELDS.respond(details=_validation_details(exc))

    try:
        for column, value in fields.model_dump(exclude_unset=True).items():
            setattr(event, column, value)
        db.add(event)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("updateEvent failed")
        return UpdateEventOutcome.INTERNAL_ERROR.respond(details=str(e))
    return UpdateEventOutcome.UPDATED.respond()


@router.post("/joinEvent")
def join_event(
    payload: EventRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, payload.identifier, PrincipalRole.volunteer)
    if auth.status is AuthStatus.unauthenticated:
        return JoinEventOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return JoinEventOutcome.NOT_VOLUNTEER.respond()

    if payload.event_id is None:
        return JoinEventOutcome.MISSING_ID.respond()
    event_id = coerce_id(payload.event_id)
    if event_id is None:
        return JoinEventOutcome.INVALID_ID.respond()

    try:
        event = db.query(EventModel).filter(EventModel.id == event_id).first()
        if not event:
            return JoinEventOutcome.NO_SUCH_EVENT.respond()
        already = (
            db.query(VolunteerEvent)
            .filter(VolunteerEvent.event_id == event_id, VolunteerEvent.volunteer_id == auth.principal_id)
            .first()
        )
        if already:
            return JoinEventOutcome.ALREADY_JOINED.respond()
        if event.max_capacity is not None:
            taken = db.query(func.count(VolunteerEvent.volunteer_id)).filter(VolunteerEvent.event_id == event_id).scalar()
            if taken >= event.max_capacity:
                return JoinEventOutcome.EVENT_FULL.respond()
        db.add(VolunteerEvent(volunteer_id=auth.principal_id, event_id=event_id))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("joinEvent failed")
        return JoinEventOutcome.INTERNAL_ERROR.respond(details=str(e))
    return JoinEventOutcome.JOINED.respond()


@router.post("/removeVolunteerFromEvent")
def remove_volunteer_from_event(
    payload: RemoveVolunteerRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Volunteers leave an event themselves; associations remove a volunteer
    from an event they created."""
    event_id = coerce_id(payload.event_id)
    if is_missing(payload.identifier) or event_id is None:
        return RemoveVolunteerOutcome.INVALID_INPUT.respond()

    auth = authorize(store, payload.identifier)
    if not auth.ok:
        return RemoveVolunteerOutcome.NOT_LOGGED_IN.respond()

    try:
        if auth.role is PrincipalRole.volunteer:
            deleted = (
                db.query(VolunteerEvent)
                .filter(VolunteerEvent.event_id == event_id, VolunteerEvent.volunteer_id == auth.principal_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                db.rollback()
                return RemoveVolunteerOutcome.NOT_ENROLLED.respond()
            db.commit()
            return RemoveVolunteerOutcome.REMOVED.respond()

        # a confirmed session is either a volunteer or an association
        volunteer_id = coerce_id(payload.volunteer_id)
        if volunteer_id is None:
            return RemoveVolunteerOutcome.INVALID_VOLUNTEER_ID.respond()
        event = db.query(EventModel).filter(EventModel.id == event_id).first()
        if not event:
            return RemoveVolunteerOutcome.NO_SUCH_EVENT.respond()
        if event.creator_id != auth.principal_id:
            return RemoveVolunteerOutcome.NOT_OWNER.respond()
        deleted = (
            db.query(VolunteerEvent)
            .filter(VolunteerEvent.event_id == event_id, VolunteerEvent.volunteer_id == volunteer_id)
            .delete(synchronize_session=False)
        )
        if not deleted:
            db.rollback()
            return RemoveVolunteerOutcome.NOT_ENROLLED.respond()
        db.commit()
        logger.info(f"Association {auth.principal_id} removed volunteer {volunteer_id} from event {event_id}")
        return RemoveVolunteerOutcome.REMOVED.respond()
    except Exception as e:
        db.rollback()
        logger.exception("removeVolunteerFromEvent failed")
        return RemoveVolunteerOutcome.INTERNAL_ERROR.respond(details=str(e))


@router.post("/getParticipantsOfEvent")
def get_participants_of_event(
    payload: EventRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Volunteers of an event, visible to its creator and participating associations."""
    auth = authorize(store, payload.identifier, PrincipalRole.association)
    if auth.status is AuthStatus.unauthenticated:
        return ParticipantsOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return ParticipantsOutcome.NOT_ASSOCIATION.respond()

    event_id = coerce_id(payload.event_id)
    if event_id is None:
        return ParticipantsOutcome.INVALID_ID.respond()

    try:
        event = db.query(EventModel).filter(EventModel.id == event_id).first()
        if not event:
            return ParticipantsOutcome.NO_SUCH_EVENT.respond()
        if event.creator_id != auth.principal_id:
            involved = (
                db.query(EventAssociation)
                .filter(EventAssociation.event_id == event_id, EventAssociation.association_id == auth.principal_id)
                .first()
            )
            if not involved:
                return ParticipantsOutcome.NOT_INVOLVED.respond()
        rows = (
            db.query(VolunteerModel)
            .join(VolunteerEvent, VolunteerEvent.volunteer_id == VolunteerModel.id)
            .filter(VolunteerEvent.event_id == event_id)
            .order_by(VolunteerModel.last_name.asc(), VolunteerModel.first_name.asc())
            .all()
        )
    except Exception as e:
        logger.exception("getParticipantsOfEvent failed")
        return ParticipantsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return ParticipantsOutcome.NONE_FOUND.respond()
    return ParticipantsOutcome.FOUND.respond(participants=dump_rows(VolunteerRead, rows))


@router.post("/getNumberOfParticipants")
def get_number_of_participants(payload: ParticipantCountRequest, db: Session = Depends(get_db)):
    if payload.event_id is None:
        return ParticipantCountOutcome.MISSING_ID.respond()
    event_id = coerce_id(payload.event_id)
    if event_id is None:
        return ParticipantCountOutcome.INVALID_ID.respond()

    try:
        count = db.query(func.count(VolunteerEvent.volunteer_id)).filter(VolunteerEvent.event_id == event_id).scalar()
    except Exception as e:
        logger.exception("getNumberOfParticipants failed")
        return ParticipantCountOutcome.INTERNAL_ERROR.respond(details=str(e))
    return ParticipantCountOutcome.COUNTED.respond(num_participants=count or 0)


@router.post("/getAssociationsOfEvent")
def get_associations_of_event(
    payload: EventRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, payload.identifier)
    if not auth.ok:
        return EventAssociationsOutcome.NOT_LOGGED_IN.respond()

    event_id = coerce_id(payload.event_id)
    if event_id is None:
        return EventAssociationsOutcome.INVALID_ID.respond()

    try:
        rows = (
            db.query(AssociationModel)
            .join(EventAssociation, EventAssociation.association_id == AssociationModel.id)
            .filter(EventAssociation.event_id == event_id)
            .order_by(AssociationModel.name.asc())
            .all()
        )
    except Exception as e:
        logger.exception("getAssociationsOfEvent failed")
        return EventAssociationsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return EventAssociationsOutcome.NONE_FOUND.respond()
    return EventAssociationsOutcome.FOUND.respond(associations=dump_rows(AssociationRead, rows))
