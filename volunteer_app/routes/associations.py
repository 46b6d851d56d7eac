import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from volunteer_app.core.results import StateCode, coerce_id, dump_rows, is_missing
from volunteer_app.core.timezone_utils import utcnow
from volunteer_app.db.session import get_db
from volunteer_app.models.association import Association as AssociationModel
from volunteer_app.models.event import Event as EventModel
from volunteer_app.models.participation import EventAssociation
from volunteer_app.schemas.association import AssociationEventsRequest, AssociationProfileUpdate
from volunteer_app.schemas.auth import IdentifiedRequest
from volunteer_app.schemas.event import EventRead
from volunteer_app.services import auth as auth_service
from volunteer_app.services.auth import AuthStatus, authorize
from volunteer_app.services.sessions import PrincipalRole, SessionStore, get_session_store

router = APIRouter(prefix="/API", tags=["Associations"])
logger = logging.getLogger("volunteer_app.routes.associations")


class AssociationProfileOutcome(StateCode):
    UPDATED = (0, 200, "Association profile updated successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_ASSOCIATION = (2, 403, "Not logged in as an association")
    NOTHING_TO_UPDATE = (3, 400, "No fields to update")
    NOT_FOUND = (4, 404, "No association found or no changes made")


class AssociationEventsOutcome(StateCode):
    FOUND = (0, 200, "Events retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_ASSOCIATION = (2, 403, "Not logged in as an association")
    MISSING_ID = (3, 400, "Missing association ID")
    INVALID_ID = (4, 400, "Invalid association ID")
    NONE_FOUND = (5, 404, "No events found for this association")


class ParticipationOnlyOutcome(StateCode):
    FOUND = (0, 200, "Events retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_ASSOCIATION = (3, 403, "Insufficient permissions")
    NONE_FOUND = (4, 404, "No events found for this association")


class NotParticipatingOutcome(StateCode):
    FOUND = (0, 200, "Events retrieved successfully")
    INTERNAL_ERROR = (1, 500, "Internal server error")
    NOT_LOGGED_IN = (2, 401, "Not logged in")
    NOT_ASSOCIATION = (2, 403, "Not logged in as an association")
    NONE_FOUND = (3, 404, "No events found")


@router.post("/updateAssociationProfile")
def update_association_profile(
    payload: AssociationProfileUpdate,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    auth = authorize(store, payload.identifier, PrincipalRole.association)
    if auth.status is AuthStatus.unauthenticated:
        return AssociationProfileOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return AssociationProfileOutcome.NOT_ASSOCIATION.respond()

    provided = payload.model_fields_set
    updates = {name: getattr(payload, name) for name in ("website", "logo", "location") if name in provided}
    if "password" in provided and payload.password:
        updates["password_hash"] = auth_service.get_password_hash(payload.password)
    if not updates:
        return AssociationProfileOutcome.NOTHING_TO_UPDATE.respond()

    try:
        association = db.query(AssociationModel).filter(AssociationModel.id == auth.principal_id).first()
        if not association:
            return AssociationProfileOutcome.NOT_FOUND.respond()
        for column, value in updates.items():
            setattr(association, column, value)
        db.add(association)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("updateAssociationProfile failed")
        return AssociationProfileOutcome.INTERNAL_ERROR.respond(details=str(e))
    return AssociationProfileOutcome.UPDATED.respond()


@router.post("/getEventsOfAssociation")
def get_events_of_association(
    payload: AssociationEventsRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Events created by the calling association.

    The association id in the body must match the one in the caller's session.
    """
    if payload.association_id is None or payload.association_id == "":
        return AssociationEventsOutcome.MISSING_ID.respond()
    association_id = coerce_id(payload.association_id)
    if association_id is None:
        return AssociationEventsOutcome.INVALID_ID.respond()

    if is_missing(payload.identifier):
        return AssociationEventsOutcome.NOT_LOGGED_IN.respond()
    auth = authorize(store, payload.identifier, PrincipalRole.association)
    if auth.status is AuthStatus.unauthenticated:
        return AssociationEventsOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return AssociationEventsOutcome.NOT_ASSOCIATION.respond()
    if association_id != auth.principal_id:
        return AssociationEventsOutcome.INVALID_ID.respond()

    try:
        rows = (
            db.query(EventModel)
            .filter(EventModel.creator_id == auth.principal_id)
            .order_by(EventModel.date.desc())
            .all()
        )
    except Exception as e:
        logger.exception("getEventsOfAssociation failed")
        return AssociationEventsOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return AssociationEventsOutcome.NONE_FOUND.respond()
    return AssociationEventsOutcome.FOUND.respond(events=dump_rows(EventRead, rows))


@router.post("/getEventsOfAssociationOnlyParticipation")
def get_events_of_association_only_participation(
    payload: IdentifiedRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Events the association takes part in but did not create."""
    auth = authorize(store, payload.identifier, PrincipalRole.association)
    if auth.status is AuthStatus.unauthenticated:
        return ParticipationOnlyOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return ParticipationOnlyOutcome.NOT_ASSOCIATION.respond()

    try:
        rows = (
            db.query(EventModel)
            .join(EventAssociation, EventAssociation.event_id == EventModel.id)
            .filter(
                EventAssociation.association_id == auth.principal_id,
                EventModel.creator_id != auth.principal_id,
            )
            .order_by(EventModel.date.desc())
            .all()
        )
    except Exception as e:
        logger.exception("getEventsOfAssociationOnlyParticipation failed")
        return ParticipationOnlyOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return ParticipationOnlyOutcome.NONE_FOUND.respond()
    return ParticipationOnlyOutcome.FOUND.respond(events=dump_rows(EventRead, rows))


@router.get("/getEventsNotParticipating")
def get_events_not_participating(
    identifier: Optional[str] = None,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Future events neither created nor joined by the calling association."""
    auth = authorize(store, identifier, PrincipalRole.association)
    if auth.status is AuthStatus.unauthenticated:
        return NotParticipatingOutcome.NOT_LOGGED_IN.respond()
    if not auth.ok:
        return NotParticipatingOutcome.NOT_ASSOCIATION.respond()

    joined = select(EventAssociation.event_id).where(EventAssociation.association_id == auth.principal_id)
    try:
        rows = (
            db.query(EventModel)
            .filter(
                EventModel.date > utcnow(),
                EventModel.creator_id != auth.principal_id,
                EventModel.id.not_in(joined),
            )
            .order_by(EventModel.date.asc())
            .all()
        )
    except Exception as e:
        logger.exception("getEventsNotParticipating failed")
        return NotParticipatingOutcome.INTERNAL_ERROR.respond(details=str(e))
    if not rows:
        return NotParticipatingOutcome.NONE_FOUND.respond()
    return NotParticipatingOutcome.FOUND.respond(data=dump_rows(EventRead, rows))
