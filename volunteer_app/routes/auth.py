import datetime
import logging
import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from volunteer_app.core.config import settings
from volunteer_app.core.results import StateCode, is_missing
from volunteer_app.db.session import get_db
from volunteer_app.models.association import Association as AssociationModel
from volunteer_app.models.volunteer import Volunteer as VolunteerModel
from volunteer_app.schemas.auth import LoginRequest
from volunteer_app.schemas.volunteer import VolunteerCreate
from volunteer_app.services import auth as auth_service
from volunteer_app.services.auth import LoginOutcome
from volunteer_app.services.sessions import SessionStore, get_session_store
from volunteer_app.utils.email import send_confirmation_email_sync

router = APIRouter(prefix="/API", tags=["Auth"])
logger = logging.getLogger("volunteer_app.routes.auth")

# at least 8 chars with an uppercase, a lowercase, a digit and a special character
PASSWORD_RE = re.compile(r"^(?=.*[A-Z])(?=.*[a-z])(?=.*\d)(?=.*[@$!%*?&#])[A-Za-z\d@$!%*?&#]{8,}$")
MINIMUM_AGE = 18


class RegisterOutcome(StateCode):
    REGISTERED = (0, 201, "Volunteer registration successful")
    MISSING_PARAMETERS = (1, 400, "Missing parameters")
    INVALID_DATE_OF_BIRTH = (1, 400, "Invalid date of birth")
    WEAK_PASSWORD = (2, 400, "Password must be at least 8 characters long and contain an uppercase, lowercase, digit, and special character")
    UNDERAGE = (3, 400, "Volunteer must be at least 18 years old")
    INTERNAL_ERROR = (4, 500, "Error registering volunteer")
    INVALID_EMAIL = (5, 400, "Invalid email address")
    EMAIL_TAKEN = (6, 400, "Email already registered")


class LogoutOutcome(StateCode):
    LOGGED_OUT = (0, 200, "Logout successful")
    MISSING_IDENTIFIER = (1, 400, "Missing identifier")


def _parse_birth_date(raw: str) -> Optional[datetime.date]:
    try:
        return datetime.date.fromisoformat(raw.strip()[:10])
    except ValueError:
        return None


def age_on(birth: datetime.date, today: datetime.date) -> int:
    return today.year - birth.year - ((today.month, today.day) < (birth.month, birth.day))


@router.post("/registerVolunteer")
def register_volunteer(payload: VolunteerCreate, db: Session = Depends(get_db)):
    required = (payload.first_name, payload.last_name, payload.email, payload.phone, payload.password, payload.date_of_birth)
    if any(is_missing(v) for v in required):
        return RegisterOutcome.MISSING_PARAMETERS.respond()

    email = payload.email.strip()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return RegisterOutcome.INVALID_EMAIL.respond()

    if not PASSWORD_RE.match(payload.password):
        return RegisterOutcome.WEAK_PASSWORD.respond()

    birth = _parse_birth_date(payload.date_of_birth)
    if birth is None:
        return RegisterOutcome.INVALID_DATE_OF_BIRTH.respond()
    if age_on(birth, datetime.date.today()) < MINIMUM_AGE:
        return RegisterOutcome.UNDERAGE.respond()

    try:
        # an email identifies a single session, so it may not exist under either role
        taken = (
            db.query(VolunteerModel.id).filter(VolunteerModel.email == email).first()
            or db.query(AssociationModel.id).filter(AssociationModel.email == email).first()
        )
        if taken:
            return RegisterOutcome.EMAIL_TAKEN.respond()
        volunteer = VolunteerModel(
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            email=email,
            phone=payload.phone.strip(),
            password_hash=auth_service.get_password_hash(payload.password),
            date_of_birth=birth,
        )
        db.add(volunteer)
        db.commit()
        db.refresh(volunteer)
    except Exception as e:
        db.rollback()
        logger.exception("Volunteer registration failed")
        return RegisterOutcome.INTERNAL_ERROR.respond(details=str(e))
    logger.info(f"Registered volunteer {volunteer.id}")
    return RegisterOutcome.REGISTERED.respond(volunteer_id=volunteer.id)


@router.post("/login")
def login(
    payload: LoginRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
):
    """Two-step login.

    Send ``identifier`` + ``password`` to receive a confirmation code by email
    (state 0), then ``identifier`` + ``code`` to complete the login (state -1).
    """
    try:
        result = auth_service.login(db, store, payload.identifier, payload.password, payload.code)
    except Exception as e:
        db.rollback()
        logger.exception("Login failed")
        return LoginOutcome.INTERNAL_ERROR.respond(details=str(e))

    if result.code:
        background_tasks.add_task(
            send_confirmation_email_sync,
            payload.identifier,
            result.code,
            int(settings.CONFIRMATION_CODE_TTL_SECONDS),
        )
    return result.outcome.respond()


@router.get("/logout")
def logout(identifier: Optional[str] = None, store: SessionStore = Depends(get_session_store)):
    if is_missing(identifier):
        return LogoutOutcome.MISSING_IDENTIFIER.respond()
    # deleting an absent session is not an error
    store.delete(identifier)
    return LogoutOutcome.LOGGED_OUT.respond()
