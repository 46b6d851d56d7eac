import enum
import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Tuple

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from volunteer_app.core.config import settings
from volunteer_app.core.results import StateCode, is_missing
from volunteer_app.models.association import Association
from volunteer_app.models.volunteer import Volunteer
from volunteer_app.services.sessions import PrincipalRole, SessionRecord, SessionStore

logger = logging.getLogger("volunteer_app.auth")

# New digests use pbkdf2_sha256. Accounts created before the migration hold a
# bare SHA-256 hex digest; those still verify and are rehashed on next login.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "hex_sha256"], deprecated="auto")

CODE_MIN = 100000
CODE_MAX = 999999


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Check a password against a stored digest.

    Returns ``(verified, new_hash)``; ``new_hash`` is set when the stored digest
    uses a deprecated scheme and should be replaced.
    """
    if not hashed_password:
        return False, None
    try:
        return pwd_context.verify_and_update(plain_password, hashed_password)
    except ValueError:
        # digest not recognised by any configured scheme
        logger.warning("Stored password digest has an unknown format")
        return False, None


def generate_confirmation_code() -> str:
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


# --- Authorization guard ----------------------------------------------------

class AuthStatus(enum.Enum):
    ok = "ok"
    unauthenticated = "unauthenticated"
    forbidden_role = "forbidden_role"


@dataclass(frozen=True)
class Authorization:
    status: AuthStatus
    role: PrincipalRole = PrincipalRole.unset
    principal_id: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status is AuthStatus.ok


def authorize(store: SessionStore, identifier: Optional[str], required_role: Optional[PrincipalRole] = None) -> Authorization:
    """Decide whether ``identifier`` holds a live, confirmed session.

    Every protected handler calls this before touching the database and uses
    the returned ``principal_id`` as its query parameter.

    Usage in a route:
        auth = authorize(store, payload.identifier, PrincipalRole.volunteer)
        if not auth.ok:
            return Outcome.NOT_LOGGED_IN.respond()
    """
    if is_missing(identifier):
        return Authorization(AuthStatus.unauthenticated)
    record = store.get(identifier)
    if record is None or not record.logged_in:
        return Authorization(AuthStatus.unauthenticated)

    role = record.principal_role
    if required_role is not None and role is not required_role:
        return Authorization(AuthStatus.forbidden_role, role=role)

    principal_id = record.volunteer_id if role is PrincipalRole.volunteer else record.association_id
    return Authorization(AuthStatus.ok, role=role, principal_id=principal_id)


# --- Two-phase login --------------------------------------------------------

class LoginOutcome(StateCode):
    CODE_SENT = (0, 200, "Login confirmation code sent")
    LOGGED_IN_VOLUNTEER = (-1, 200, "Login successful as volunteer")
    LOGGED_IN_ASSOCIATION = (-1, 200, "Login successful as association")
    MISSING_CREDENTIALS = (1, 400, "Missing credentials")
    INVALID_CREDENTIALS = (3, 400, "Invalid email or password")
    INTERNAL_ERROR = (4, 500, "An error occurred during login")
    ALREADY_LOGGED_IN = (5, 400, "Already logged in")
    MISSING_CONFIRMATION = (7, 400, "Missing confirmation code")
    INVALID_CODE = (10, 400, "Invalid confirmation code, please try again")
    CODE_EXPIRED = (11, 400, "Confirmation code expired")


@dataclass(frozen=True)
class LoginResult:
    outcome: LoginOutcome
    # set only on CODE_SENT; the caller delivers it out of band
    code: Optional[str] = None


def find_account(db: Session, email: str):
    """Resolve an email to ``(role, account)``; volunteers take precedence."""
    volunteer = db.query(Volunteer).filter(Volunteer.email == email).first()
    if volunteer:
        return PrincipalRole.volunteer, volunteer
    association = db.query(Association).filter(Association.email == email).first()
    if association:
        return PrincipalRole.association, association
    return None, None


def login(
    db: Session,
    store: SessionStore,
    identifier: Optional[str],
    password: Optional[str] = None,
    code: Optional[str] = None,
    code_ttl: float = settings.CONFIRMATION_CODE_TTL_SECONDS,
) -> LoginResult:
    """Run one step of the login protocol.

    Without ``code`` the credentials are checked and a confirmation code is
    issued (phase 1). With ``code`` the pending session is confirmed
    (phase 2). Rejections are returned, never raised.
    """
    if not is_missing(identifier):
        existing = store.get(identifier)
        if existing is not None and existing.logged_in:
            return LoginResult(LoginOutcome.ALREADY_LOGGED_IN)

    if not is_missing(code):
        return _confirm(store, identifier, str(code).strip(), code_ttl)
    return _check_credentials(db, store, identifier, password)


def _check_credentials(db: Session, store: SessionStore, identifier, password) -> LoginResult:
    if is_missing(identifier) or is_missing(password):
        return LoginResult(LoginOutcome.MISSING_CREDENTIALS)

    role, account = find_account(db, identifier)
    if account is None:
        logger.info(f"Login rejected for {identifier}: unknown account")
        return LoginResult(LoginOutcome.INVALID_CREDENTIALS)

    verified, new_hash = verify_password(password, account.password_hash)
    if not verified:
        logger.info(f"Login rejected for {identifier}: wrong password")
        return LoginResult(LoginOutcome.INVALID_CREDENTIALS)
    if new_hash:
        _upgrade_digest(db, account, new_hash, identifier)

    code = generate_confirmation_code()
    if role is PrincipalRole.volunteer:
        record = SessionRecord(confirmation_code=code, volunteer_id=account.id)
    else:
        record = SessionRecord(confirmation_code=code, association_id=account.id)
    store.set(identifier, record)
    logger.info(f"Confirmation code issued for {identifier} ({role.value})")
    return LoginResult(LoginOutcome.CODE_SENT, code=code)


def _upgrade_digest(db: Session, account, new_hash: str, identifier) -> None:
    # best effort: the old digest still verifies, so the login goes on
    try:
        account.password_hash = new_hash
        db.add(account)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Could not upgrade password digest for {identifier}")
        return
    logger.info(f"Upgraded password digest for {identifier}")


CONFIRM_ATTEMPTS = 3


def _confirm(store: SessionStore, identifier, code: str, code_ttl: float) -> LoginResult:
    if is_missing(identifier):
        return LoginResult(LoginOutcome.MISSING_CONFIRMATION)

    # Writes are conditional on the record read here; if a concurrent phase 1
    # replaced it, the check runs again against the new record.
    for _ in range(CONFIRM_ATTEMPTS):
        record = store.get(identifier)
        if record is None or record.confirmation_code is None:
            return LoginResult(LoginOutcome.MISSING_CONFIRMATION)

        if not secrets.compare_digest(record.confirmation_code.encode(), code.encode()):
            return LoginResult(LoginOutcome.INVALID_CODE)

        if store.age_of(record) > code_ttl:
            if not store.delete_if(identifier, record):
                continue
            logger.info(f"Confirmation code for {identifier} expired")
            return LoginResult(LoginOutcome.CODE_EXPIRED)

        confirmed = store.update_if(identifier, record, logged_in=True, confirmation_code=None)
        if confirmed is not None:
            break
    else:
        logger.warning(f"Confirmation for {identifier} kept racing with new login attempts")
        return LoginResult(LoginOutcome.MISSING_CONFIRMATION)

    logger.info(f"{identifier} logged in as {confirmed.principal_role.value}")
    if confirmed.principal_role is PrincipalRole.association:
        return LoginResult(LoginOutcome.LOGGED_IN_ASSOCIATION)
    return LoginResult(LoginOutcome.LOGGED_IN_VOLUNTEER)
