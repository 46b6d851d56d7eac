"""In-memory, TTL-governed session store.

Sessions are keyed by the user's identifier (their email address). A record is
written when the password check of a login succeeds and promoted to
``logged_in`` once the emailed confirmation code is entered.

Expired records are evicted lazily whenever they are read and, as a backstop
for keys that are never read again, by a background sweeper thread.
"""
import dataclasses
import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from volunteer_app.core.config import settings

logger = logging.getLogger("volunteer_app.sessions")


class PrincipalRole(str, enum.Enum):
    volunteer = "volunteer"
    association = "association"
    unset = "unset"


@dataclass(frozen=True)
class SessionRecord:
    logged_in: bool = False
    volunteer_id: Optional[int] = None
    association_id: Optional[int] = None
    confirmation_code: Optional[str] = None
    # stamped by the store on every write, on the store's clock
    updated_at: float = 0.0

    def __post_init__(self):
        if self.volunteer_id is not None and self.association_id is not None:
            raise ValueError("a session belongs to a volunteer or an association, not both")
        if self.logged_in and self.volunteer_id is None and self.association_id is None:
            raise ValueError("a logged-in session needs a volunteer_id or an association_id")

    @property
    def principal_role(self) -> PrincipalRole:
        if self.volunteer_id is not None:
            return PrincipalRole.volunteer
        if self.association_id is not None:
            return PrincipalRole.association
        return PrincipalRole.unset


class SessionStore:
    """Process-local holder of all pending and active sessions.

    Every operation takes the same lock, so a read-plus-eviction, a write or a
    sweep is atomic with respect to concurrent requests. Callers must not hold
    on to the lock across database or network I/O; the public methods never
    expose it.
    """

    def __init__(self, ttl: float = settings.SESSION_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionRecord] = {}
        self._sweeper: Optional[threading.Thread] = None
        self._stop_sweeper = threading.Event()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, record: SessionRecord, now: float) -> bool:
        return now - record.updated_at > self.ttl

    def _get_locked(self, key: str) -> Optional[SessionRecord]:
        record = self._sessions.get(key)
        if record is None:
            return None
        if self._is_expired(record, self._clock()):
            del self._sessions[key]
            return None
        return record

    def set(self, key: str, record: SessionRecord) -> SessionRecord:
        stamped = dataclasses.replace(record, updated_at=self._clock())
        with self._lock:
            self._sessions[key] = stamped
        return stamped

    def get(self, key: str) -> Optional[SessionRecord]:
        """Return the live record for ``key``; an expired one is evicted."""
        with self._lock:
            return self._get_locked(key)

    def update(self, key: str, **fields) -> Optional[SessionRecord]:
        """Merge ``fields`` into the live record for ``key`` and restamp it.

        Returns None, without creating anything, when there is no live record.
        """
        with self._lock:
            current = self._get_locked(key)
            if current is None:
                return None
            merged = dataclasses.replace(current, **fields, updated_at=self._clock())
            self._sessions[key] = merged
            return merged

    def update_if(self, key: str, expected: SessionRecord, **fields) -> Optional[SessionRecord]:
        """Like ``update``, but only while ``expected`` is still the stored record.

        Returns None when the record was rewritten, deleted or has expired
        since the caller read it.
        """
        with self._lock:
            if self._get_locked(key) is not expected:
                return None
            merged = dataclasses.replace(expected, **fields, updated_at=self._clock())
            self._sessions[key] = merged
            return merged

    def delete(self, key: str) -> None:
        with self._lock:
            self._sessions.pop(key, None)

    def delete_if(self, key: str, expected: SessionRecord) -> bool:
        """Delete ``key`` only while ``expected`` is still the stored record."""
        with self._lock:
            if self._sessions.get(key) is not expected:
                return False
            del self._sessions[key]
            return True

    def age_of(self, record: SessionRecord) -> float:
        """Seconds elapsed since ``record`` was last written."""
        return self._clock() - record.updated_at

    def sweep_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [k for k, r in self._sessions.items() if self._is_expired(r, now)]
            for key in expired:
                del self._sessions[key]
        if expired:
            logger.info(f"Session sweep removed {len(expired)} expired session(s)")
        return len(expired)

    def start_sweeper(self, interval: float = settings.SESSION_SWEEP_INTERVAL_SECONDS) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_sweeper.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, args=(interval,), name="session-sweeper", daemon=True
        )
        self._sweeper.start()
        logger.debug(f"Session sweeper started (every {interval}s)")

    def stop_sweeper(self) -> None:
        self._stop_sweeper.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def _sweep_loop(self, interval: float) -> None:
        while not self._stop_sweeper.wait(interval):
            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Session sweep failed")


session_store = SessionStore()


def get_session_store() -> SessionStore:
    """FastAPI dependency returning the process-wide session store."""
    return session_store
