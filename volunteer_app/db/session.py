from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, declarative_base
from volunteer_app.core.config import settings
import logging
import threading
import contextvars

DATABASE_URL = settings.DATABASE_URL

# SQLite runs in tests and local experiments; everything else gets a tuned pool.
# pool_pre_ping avoids "MySQL server has gone away" on stale pooled connections.
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

_db_logger = logging.getLogger("volunteer_app.db")
_db_lock = threading.Lock()
_global_db_query_count = 0

# The request middleware stores a one-element list here at the start of each
# request. Handlers run in the worker thread pool with a copy of the context,
# so the counter is mutated in place rather than re-set.
request_db_query_count = contextvars.ContextVar("request_db_query_count", default=None)


@event.listens_for(engine, "before_cursor_execute")
def _on_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    counter = request_db_query_count.get()
    if counter is not None:
        counter[0] += 1
    global _global_db_query_count
    with _db_lock:
        _global_db_query_count += 1
        total = _global_db_query_count
    if total % settings.REQUEST_LOG_EVERY_N == 0:
        _db_logger.info(f"Database roundtrips since start: {total}")


def get_global_db_queries_total() -> int:
    """Return the total number of DB roundtrips since process start."""
    with _db_lock:
        return _global_db_query_count


def get_db():
    """FastAPI dependency that provides a scoped SQLAlchemy Session.

    The session is always closed after the request so its connection goes back
    to the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_db():
    # Import models here so they are registered on the metadata
    import volunteer_app.models.volunteer  # noqa: F401
    import volunteer_app.models.association  # noqa: F401
    import volunteer_app.models.event  # noqa: F401
    import volunteer_app.models.interest  # noqa: F401
    import volunteer_app.models.participation  # noqa: F401
    Base.metadata.create_all(bind=engine)
