import logging
import threading
import time
from collections import Counter

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from volunteer_app.core.config import settings
from volunteer_app.db import session as db_session
from volunteer_app.routes import associations as associations_routes
from volunteer_app.routes import auth as auth_routes
from volunteer_app.routes import events as events_routes
from volunteer_app.routes import interests as interests_routes
from volunteer_app.routes import volunteers as volunteers_routes
from volunteer_app.services.sessions import session_store

app = FastAPI(
    title="Volunteering Platform API",
    version="1.0.0",
    description="Backend for volunteers, associations and their events",
    redirect_slashes=False,
)

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO))
_req_logger = logging.getLogger("volunteer_app.request")
_req_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))


class _RouteHits:
    """Per-route and total hit counters shared by all requests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._per_route = Counter()
        self.total = 0

    def hit(self, route: str):
        with self._lock:
            self._per_route[route] += 1
            self.total += 1
            return self._per_route[route], self.total


_hits = _RouteHits()


@app.middleware("http")
async def request_count_middleware(request: Request, call_next):
    route = f"{request.method} {request.url.path}"
    route_hits, total_hits = _hits.hit(route)
    if route_hits % settings.REQUEST_LOG_EVERY_N == 0:
        _req_logger.info(f"{route} served {route_hits} times ({total_hits} requests overall)")

    # one-element cell; the DB listener increments it from the worker thread
    queries = [0]
    token = db_session.request_db_query_count.set(queries)
    started = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        db_session.request_db_query_count.reset(token)

    if settings.REQUEST_LOG_VERBOSE:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        _req_logger.info(
            f"{route} -> {response.status_code} in {elapsed_ms}ms"
            f" | db_queries={queries[0]} db_total={db_session.get_global_db_queries_total()}"
        )
    return response


@app.exception_handler(RequestValidationError)
async def malformed_body_handler(request: Request, exc: RequestValidationError):
    # request fields are optional and loosely typed, so this only fires when
    # the body is not a JSON object at all
    return JSONResponse(
        status_code=400,
        content={"state": -2, "message": "Malformed request body", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    _req_logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"state": -3, "message": "Internal server error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for _router in (auth_routes, volunteers_routes, associations_routes, events_routes, interests_routes):
    app.include_router(_router.router)


@app.on_event("startup")
def on_startup():
    db_session.create_db()
    session_store.start_sweeper(settings.SESSION_SWEEP_INTERVAL_SECONDS)


@app.on_event("shutdown")
def on_shutdown():
    session_store.stop_sweeper()


@app.get("/")
def root():
    return {"state": 0, "message": "API running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("volunteer_app.main:app", host=settings.HOST, port=settings.PORT)
