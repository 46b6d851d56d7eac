import enum

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


class StateCode(enum.Enum):
    """Base for the per-endpoint result codes.

    Each endpoint declares its own subclass; members are
    ``(state, http_status, message)`` tuples. Every response body has the shape
    ``{"state": int, "message": str, **payload}``.
    """

    def __init__(self, state: int, status_code: int, message: str):
        self.state = state
        self.status_code = status_code
        self.message = message

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def body(self, **payload) -> dict:
        out = {"state": self.state, "message": self.message}
        out.update(jsonable_encoder(payload))
        return out

    def respond(self, **payload) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body(**payload))


def coerce_id(value):
    """Return ``value`` as an int id, or None when it is missing or not numeric.

    Accepts ints and numeric strings such as ``"12"``; booleans and floats with
    a fractional part are rejected.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def is_missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def dump_rows(schema, rows) -> list:
    """Serialize ORM rows through a read schema (drops columns such as password digests)."""
    return [schema.model_validate(r).model_dump() for r in rows]
