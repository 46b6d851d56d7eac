from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, List, Optional, Union
import datetime

from volunteer_app.core.timezone_utils import to_naive_utc


class EventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    location: str
    approx_location: Optional[str] = None
    date: datetime.datetime
    max_capacity: Optional[int] = None
    poster_image: Optional[str] = None
    is_private: bool
    creator_id: int
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None


class EventRequest(BaseModel):
    """Caller identifier plus the event the operation targets."""
    identifier: Optional[str] = None
    event_id: Optional[Union[int, str]] = None


class ParticipantCountRequest(BaseModel):
    event_id: Optional[Union[int, str]] = None


class RemoveVolunteerRequest(EventRequest):
    # required only when the caller is an association
    volunteer_id: Optional[Union[int, str]] = None


class PublishEventRequest(BaseModel):
    identifier: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    date: Optional[Any] = None
    is_private: Optional[Any] = None
    max_capacity: Optional[Any] = None
    approx_location: Optional[str] = None
    poster_image: Optional[str] = None
    interest_ids: Optional[List[Any]] = None


class EventFields(BaseModel):
    """Typed event columns a client may write.

    Anything outside this list is rejected instead of being forwarded to the
    database layer.
    """
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    approx_location: Optional[str] = None
    date: Optional[datetime.datetime] = None
    max_capacity: Optional[int] = Field(default=None, ge=1)
    poster_image: Optional[str] = None
    is_private: Optional[bool] = None

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def _required_columns_not_null(self):
        # these columns are NOT NULL; an explicit null cannot be written
        for name in ("name", "description", "location", "date", "is_private"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class NewEventFields(EventFields):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    location: str = Field(min_length=1)
    date: datetime.datetime
    is_private: bool


class UpdateEventRequest(BaseModel):
    identifier: Optional[str] = None
    event_id: Optional[Union[int, str]] = None
    # validated in the handler so a non-object maps to "nothing to update"
    fields_to_update: Optional[Any] = None
