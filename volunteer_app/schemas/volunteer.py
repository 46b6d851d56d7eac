from pydantic import BaseModel, ConfigDict
from typing import Optional, Union
import datetime


class VolunteerCreate(BaseModel):
    # fields are optional so missing ones map to the endpoint's own state code
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    date_of_birth: Optional[str] = None


class VolunteerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    date_of_birth: datetime.date
    photo: Optional[str] = None
    availability: Optional[str] = None
    created_at: Optional[datetime.datetime] = None


class VolunteerDetailsRequest(BaseModel):
    identifier: Optional[str] = None
    volunteer_id: Optional[Union[int, str]] = None


class VolunteerProfileUpdate(BaseModel):
    identifier: Optional[str] = None
    photo: Optional[str] = None
    availability: Optional[str] = None
    password: Optional[str] = None
