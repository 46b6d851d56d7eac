from pydantic import BaseModel, ConfigDict
from typing import Optional, Union
import datetime


class AssociationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    website: Optional[str] = None
    logo: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime.datetime] = None


class AssociationEventsRequest(BaseModel):
    identifier: Optional[str] = None
    association_id: Optional[Union[int, str]] = None


class AssociationProfileUpdate(BaseModel):
    identifier: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    location: Optional[str] = None
    password: Optional[str] = None
