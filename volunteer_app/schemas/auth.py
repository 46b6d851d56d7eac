from pydantic import BaseModel
from typing import Optional, Union


class LoginRequest(BaseModel):
    # phase 1: identifier + password; phase 2: identifier + code
    identifier: Optional[str] = None
    password: Optional[str] = None
    code: Optional[Union[str, int]] = None


class IdentifiedRequest(BaseModel):
    """Body of endpoints that only need the caller's session key."""
    identifier: Optional[str] = None
