from pydantic import BaseModel
from typing import Optional


class UserCredentials(BaseModel):
    # Optional so that missing fields reach the service and get the 400 message.
    username: Optional[str] = None
    password: Optional[str] = None


class Token(BaseModel):
    token: str
