from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class LinkCreate(BaseModel):
    original_url: Optional[str] = Field(None, alias="originalUrl")


class ShortenResponse(BaseModel):
    short_url: str = Field(serialization_alias="shortUrl")


class Link(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    original_url: str = Field(serialization_alias="originalUrl")
    short_code: str = Field(serialization_alias="shortUrl")
    user_id: int = Field(serialization_alias="userId")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")


class Message(BaseModel):
    msg: str
