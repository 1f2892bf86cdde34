from sqlalchemy import Column, String, Integer, ForeignKey
from src.shortlink.db.base import BaseModel


class Link(BaseModel):
    __tablename__ = "links"

    original_url = Column(String, nullable=False)
    short_code = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
