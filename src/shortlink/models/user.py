from sqlalchemy import Column, String
from src.shortlink.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    username = Column(String, unique=True, index=True, nullable=False)
    # bcrypt hash, the plaintext is never stored
    hashed_password = Column(String, nullable=False)
