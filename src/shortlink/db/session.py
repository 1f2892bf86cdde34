from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from typing import Generator

from src.shortlink.db.base import Base

# Register the mapped classes on Base.metadata before create_all runs.
from src.shortlink.models import link, user  # noqa: F401


def create_db_engine(database_url: str) -> Engine:
    """
    Create the engine for the configured store and make sure tables exist.

    In-memory SQLite URLs share a single connection so every session sees
    the same database.
    """
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(bind=engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator:
    SessionLocal = getattr(request.app.state, "session_factory", None)
    if SessionLocal is None:
        raise RuntimeError(
            "Database session not initialized. Make sure the application lifespan has started."
        )

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
