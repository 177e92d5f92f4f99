from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool
import os

from smartnotes import models  # noqa: F401  registers the tables on SQLModel.metadata

# Prefer DATABASE_URL (e.g., Postgres). Fallback to local SQLite.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./smartnotes.db")

engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, echo=False, **engine_kwargs)


def init_db() -> None:
    """Create all tables if they don't exist."""
    SQLModel.metadata.create_all(engine)


def get_session():
    # rows returned from a route are serialized after the commit
    with Session(engine, expire_on_commit=False) as session:
        yield session
