"""
Database engine management.
"""

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from timetracker.core.config import settings


def build_engine(url: str, echo: bool = False):
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


def create_db_and_tables(bind=None) -> None:
    # Import models so they register with SQLModel.metadata
    import timetracker.models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
