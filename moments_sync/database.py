"""SQLite engine and session setup for the on-device entity store."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


class Base(DeclarativeBase):
    """Declarative base for local entity models."""


def create_sqlite_engine(url: str) -> Engine:
    """Create an engine for a SQLite URL.

    In-memory databases share one connection so every session sees the
    same data.
    """
    if url in _MEMORY_URLS:
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, connect_args={"check_same_thread": False})


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_local_db(engine: Engine) -> None:
    """Create local entity tables if they do not exist yet."""
    # Import models so they register on Base.metadata
    import moments_sync.models  # noqa: F401

    Base.metadata.create_all(engine)
