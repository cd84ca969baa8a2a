# phoneverify/db/session.py
import logging
from typing import Iterator

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from phoneverify.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory databases only live as long as their single connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))


def init_db() -> None:
    """Create all tables registered on SQLModel metadata."""
    import phoneverify.db.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ensured")


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
