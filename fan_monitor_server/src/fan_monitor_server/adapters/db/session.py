import logging
from functools import lru_cache
from typing import Optional

from fan_monitor_core.config.environments import get_settings
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str) -> Engine:
    """Create an engine for *url*. In-memory SQLite is shared across threads."""
    if url.startswith("sqlite") and ":memory:" in url:
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, future=True, echo=False)


@lru_cache(maxsize=None)
def create_session_factory(url: Optional[str] = None) -> sessionmaker:
    """Create the session factory for *url*, or for the configured database when omitted."""
    if url is None:
        settings = get_settings()
        url = settings.DATABASE_URL
        log.info(f"Initializing database connection for {settings.ENVIRONMENT.value} environment")
    log.info(f"Database URL: {url}")

    engine = make_engine(url)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def SessionLocal() -> Session:
    return create_session_factory()()
